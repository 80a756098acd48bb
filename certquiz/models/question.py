"""
Question bank model
"""
from sqlalchemy import Column, String, Text, TIMESTAMP
from sqlalchemy.sql import func
from certquiz.database import Base, JSONType
import uuid


class Question(Base):
    """
    Questions table - exam questions with their answer options
    """
    __tablename__ = "questions"
    
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    exam_type = Column(String(20), nullable=False, index=True)
    category = Column(String(100), index=True)
    difficulty = Column(String(20), nullable=False, default="INTERMEDIATE")
    question_text = Column(Text, nullable=False)
    options = Column(JSONType, nullable=False)  # [{"id": "a", "text": "...", "is_correct": true}]
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    
    @property
    def option_ids(self):
        return [option["id"] for option in self.options or []]
    
    @property
    def correct_option_ids(self):
        return [option["id"] for option in self.options or [] if option.get("is_correct")]
    
    def __repr__(self):
        return f"<Question(id={self.id}, exam_type={self.exam_type}, difficulty={self.difficulty})>"
