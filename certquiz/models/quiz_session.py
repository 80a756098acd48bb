"""
Quiz session persistence tables

- quiz_session_events: append-only event log, one row per (session_id, version)
- quiz_sessions: current-state projection used for lookups by user and expiry
- quiz_session_snapshots: periodic full-state snapshots to bound replay cost
"""
from sqlalchemy import (
    Column, String, Integer, TIMESTAMP, CheckConstraint, Index, text
)
from sqlalchemy.sql import func
from certquiz.database import Base, JSONType


class QuizSessionEvent(Base):
    """
    Event store for the QuizSession aggregate

    The composite primary key rejects a second writer appending the same version.
    """
    __tablename__ = "quiz_session_events"
    
    session_id = Column(String(36), primary_key=True)
    version = Column(Integer, primary_key=True, autoincrement=False)
    event_id = Column(String(36), nullable=False, unique=True)
    event_type = Column(String(32), nullable=False, index=True)
    payload = Column(JSONType, nullable=False)
    occurred_at = Column(TIMESTAMP(timezone=True), nullable=False, index=True)
    
    __table_args__ = (
        CheckConstraint("version > 0", name="ck_quiz_event_version_positive"),
    )
    
    def __repr__(self):
        return f"<QuizSessionEvent(session_id={self.session_id}, version={self.version}, type={self.event_type})>"


class QuizSessionRecord(Base):
    """
    Current-state projection of a quiz session
    """
    __tablename__ = "quiz_sessions"
    
    id = Column(String(36), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    state = Column(String(20), nullable=False)
    exam_type = Column(String(20), nullable=False)
    question_count = Column(Integer, nullable=False)
    started_at = Column(TIMESTAMP(timezone=True), nullable=False)
    expires_at = Column(TIMESTAMP(timezone=True))  # NULL for untimed sessions
    completed_at = Column(TIMESTAMP(timezone=True))
    version = Column(Integer, nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())
    
    __table_args__ = (
        # At most one IN_PROGRESS session per user
        Index(
            "ix_quiz_sessions_active_user",
            "user_id",
            unique=True,
            postgresql_where=text("state = 'IN_PROGRESS'"),
            sqlite_where=text("state = 'IN_PROGRESS'"),
        ),
        Index("ix_quiz_sessions_state_expires", "state", "expires_at"),
    )
    
    def __repr__(self):
        return f"<QuizSessionRecord(id={self.id}, user_id={self.user_id}, state={self.state}, version={self.version})>"


class QuizSessionSnapshot(Base):
    """
    Full aggregate state at a given version
    """
    __tablename__ = "quiz_session_snapshots"
    
    session_id = Column(String(36), primary_key=True)
    version = Column(Integer, primary_key=True, autoincrement=False)
    state = Column(JSONType, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    
    def __repr__(self):
        return f"<QuizSessionSnapshot(session_id={self.session_id}, version={self.version})>"
