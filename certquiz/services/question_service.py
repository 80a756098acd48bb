"""
Question catalog: picks questions for new sessions and looks up their details
"""
import logging
import random
from typing import Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from certquiz.domain.errors import InsufficientQuestionsError, RepositoryError, ValidationError
from certquiz.domain.value_objects import Difficulty, ExamType, QuestionReference
from certquiz.models.question import Question

logger = logging.getLogger(__name__)


class QuestionService:
    """Reads the questions table"""

    def __init__(self, db: Session, rng: Optional[random.Random] = None):
        self.db = db
        self.rng = rng or random.Random()

    def select_for_quiz(
        self,
        exam_type: ExamType,
        question_count: int,
        difficulty: Difficulty = Difficulty.MIXED,
        category: Optional[str] = None,
    ) -> List[QuestionReference]:
        """
        Pick ``question_count`` active questions at random

        Args:
            exam_type: Exam the questions belong to
            question_count: Number of questions wanted
            difficulty: MIXED selects across all difficulties
            category: Optional category filter

        Returns:
            Question references carrying their option ids and correct answers

        Raises:
            InsufficientQuestionsError: fewer matching questions than requested
        """
        try:
            query = self.db.query(Question).filter(
                Question.exam_type == ExamType(exam_type).value,
                Question.status == "active",
            )
            if difficulty and Difficulty(difficulty) is not Difficulty.MIXED:
                query = query.filter(Question.difficulty == Difficulty(difficulty).value)
            if category:
                query = query.filter(Question.category == category)
            # Stable order so a seeded rng picks the same questions every time
            candidates = query.order_by(Question.id).all()
        except SQLAlchemyError as e:
            raise RepositoryError("select_for_quiz", str(e)) from e

        if len(candidates) < question_count:
            logger.warning(
                f"Not enough {exam_type} questions (difficulty={difficulty}, category={category}): "
                f"requested {question_count}, found {len(candidates)}"
            )
            raise InsufficientQuestionsError(question_count, len(candidates))

        picked = self.rng.sample(candidates, question_count)
        return [self.to_reference(question) for question in picked]

    @staticmethod
    def to_reference(question: Question) -> QuestionReference:
        try:
            return QuestionReference.create(
                question.id, question.correct_option_ids, question.option_ids
            )
        except ValidationError:
            logger.error(f"Question {question.id} in the catalog is malformed")
            raise

    def get_details(self, question_ids: Sequence[str]) -> Dict[str, Question]:
        """Questions keyed by id; ids no longer in the table are left out"""
        if not question_ids:
            return {}
        try:
            rows = self.db.query(Question).filter(Question.id.in_(list(question_ids))).all()
        except SQLAlchemyError as e:
            raise RepositoryError("get_details", str(e)) from e
        return {row.id: row for row in rows}
