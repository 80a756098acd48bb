"""
Database models package
"""
from certquiz.models.question import Question
from certquiz.models.quiz_session import QuizSessionEvent, QuizSessionRecord, QuizSessionSnapshot

__all__ = ["Question", "QuizSessionEvent", "QuizSessionRecord", "QuizSessionSnapshot"]
