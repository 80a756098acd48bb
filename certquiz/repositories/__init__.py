from certquiz.repositories.quiz_repository import QuizRepository
from certquiz.repositories.in_memory import InMemoryQuizRepository
from certquiz.repositories.sqlalchemy_quiz_repository import SqlAlchemyQuizRepository

__all__ = ["QuizRepository", "InMemoryQuizRepository", "SqlAlchemyQuizRepository"]
