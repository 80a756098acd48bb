"""
Dependency wiring for the API

Every request gets its own database session and therefore its own repository.
"""
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from certquiz.config import settings
from certquiz.database import SessionLocal, get_db
from certquiz.domain.clock import Clock, SystemClock
from certquiz.domain.errors import ValidationError
from certquiz.repositories.quiz_repository import QuizRepository
from certquiz.repositories.sqlalchemy_quiz_repository import SqlAlchemyQuizRepository
from certquiz.services.question_service import QuestionService
from certquiz.services.quiz_session_service import QuizSessionService
from certquiz.utils.cache import CacheService


@lru_cache()
def get_clock() -> Clock:
    return SystemClock()


@lru_cache()
def get_cache() -> CacheService:
    return CacheService(settings.REDIS_URL, default_ttl=settings.RESULTS_CACHE_TTL)


def get_quiz_repository(db: Session = Depends(get_db)) -> QuizRepository:
    return SqlAlchemyQuizRepository(db, snapshot_interval=settings.SNAPSHOT_INTERVAL)


def get_question_service(db: Session = Depends(get_db)) -> QuestionService:
    return QuestionService(db)


def get_quiz_session_service(
    repository: QuizRepository = Depends(get_quiz_repository),
    clock: Clock = Depends(get_clock),
    question_service: QuestionService = Depends(get_question_service),
    cache: CacheService = Depends(get_cache),
) -> QuizSessionService:
    return QuizSessionService(
        repository=repository,
        clock=clock,
        question_service=question_service,
        cache=cache,
        allowed_question_counts=settings.ALLOWED_QUESTION_COUNTS,
    )


def get_current_user_id(x_user_id: str = Header(..., alias="X-User-Id")) -> str:
    """Caller identity as forwarded by the authenticating gateway"""
    user_id = x_user_id.strip()
    if not user_id:
        raise ValidationError("X-User-Id header must not be empty")
    return user_id


@contextmanager
def repository_scope(session_factory=SessionLocal) -> Iterator[QuizRepository]:
    """Repository with its own database session, for work outside a request"""
    db = session_factory()
    try:
        yield SqlAlchemyQuizRepository(db, snapshot_interval=settings.SNAPSHOT_INTERVAL)
    finally:
        db.close()
