"""
Quiz session use cases
Load the aggregate, run one command, persist its events, return the result
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from certquiz.domain.clock import Clock
from certquiz.domain.errors import (
    ActiveSessionError,
    AuthorizationError,
    InvalidStateError,
    SessionNotFoundError,
    ValidationError,
)
from certquiz.domain.events import DomainEvent
from certquiz.domain.session import CommandResult, QuizSession
from certquiz.domain.value_objects import QUIZ_SIZES, Difficulty, QuizConfig
from certquiz.repositories.quiz_repository import QuizRepository
from certquiz.services.question_service import QuestionService
from certquiz.services.scoring_service import ScoringService
from certquiz.utils.cache import CacheService

logger = logging.getLogger(__name__)


class QuizSessionService:
    """
    Application service for the quiz session lifecycle

    Domain failures are raised as ``QuizError`` subclasses. A failed command
    that still produced events (a submit after the time limit expires the
    session) has those events saved before the error is raised.
    """

    def __init__(
        self,
        repository: QuizRepository,
        clock: Clock,
        question_service: Optional[QuestionService] = None,
        scoring_service: Optional[ScoringService] = None,
        cache: Optional[CacheService] = None,
        allowed_question_counts: Iterable[int] = QUIZ_SIZES,
    ):
        self.repository = repository
        self.clock = clock
        self.question_service = question_service
        self.scoring_service = scoring_service or ScoringService()
        self.cache = cache
        self.allowed_question_counts = tuple(allowed_question_counts)

    def start_quiz(
        self,
        user_id: str,
        exam_type: str,
        question_count: int,
        time_limit: Optional[int] = None,
        difficulty: str = Difficulty.MIXED.value,
        category: Optional[str] = None,
        enforce_sequential_answering: bool = False,
        require_all_answers: bool = False,
        auto_complete_when_all_answered: bool = False,
    ) -> QuizSession:
        """
        Start a new session for ``user_id``

        Raises:
            ValidationError: invalid configuration
            ActiveSessionError: the user already has a session in progress
            InsufficientQuestionsError: the catalog cannot fill the quiz
        """
        config = QuizConfig.create(
            exam_type=exam_type,
            question_count=question_count,
            time_limit=time_limit,
            difficulty=difficulty,
            category=category,
            enforce_sequential_answering=enforce_sequential_answering,
            require_all_answers=require_all_answers,
            auto_complete_when_all_answered=auto_complete_when_all_answered,
            allowed_question_counts=self.allowed_question_counts,
        )

        active = self.repository.find_active_by_user(user_id)
        if active is not None:
            # A session past its limit that no sweep has reached yet no longer blocks the user
            healed = active.expire_if_due(self.clock)
            if not healed.changed:
                raise ActiveSessionError(user_id, active.id)
            self._commit(healed, active.version)

        if self.question_service is None:
            raise InvalidStateError("No question catalog is configured")
        questions = self.question_service.select_for_quiz(
            config.exam_type, config.question_count, config.difficulty, config.category
        )

        session = self._commit(QuizSession.start_new(user_id, config, questions, self.clock), 0)
        logger.info(
            f"Quiz session {session.id} started for user {user_id}: "
            f"{config.exam_type.value} x{config.question_count}, time_limit={config.time_limit}"
        )
        return session

    def submit_answer(
        self,
        session_id: str,
        user_id: str,
        question_index: int,
        selected_option_ids: List[str],
    ) -> QuizSession:
        session = self._load_owned(session_id, user_id)
        result = session.submit_answer(question_index, selected_option_ids, self.clock)
        updated = self._commit(result, session.version)
        logger.info(f"Answer recorded for session {session_id}, question {question_index}")
        return updated

    def complete_quiz(self, session_id: str, user_id: str) -> QuizSession:
        session = self._load_owned(session_id, user_id)
        completed = self._commit(session.complete(self.clock), session.version)
        logger.info(f"Quiz session {session_id} completed with score {completed.score().percentage}%")
        return completed

    def get_session(self, session_id: str, user_id: str) -> QuizSession:
        """Read-only; callers derive the effective state from the clock"""
        return self._load_owned(session_id, user_id)

    def get_results(self, session_id: str, user_id: str) -> Dict[str, Any]:
        """
        Results of a finished session

        A session whose time limit has passed is expired and saved first.
        Results are cached since a finished session never changes.

        Raises:
            InvalidStateError: the session is still in progress
        """
        session = self._load_owned(session_id, user_id)
        healed = session.expire_if_due(self.clock)
        if healed.changed:
            session = self._commit(healed, session.version)

        if not session.is_terminal:
            raise InvalidStateError("Results are available once the quiz is completed or expired")

        cache_key = CacheService.results_key(session.id)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached:
                return cached

        details = {}
        if self.question_service is not None:
            details = self.question_service.get_details(session.question_ids())
        results = self.scoring_service.build_results(session, details)

        if self.cache is not None:
            self.cache.set(cache_key, results)
        return results

    def expire_session(self, session_id: str) -> QuizSession:
        """Administrative expiry; does not wait for the time limit"""
        session = self._load(session_id)
        expired = self._commit(session.expire(self.clock, force=True), session.version)
        logger.info(f"Quiz session {session_id} expired by administrator")
        return expired

    def get_events(self, session_id: str, user_id: str) -> List[DomainEvent]:
        self._load_owned(session_id, user_id)
        return self.repository.load_events(session_id)

    def get_stats(self) -> Dict[str, int]:
        return {
            "total_sessions": self.repository.count_total_sessions(),
            "active_sessions": self.repository.count_active_sessions(),
        }

    def _load(self, session_id: str) -> QuizSession:
        session = self.repository.find_by_id(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def _load_owned(self, session_id: str, user_id: str) -> QuizSession:
        if not user_id or not str(user_id).strip():
            raise ValidationError("A user id is required")
        session = self._load(session_id)
        if session.user_id != user_id:
            logger.warning(f"User {user_id} tried to access quiz session {session_id} owned by another user")
            raise AuthorizationError("Session belongs to a different user")
        return session

    def _commit(self, result: CommandResult, expected_version: int) -> QuizSession:
        if result.changed:
            self.repository.save(result.session, result.events, expected_version)
            for event in result.events:
                logger.debug(f"Event {event.event_type.value} v{event.version} saved for session {event.session_id}")
        if result.error is not None:
            raise result.error
        return result.session
