"""
Tests for the quiz session application service
"""
import pytest

from certquiz.domain.errors import (
    ActiveSessionError,
    AuthorizationError,
    DuplicateAnswerError,
    InvalidStateError,
    SessionExpiredError,
    SessionNotFoundError,
    ValidationError,
)
from certquiz.domain.state import QuizState
from certquiz.repositories import InMemoryQuizRepository
from certquiz.services.question_service import QuestionService
from certquiz.services.quiz_session_service import QuizSessionService


class DictCache:
    """Stands in for CacheService with Redis available"""

    def __init__(self):
        self.store = {}
        self.gets = 0

    def get(self, key):
        self.gets += 1
        return self.store.get(key)

    def set(self, key, value, ttl=None):
        self.store[key] = value
        return True


@pytest.fixture
def repository():
    return InMemoryQuizRepository()


@pytest.fixture
def cache():
    return DictCache()


@pytest.fixture
def service(repository, clock, db_session, seeded_questions, cache):
    return QuizSessionService(
        repository=repository,
        clock=clock,
        question_service=QuestionService(db_session),
        cache=cache,
    )


class TestStartQuiz:
    def test_start_persists_session(self, service, repository):
        session = service.start_quiz("alice", "CCNA", 3, time_limit=300)

        assert repository.find_by_id(session.id) == session
        assert session.state is QuizState.IN_PROGRESS
        assert len(session.questions) == 3

    def test_invalid_config(self, service):
        with pytest.raises(ValidationError):
            service.start_quiz("alice", "CCNA", 4)

    def test_active_session_blocks_new_one(self, service):
        first = service.start_quiz("alice", "CCNA", 3)

        with pytest.raises(ActiveSessionError) as exc_info:
            service.start_quiz("alice", "CCNA", 3)

        assert exc_info.value.session_id == first.id

    def test_timed_out_session_does_not_block(self, service, repository, clock):
        first = service.start_quiz("alice", "CCNA", 3, time_limit=60)
        clock.advance(61)

        second = service.start_quiz("alice", "CCNA", 3)

        assert repository.find_by_id(first.id).state is QuizState.EXPIRED
        assert repository.find_active_by_user("alice").id == second.id


class TestAnswerAndComplete:
    def test_full_flow(self, service):
        session = service.start_quiz("alice", "CCNA", 3)

        service.submit_answer(session.id, "alice", 0, ["a"])
        service.submit_answer(session.id, "alice", 1, ["b"])
        completed = service.complete_quiz(session.id, "alice")

        assert completed.state is QuizState.COMPLETED
        assert completed.version == 4
        assert completed.score().percentage == 33

    def test_duplicate_answer(self, service, repository):
        session = service.start_quiz("alice", "CCNA", 3)
        service.submit_answer(session.id, "alice", 0, ["a"])

        with pytest.raises(DuplicateAnswerError):
            service.submit_answer(session.id, "alice", 0, ["b"])

        assert repository.find_by_id(session.id).answer_for(0).selected_option_ids == ("a",)

    def test_expired_submission_is_saved_before_failing(self, service, repository, clock):
        session = service.start_quiz("alice", "CCNA", 3, time_limit=60)
        clock.advance(61)

        with pytest.raises(SessionExpiredError):
            service.submit_answer(session.id, "alice", 0, ["a"])

        stored = repository.find_by_id(session.id)
        assert stored.state is QuizState.EXPIRED
        with pytest.raises(InvalidStateError):
            service.submit_answer(session.id, "alice", 0, ["a"])

    def test_unknown_session(self, service):
        with pytest.raises(SessionNotFoundError):
            service.submit_answer("missing", "alice", 0, ["a"])

    def test_other_users_session(self, service):
        session = service.start_quiz("alice", "CCNA", 3)

        with pytest.raises(AuthorizationError):
            service.submit_answer(session.id, "mallory", 0, ["a"])
        with pytest.raises(AuthorizationError):
            service.get_session(session.id, "mallory")


class TestResults:
    def test_results_require_finished_session(self, service):
        session = service.start_quiz("alice", "CCNA", 3)

        with pytest.raises(InvalidStateError):
            service.get_results(session.id, "alice")

    def test_results_are_cached(self, service, cache):
        session = service.start_quiz("alice", "CCNA", 3)
        service.submit_answer(session.id, "alice", 0, ["a"])
        service.complete_quiz(session.id, "alice")

        first = service.get_results(session.id, "alice")
        second = service.get_results(session.id, "alice")

        assert first == second
        assert list(cache.store) == [f"quiz:results:{session.id}"]
        assert first["score"]["correct_count"] == 1

    def test_results_of_timed_out_session(self, service, repository, clock):
        session = service.start_quiz("alice", "CCNA", 3, time_limit=60)
        service.submit_answer(session.id, "alice", 0, ["a"])
        clock.advance(120)

        results = service.get_results(session.id, "alice")

        assert results["state"] == "EXPIRED"
        assert results["completed_at"] is None
        assert repository.find_by_id(session.id).state is QuizState.EXPIRED


class TestAdminOperations:
    def test_forced_expiry(self, service, repository):
        session = service.start_quiz("alice", "CCNA", 3, time_limit=600)

        expired = service.expire_session(session.id)

        assert expired.state is QuizState.EXPIRED
        assert repository.count_active_sessions() == 0

    def test_forced_expiry_of_finished_session(self, service):
        session = service.start_quiz("alice", "CCNA", 3)
        service.complete_quiz(session.id, "alice")

        with pytest.raises(InvalidStateError):
            service.expire_session(session.id)

    def test_stats_and_events(self, service):
        first = service.start_quiz("alice", "CCNA", 3)
        service.complete_quiz(first.id, "alice")
        service.start_quiz("bob", "CCNA", 1)

        assert service.get_stats() == {"total_sessions": 2, "active_sessions": 1}
        assert [e.version for e in service.get_events(first.id, "alice")] == [1, 2]
