"""
Persistence contract for quiz sessions
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from certquiz.domain.errors import CorruptedEventStreamError
from certquiz.domain.events import DomainEvent
from certquiz.domain.session import QuizSession

logger = logging.getLogger(__name__)


class QuizRepository(ABC):
    """
    Event-sourced store for QuizSession aggregates

    ``save`` appends the events a command produced, provided the stored
    version still equals ``expected_version``; otherwise it raises
    ``ConcurrentModificationError``. Infrastructure failures surface as
    ``RepositoryError`` so callers can tell them apart from domain failures.
    """

    @abstractmethod
    def find_by_id(self, session_id: str) -> Optional[QuizSession]:
        ...

    @abstractmethod
    def save(self, session: QuizSession, events: Sequence[DomainEvent], expected_version: int) -> None:
        ...

    @abstractmethod
    def find_active_by_user(self, user_id: str) -> Optional[QuizSession]:
        ...

    @abstractmethod
    def find_expired_session_ids(self, now: datetime, limit: int) -> List[str]:
        """Ids of IN_PROGRESS sessions whose ``started_at + time_limit <= now``, oldest deadline first"""

    def find_expired_sessions(self, now: datetime, limit: int) -> List[QuizSession]:
        """
        Load the sessions named by ``find_expired_session_ids``

        A session whose history cannot be replayed is logged and left out, so
        one bad stream does not hide the rest of the batch.
        """
        sessions = []
        for session_id in self.find_expired_session_ids(now, limit):
            try:
                session = self.find_by_id(session_id)
            except CorruptedEventStreamError as e:
                logger.critical(f"Skipping quiz session {session_id} with unreadable history: {str(e)}")
                continue
            if session is not None:
                sessions.append(session)
        return sessions

    @abstractmethod
    def count_total_sessions(self) -> int:
        ...

    @abstractmethod
    def count_active_sessions(self) -> int:
        ...

    @abstractmethod
    def load_events(self, session_id: str) -> List[DomainEvent]:
        """Full ordered event history of a session (empty when unknown)"""

    @staticmethod
    def check_batch(
        session: QuizSession, events: Sequence[DomainEvent], expected_version: int
    ) -> Tuple[DomainEvent, ...]:
        """
        Check that ``events`` take the session from ``expected_version`` to ``session.version``

        A mismatch here is a programming error in the caller, not a conflict.
        """
        batch = tuple(sorted(events, key=lambda e: e.version))
        if not batch:
            return batch
        versions = [event.version for event in batch]
        expected = list(range(expected_version + 1, session.version + 1))
        if versions != expected:
            raise ValueError(
                f"Events {versions} do not lead from version {expected_version} "
                f"to {session.version} for session {session.id}"
            )
        if any(event.session_id != session.id for event in batch):
            raise ValueError(f"Event batch contains events for another session than {session.id}")
        return batch
