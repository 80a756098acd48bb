"""
In-process quiz repository
"""
import threading
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from certquiz.domain.clock import ensure_utc
from certquiz.domain.errors import ActiveSessionError, ConcurrentModificationError
from certquiz.domain.events import DomainEvent
from certquiz.domain.session import QuizSession
from certquiz.domain.state import QuizState
from certquiz.repositories.quiz_repository import QuizRepository


class InMemoryQuizRepository(QuizRepository):
    """Keeps event logs in a dict; sessions are rebuilt by replay on every load"""

    def __init__(self) -> None:
        self._events: Dict[str, List[DomainEvent]] = {}
        self._latest: Dict[str, QuizSession] = {}
        self._lock = threading.Lock()

    def find_by_id(self, session_id: str) -> Optional[QuizSession]:
        with self._lock:
            events = list(self._events.get(session_id, ()))
        if not events:
            return None
        return QuizSession.replay(events)

    def save(self, session: QuizSession, events: Sequence[DomainEvent], expected_version: int) -> None:
        batch = self.check_batch(session, events, expected_version)
        if not batch:
            return

        with self._lock:
            current = self._latest.get(session.id)
            current_version = current.version if current else 0
            if current_version != expected_version:
                raise ConcurrentModificationError(session.id, expected_version, current_version)

            if session.state is QuizState.IN_PROGRESS:
                for other in self._latest.values():
                    if other.id != session.id and other.user_id == session.user_id \
                            and other.state is QuizState.IN_PROGRESS:
                        raise ActiveSessionError(session.user_id, other.id)

            self._events.setdefault(session.id, []).extend(batch)
            self._latest[session.id] = session

    def find_active_by_user(self, user_id: str) -> Optional[QuizSession]:
        with self._lock:
            match = next(
                (s.id for s in self._latest.values()
                 if s.user_id == user_id and s.state is QuizState.IN_PROGRESS),
                None,
            )
        return self.find_by_id(match) if match else None

    def find_expired_session_ids(self, now: datetime, limit: int) -> List[str]:
        now = ensure_utc(now)
        with self._lock:
            due = [
                s for s in self._latest.values()
                if s.state is QuizState.IN_PROGRESS and s.expires_at is not None and s.expires_at <= now
            ]
        due.sort(key=lambda s: s.expires_at)
        return [s.id for s in due[:limit]]

    def count_total_sessions(self) -> int:
        with self._lock:
            return len(self._latest)

    def count_active_sessions(self) -> int:
        with self._lock:
            return sum(1 for s in self._latest.values() if s.state is QuizState.IN_PROGRESS)

    def load_events(self, session_id: str) -> List[DomainEvent]:
        with self._lock:
            return list(self._events.get(session_id, ()))
