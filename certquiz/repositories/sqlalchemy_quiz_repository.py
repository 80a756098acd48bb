"""
SQLAlchemy-backed quiz repository

Each save writes, in one transaction:
- the new event rows
- the quiz_sessions projection row (inserted for a new session, otherwise
  updated only if its version still equals the expected one)
- a snapshot when the version crosses the snapshot interval or the session ends
"""
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
import logging

from certquiz.domain.clock import ensure_utc
from certquiz.domain.errors import ActiveSessionError, ConcurrentModificationError, RepositoryError
from certquiz.domain.events import DomainEvent
from certquiz.domain.session import QuizSession
from certquiz.domain.state import QuizState
from certquiz.models.quiz_session import QuizSessionEvent, QuizSessionRecord, QuizSessionSnapshot
from certquiz.repositories.quiz_repository import QuizRepository

logger = logging.getLogger(__name__)


def event_from_record(record: QuizSessionEvent) -> DomainEvent:
    return DomainEvent.from_stored(
        event_id=record.event_id,
        event_type=record.event_type,
        session_id=record.session_id,
        version=record.version,
        occurred_at=record.occurred_at,
        payload=record.payload,
    )


class SqlAlchemyQuizRepository(QuizRepository):
    """Event store plus projection and snapshot tables"""

    def __init__(self, db: Session, snapshot_interval: int = 10):
        self.db = db
        self.snapshot_interval = snapshot_interval

    def find_by_id(self, session_id: str) -> Optional[QuizSession]:
        try:
            snapshot = self.db.query(QuizSessionSnapshot).filter(
                QuizSessionSnapshot.session_id == session_id
            ).order_by(QuizSessionSnapshot.version.desc()).first()

            query = self.db.query(QuizSessionEvent).filter(QuizSessionEvent.session_id == session_id)
            baseline = None
            if snapshot:
                baseline = QuizSession.from_snapshot(snapshot.state)
                query = query.filter(QuizSessionEvent.version > snapshot.version)
            records = query.order_by(QuizSessionEvent.version).all()
        except SQLAlchemyError as e:
            raise RepositoryError("find_by_id", str(e)) from e

        return QuizSession.replay([event_from_record(r) for r in records], baseline=baseline)

    def save(self, session: QuizSession, events: Sequence[DomainEvent], expected_version: int) -> None:
        batch = self.check_batch(session, events, expected_version)
        if not batch:
            return

        try:
            if expected_version == 0:
                existing = self._stored_version(session.id)
                if existing is not None:
                    raise ConcurrentModificationError(session.id, expected_version, existing)
                self.db.add(self._new_record(session))
            else:
                updated = self.db.query(QuizSessionRecord).filter(
                    QuizSessionRecord.id == session.id,
                    QuizSessionRecord.version == expected_version,
                ).update(self._record_values(session), synchronize_session=False)
                if updated != 1:
                    self.db.rollback()
                    raise ConcurrentModificationError(
                        session.id, expected_version, self._stored_version(session.id)
                    )

            for event in batch:
                self.db.add(QuizSessionEvent(
                    session_id=event.session_id,
                    version=event.version,
                    event_id=event.event_id,
                    event_type=event.event_type.value,
                    payload=event.payload,
                    occurred_at=event.occurred_at,
                ))

            if self._needs_snapshot(session, batch):
                self.db.add(QuizSessionSnapshot(
                    session_id=session.id,
                    version=session.version,
                    state=session.to_snapshot(),
                ))

            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if expected_version == 0 and session.state is QuizState.IN_PROGRESS:
                active = self.find_active_by_user(session.user_id)
                if active is not None and active.id != session.id:
                    raise ActiveSessionError(session.user_id, active.id) from e
            logger.warning(f"Version conflict saving quiz session {session.id} at version {expected_version}")
            raise ConcurrentModificationError(
                session.id, expected_version, self._stored_version(session.id)
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save quiz session {session.id}: {str(e)}")
            raise RepositoryError("save", str(e)) from e

        logger.debug(f"Saved quiz session {session.id} at version {session.version} ({len(batch)} events)")

    def find_active_by_user(self, user_id: str) -> Optional[QuizSession]:
        try:
            record = self.db.query(QuizSessionRecord).filter(
                QuizSessionRecord.user_id == user_id,
                QuizSessionRecord.state == QuizState.IN_PROGRESS.value,
            ).first()
        except SQLAlchemyError as e:
            raise RepositoryError("find_active_by_user", str(e)) from e
        return self.find_by_id(record.id) if record else None

    def find_expired_session_ids(self, now: datetime, limit: int) -> List[str]:
        try:
            return [
                row.id for row in self.db.query(QuizSessionRecord.id).filter(
                    QuizSessionRecord.state == QuizState.IN_PROGRESS.value,
                    QuizSessionRecord.expires_at.isnot(None),
                    QuizSessionRecord.expires_at <= ensure_utc(now),
                ).order_by(QuizSessionRecord.expires_at).limit(limit).all()
            ]
        except SQLAlchemyError as e:
            raise RepositoryError("find_expired_session_ids", str(e)) from e

    def count_total_sessions(self) -> int:
        try:
            return self.db.query(func.count(QuizSessionRecord.id)).scalar() or 0
        except SQLAlchemyError as e:
            raise RepositoryError("count_total_sessions", str(e)) from e

    def count_active_sessions(self) -> int:
        try:
            return self.db.query(func.count(QuizSessionRecord.id)).filter(
                QuizSessionRecord.state == QuizState.IN_PROGRESS.value
            ).scalar() or 0
        except SQLAlchemyError as e:
            raise RepositoryError("count_active_sessions", str(e)) from e

    def load_events(self, session_id: str) -> List[DomainEvent]:
        try:
            records = self.db.query(QuizSessionEvent).filter(
                QuizSessionEvent.session_id == session_id
            ).order_by(QuizSessionEvent.version).all()
        except SQLAlchemyError as e:
            raise RepositoryError("load_events", str(e)) from e
        return [event_from_record(r) for r in records]

    def _new_record(self, session: QuizSession) -> QuizSessionRecord:
        return QuizSessionRecord(
            id=session.id,
            user_id=session.user_id,
            exam_type=session.config.exam_type.value,
            question_count=session.config.question_count,
            started_at=session.started_at,
            expires_at=session.expires_at,
            **self._record_values(session),
        )

    @staticmethod
    def _record_values(session: QuizSession) -> dict:
        return {
            "state": session.state.value,
            "completed_at": session.completed_at,
            "version": session.version,
        }

    def _needs_snapshot(self, session: QuizSession, batch: Sequence[DomainEvent]) -> bool:
        if session.is_terminal:
            return True
        if self.snapshot_interval <= 0:
            return False
        return any(event.version % self.snapshot_interval == 0 for event in batch)

    def _stored_version(self, session_id: str) -> Optional[int]:
        try:
            return self.db.query(QuizSessionRecord.version).filter(
                QuizSessionRecord.id == session_id
            ).scalar()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Could not read stored version of quiz session {session_id}: {str(e)}")
            raise RepositoryError("stored_version", str(e)) from e
