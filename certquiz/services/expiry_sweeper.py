"""
Background expiry of timed-out quiz sessions

A session past its time limit already reads as expired, but its stored state
stays IN_PROGRESS until something writes the SessionExpired event. The sweeper
does that periodically so the projection, the per-user active-session guard and
the admin counts stay accurate.
"""
import asyncio
import logging
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Callable, Optional

from certquiz.domain.clock import Clock
from certquiz.domain.errors import ConcurrentModificationError, CorruptedEventStreamError, RepositoryError
from certquiz.repositories.quiz_repository import QuizRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepReport:
    examined: int = 0
    expired: int = 0
    skipped: int = 0
    failed: int = 0


class ExpirySweeper:
    """
    Expires sessions in batches

    Args:
        repository_scope: Callable returning a context manager that yields a
            repository bound to its own unit of work
        clock: Time source
        batch_size: Most sessions handled per cycle
        interval_seconds: Pause between cycles in ``run_forever``
    """

    def __init__(
        self,
        repository_scope: Callable[[], AbstractContextManager],
        clock: Clock,
        batch_size: int = 100,
        interval_seconds: float = 60.0,
    ):
        self.repository_scope = repository_scope
        self.clock = clock
        self.batch_size = batch_size
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._inflight: Optional[asyncio.Future] = None

    def run_once(self) -> SweepReport:
        """Expire one batch of overdue sessions, each saved on its own"""
        with self.repository_scope() as repository:
            return self._sweep(repository)

    def _sweep(self, repository: QuizRepository) -> SweepReport:
        due = repository.find_expired_session_ids(self.clock.now(), self.batch_size)
        expired = skipped = failed = 0

        for session_id in due:
            try:
                session = repository.find_by_id(session_id)
            except CorruptedEventStreamError as e:
                logger.critical(f"Cannot expire quiz session {session_id}, its history is unreadable: {str(e)}")
                failed += 1
                continue
            except RepositoryError as e:
                logger.error(f"Failed to load quiz session {session_id} for expiry: {str(e)}")
                failed += 1
                continue
            if session is None:
                skipped += 1
                continue

            result = session.expire(self.clock)
            if not result.ok:
                # Already terminal, or not yet due by this clock
                skipped += 1
                continue
            try:
                repository.save(result.session, result.events, session.version)
                expired += 1
            except ConcurrentModificationError:
                logger.info(f"Quiz session {session.id} changed during expiry sweep, skipping")
                skipped += 1
            except RepositoryError as e:
                logger.error(f"Failed to expire quiz session {session.id}: {str(e)}")
                failed += 1

        report = SweepReport(examined=len(due), expired=expired, skipped=skipped, failed=failed)
        if due:
            logger.info(
                f"Expiry sweep: examined={report.examined}, expired={report.expired}, "
                f"skipped={report.skipped}, failed={report.failed}"
            )
        return report

    async def run_forever(self) -> None:
        logger.info(f"Expiry sweeper running every {self.interval_seconds}s (batch size {self.batch_size})")
        while True:
            self._inflight = asyncio.ensure_future(asyncio.to_thread(self.run_once))
            try:
                # Cancellation stops the loop but lets the running cycle finish its writes
                await asyncio.shield(self._inflight)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Expiry sweep cycle failed: {str(e)}", exc_info=True)
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.run_forever())
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        inflight, self._inflight = self._inflight, None
        if inflight is not None:
            if not inflight.done():
                logger.info("Waiting for the running expiry sweep to finish")
                await asyncio.wait([inflight])
            if not inflight.cancelled() and inflight.exception() is not None:
                logger.error(f"Last expiry sweep cycle failed: {str(inflight.exception())}")
        logger.info("Expiry sweeper stopped")
