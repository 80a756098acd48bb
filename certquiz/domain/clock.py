"""
Time sources for the session engine
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol


def ensure_utc(moment: datetime) -> datetime:
    """Return ``moment`` as an aware UTC datetime (naive values are taken as UTC)"""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall-clock time in UTC"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Clock that only moves when told to

    Used by tests and by tooling that needs to replay commands at a known time.
    """

    DEFAULT_START = datetime(2024, 1, 1, 9, 0, 0, tzinfo=timezone.utc)

    def __init__(self, start: Optional[datetime] = None):
        self._now = ensure_utc(start) if start is not None else self.DEFAULT_START

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float = 0, **kwargs) -> datetime:
        self._now = self._now + timedelta(seconds=seconds, **kwargs)
        return self._now

    def set(self, moment: datetime) -> None:
        self._now = ensure_utc(moment)
