"""
Clock -- injected source of the current time.

Workflow services stamp ``status_changed_at``, ``certified_at`` and
``deleted_at`` from a Clock, and the audit recorder stamps
``occurred_at`` from the same one.  Tests swap in ``DeterministicClock``
so history ordering and reporting windows are reproducible.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

#: Start of every ``DeterministicClock`` unless the test picks another.
DEFAULT_START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Anything that can say what time it is, in UTC."""

    @abstractmethod
    def now_utc(self) -> datetime:
        """Timezone-aware current time in UTC."""


class SystemClock(Clock):
    """Wall-clock time."""

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    Repeated ``now_utc()`` calls return the same instant, so two transitions
    in one test share a timestamp unless the test calls ``advance`` between
    them.  Audit history is then ordered by ``seq`` alone.
    """

    def __init__(self, start: datetime | None = None):
        start = start or DEFAULT_START
        if start.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware start")
        self._current = start.astimezone(timezone.utc)

    def now_utc(self) -> datetime:
        return self._current

    def advance(self, seconds: float = 1) -> datetime:
        """Move forward ``seconds`` (never backwards) and return the new time."""
        if seconds < 0:
            raise ValueError("clock cannot move backwards")
        self._current += timedelta(seconds=seconds)
        return self._current
