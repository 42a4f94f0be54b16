"""
Wall-clock sources for timers and vote bookkeeping.

Services never call datetime.now() directly; they ask an injected Clock
so that elapsed-time arithmetic can be driven deterministically in tests.
"""

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Source of timezone-aware UTC timestamps."""

    def now(self) -> datetime: ...


class SystemClock:
    """Clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FakeClock:
    """Manually advanced clock for tests and simulations."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)

    def now(self) -> datetime:
        return self._now

    def advance(self, milliseconds: int = 0, seconds: float = 0) -> datetime:
        self._now = self._now + timedelta(milliseconds=milliseconds, seconds=seconds)
        return self._now

    def set(self, moment: datetime) -> None:
        self._now = moment


def elapsed_ms(start: datetime, end: datetime) -> int:
    """Whole milliseconds between two timestamps, never negative."""
    delta = end - start
    return max(0, int(delta / timedelta(milliseconds=1)))


__all__ = ["Clock", "SystemClock", "FakeClock", "elapsed_ms"]
