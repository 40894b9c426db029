"""
Injectable time source.

Workflow services stamp ``submitted_at``, ``approved_at``, ``rejected_at``,
``converted_at`` and the order status audit lines from a ``Clock``, and the
numbering period (``202510``) comes from the same clock.  Tests pin it with
``DeterministicClock``.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta

DEFAULT_TEST_TIME = datetime(2025, 10, 1, 12, 0, tzinfo=UTC)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware."""
        ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    ``set_time`` jumps to an absolute instant; ``advance`` moves forward
    from wherever the clock currently is.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or DEFAULT_TEST_TIME

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)
