"""
Injectable time source.

Services never call ``datetime.now()`` or ``date.today()``; they ask a
Clock.  Delivery-date validation, receipt timestamps, sequence years and
stock movement times can then be pinned in tests.
"""

from abc import ABC, abstractmethod
from datetime import UTC, date, datetime, timedelta, tzinfo

_EPOCH_OF_TESTS = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


class Clock(ABC):
    """``now()`` is always timezone-aware; ``today()`` is its calendar date."""

    @abstractmethod
    def now(self) -> datetime: ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """
    Wall-clock time.

    ``zone`` decides which calendar day ``today()`` reports, which matters
    for the "delivery date not in the past" rule near midnight.  Defaults
    to UTC.
    """

    def __init__(self, zone: tzinfo = UTC):
        self._zone = zone

    def now(self) -> datetime:
        return datetime.now(self._zone)


class DeterministicClock(Clock):
    """Frozen clock for tests; moves only when told to."""

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or _EPOCH_OF_TESTS

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def advance_days(self, days: int = 1) -> None:
        self._current += timedelta(days=days)
