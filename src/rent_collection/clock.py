"""Clock abstraction so day-threshold math can run on simulated dates."""

from datetime import UTC, date, datetime, time, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo

from rent_collection.config import get_settings


class Clock(Protocol):
    """Source of the current instant and calendar day."""

    def now(self) -> datetime: ...

    def today(self) -> date: ...


class SystemClock:
    """Wall-clock time; "today" is taken in the configured timezone."""

    def __init__(self, timezone: str | None = None):
        self._tz = ZoneInfo(timezone or get_settings().timezone)

    def now(self) -> datetime:
        return datetime.now(UTC)

    def today(self) -> date:
        return datetime.now(self._tz).date()


class FixedClock:
    """A clock frozen on a given day that only moves when told to."""

    def __init__(self, current: date | datetime):
        if isinstance(current, datetime):
            self._now = current if current.tzinfo else current.replace(tzinfo=UTC)
        else:
            self._now = datetime.combine(current, time(9, 0), tzinfo=UTC)

    def now(self) -> datetime:
        return self._now

    def today(self) -> date:
        return self._now.date()

    def advance(self, days: int = 1) -> None:
        """Move the clock forward by whole days."""
        self._now += timedelta(days=days)

    def set(self, current: date) -> None:
        self._now = datetime.combine(current, self._now.timetz())
