"""Calendar arithmetic for day-granular intervals.

Short learning steps are added as raw seconds, but review intervals are
whole calendar days: "due in 3 days" means the same local wall-clock time
three dates later, even across a DST change. The engine delegates that
arithmetic to a Calendar so timezone handling lives in one place.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo


class Calendar(Protocol):
    """Day-boundary-aware date arithmetic."""

    def add_days(self, moment: datetime, days: int) -> datetime:
        """Return ``moment`` moved ``days`` calendar days forward."""
        ...

    def days_between(self, start: datetime, end: datetime) -> int:
        """Return the number of local day boundaries from ``start`` to ``end``."""
        ...

    def local_date(self, moment: datetime) -> date:
        """Return the calendar date of ``moment`` in local time."""
        ...


@dataclass(frozen=True)
class ZoneCalendar:
    """A Calendar anchored to an IANA timezone.

    Naive datetimes are read as wall-clock time in the zone and results stay
    naive. Aware datetimes are converted into the zone for the arithmetic
    and returned in their original tzinfo.
    """

    timezone: str = "UTC"
    _zone: ZoneInfo = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_zone", ZoneInfo(self.timezone))

    def add_days(self, moment: datetime, days: int) -> datetime:
        if moment.tzinfo is None:
            return moment + timedelta(days=days)
        local = moment.astimezone(self._zone)
        # Aware arithmetic within one zone is wall-clock arithmetic
        shifted = local + timedelta(days=days)
        return shifted.astimezone(moment.tzinfo)

    def days_between(self, start: datetime, end: datetime) -> int:
        return (self.local_date(end) - self.local_date(start)).days

    def local_date(self, moment: datetime) -> date:
        if moment.tzinfo is None:
            return moment.date()
        return moment.astimezone(self._zone).date()


def round_days(value: float) -> int:
    """Round a day count half away from zero (2.5 -> 3, not banker's 2)."""
    if value < 0:
        return -round_days(-value)
    return int(math.floor(value + 0.5))
