"""
Day state of an event as a tagged variant.

An event is always in exactly one of two states:

    DayOpen(day_number, since)        sales are being taken for day_number
    DayClosed(day_number, closed_at)  no day is open; day_number is the last
                                      day that ran (0 and closed_at=None when
                                      no day has ever been opened)

Callers match on the type instead of inspecting the nullable
day_open_time/day_close_time pair stored on the event row.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class DayOpen:
    day_number: int
    since: datetime

    @property
    def is_open(self) -> bool:
        return True


@dataclass(frozen=True)
class DayClosed:
    day_number: int
    closed_at: datetime | None

    @property
    def is_open(self) -> bool:
        return False

    @property
    def never_opened(self) -> bool:
        return self.day_number == 0


DayState = DayOpen | DayClosed


def day_state_from_columns(
    current_day: int,
    day_open_time: datetime | None,
    day_close_time: datetime | None,
) -> DayState:
    """
    Build the variant from the stored columns.

    A day is open when it has an open time and no close time.

    Raises:
        ValueError: If a close time is set without an open time.
    """
    if day_close_time is not None and day_open_time is None:
        raise ValueError("day_close_time is set but day_open_time is not")
    if day_open_time is not None and day_close_time is None:
        return DayOpen(day_number=current_day, since=day_open_time)
    return DayClosed(day_number=current_day, closed_at=day_close_time)
