from __future__ import annotations

# Calendar-day helpers.
#
# Numbering and the live view are both scoped to the local calendar day of
# the ticket's creation. A day covers the half-open range
# [00:00 of the day, 00:00 of the next day).

from datetime import date, datetime, time, timedelta
from typing import Callable

Clock = Callable[[], datetime]


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def in_day(moment: datetime, day: date) -> bool:
    start, end = day_bounds(day)
    return start <= moment < end


def today(clock: Clock = datetime.now) -> date:
    return clock().date()
