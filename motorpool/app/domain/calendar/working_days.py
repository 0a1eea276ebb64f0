"""
Working-Day Calculator.

Counts working days elapsed between two instants. The start day is
"Day 0" and never counts; the window is (start, end] in civil dates.
A date counts iff it is Monday-Friday and not a designated holiday.

Pure functions, no I/O. Datetimes are converted to the supplied
reference timezone before the time of day is dropped, so callers in
different timezones get the same answer.
"""

from datetime import date, datetime, tzinfo
from typing import AbstractSet, NamedTuple, Optional, Union

DateLike = Union[date, datetime]


class ProcessingTime(NamedTuple):
    working_days: int
    is_overdue: bool


def to_civil_date(value: DateLike, tz: Optional[tzinfo] = None) -> date:
    """Truncate an instant to its calendar date in the reference timezone."""
    if isinstance(value, datetime):
        if tz is not None and value.tzinfo is not None:
            value = value.astimezone(tz)
        return value.date()
    return value


def is_working_day(day: date, holidays: AbstractSet[date] = frozenset()) -> bool:
    return day.weekday() < 5 and day not in holidays


def working_days(
    start: DateLike,
    end: DateLike,
    holidays: AbstractSet[date] = frozenset(),
    tz: Optional[tzinfo] = None,
) -> int:
    """
    Working days in (start, end].
    
    Returns 0 when end falls on or before the start day.
    
    Example:
        working_days(date(2025, 1, 1), date(2025, 1, 3)) == 2  # Thu, Fri
    """
    first = to_civil_date(start, tz)
    last = to_civil_date(end, tz)
    
    span = (last - first).days
    if span <= 0:
        return 0
    
    # Whole weeks contribute five weekdays each; walk the remainder
    full_weeks, remainder = divmod(span, 7)
    count = full_weeks * 5
    weekday = first.weekday()
    for offset in range(1, remainder + 1):
        if (weekday + offset) % 7 < 5:
            count += 1
    
    count -= sum(1 for day in holidays if first < day <= last and day.weekday() < 5)
    return count


def processing_time(
    submitted_at: datetime,
    processed_at: Optional[datetime],
    modified_at: Optional[datetime],
    now: datetime,
    holidays: AbstractSet[date] = frozenset(),
    tz: Optional[tzinfo] = None,
    sla_working_days: int = 3,
) -> ProcessingTime:
    """
    Working days a booking has spent waiting for processing.
    
    The clock stops at the processed instant, else the last modification,
    else runs to now. Overdue once the count exceeds the SLA.
    """
    stopped_at = processed_at or modified_at or now
    elapsed = working_days(submitted_at, stopped_at, holidays, tz)
    return ProcessingTime(working_days=elapsed, is_overdue=elapsed > sla_working_days)
