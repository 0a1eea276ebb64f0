"""
Trip interval resolution.

Requesters enter a departure date and a return date, each with an
optional time of day, as civil values in the reference timezone. Range
queries run on the resulting half-open UTC interval [departure_at, return_at).

A missing departure time means the start of the departure day. A missing
return time means the whole return day is booked, so the interval ends
at 00:00 of the following day.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Tuple


def local_instant(day: date, at: Optional[time], tz: tzinfo) -> datetime:
    """UTC instant of a civil date and time in `tz`."""
    return datetime.combine(day, at or time.min, tzinfo=tz).astimezone(timezone.utc)


def trip_interval(
    departure_date: date,
    departure_time: Optional[time],
    return_date: date,
    return_time: Optional[time],
    tz: tzinfo,
) -> Tuple[datetime, datetime]:
    departure_at = local_instant(departure_date, departure_time, tz)
    if return_time is None:
        return_at = local_instant(return_date + timedelta(days=1), None, tz)
    else:
        return_at = local_instant(return_date, return_time, tz)
    return departure_at, return_at


def day_window(start_day: date, end_day: date, tz: tzinfo) -> Tuple[datetime, datetime]:
    """Half-open UTC window covering whole civil days start_day..end_day."""
    return local_instant(start_day, None, tz), local_instant(end_day + timedelta(days=1), None, tz)
