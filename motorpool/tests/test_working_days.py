"""
Working-Day Calculator Tests.

Day 0 (the start day) never counts; weekends and holidays never count.
"""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from motorpool.app.domain.calendar.working_days import (
    working_days, processing_time, is_working_day, to_civil_date,
)

KL = ZoneInfo("Asia/Kuala_Lumpur")


def test_same_day_is_zero():
    """Submitting and processing on the same day yields zero elapsed days."""
    for day in (date(2025, 1, 1), date(2025, 1, 4), date(2025, 1, 5)):
        assert working_days(day, day) == 0


def test_wednesday_to_friday_counts_two():
    assert working_days(date(2025, 1, 1), date(2025, 1, 3)) == 2


def test_friday_to_monday_counts_only_monday():
    assert working_days(date(2025, 1, 3), date(2025, 1, 6)) == 1


def test_end_before_start_is_zero():
    assert working_days(date(2025, 1, 10), date(2025, 1, 3)) == 0


def test_weekend_only_window_is_zero():
    """Friday to Sunday: only Saturday and Sunday are in the window."""
    assert working_days(date(2025, 1, 3), date(2025, 1, 5)) == 0


def test_holidays_are_skipped():
    holidays = {date(2025, 1, 2)}
    assert working_days(date(2025, 1, 1), date(2025, 1, 3), holidays) == 1


def test_holiday_on_start_day_or_weekend_changes_nothing():
    # Start day is never counted; a Saturday holiday is already excluded
    holidays = {date(2025, 1, 1), date(2025, 1, 4)}
    assert working_days(date(2025, 1, 1), date(2025, 1, 6), holidays) == 3


def test_multi_week_span_matches_weekday_count():
    start, end = date(2025, 1, 1), date(2025, 3, 31)
    expected = sum(
        1 for ordinal in range(start.toordinal() + 1, end.toordinal() + 1)
        if date.fromordinal(ordinal).weekday() < 5
    )
    assert working_days(start, end) == expected


def test_datetimes_are_truncated_in_reference_timezone():
    """
    2025-01-02 20:00 UTC is already Friday 2025-01-03 in Kuala Lumpur.
    """
    start = datetime(2025, 1, 1, 2, 0, tzinfo=timezone.utc)  # Wed 10:00 local
    end = datetime(2025, 1, 2, 20, 0, tzinfo=timezone.utc)  # Fri 04:00 local
    
    assert working_days(start, end, tz=KL) == 2
    assert working_days(start, end, tz=timezone.utc) == 1


def test_to_civil_date_accepts_dates():
    assert to_civil_date(date(2025, 5, 1), KL) == date(2025, 5, 1)


def test_is_working_day():
    assert is_working_day(date(2025, 1, 6))
    assert not is_working_day(date(2025, 1, 5))
    assert not is_working_day(date(2025, 1, 6), {date(2025, 1, 6)})


def test_processing_time_stops_at_processed_instant():
    submitted = datetime(2025, 1, 1, 2, 0, tzinfo=timezone.utc)
    processed = datetime(2025, 1, 3, 2, 0, tzinfo=timezone.utc)
    now = datetime(2025, 2, 1, 2, 0, tzinfo=timezone.utc)
    
    result = processing_time(submitted, processed, None, now, tz=KL, sla_working_days=3)
    assert result.working_days == 2
    assert result.is_overdue is False


def test_processing_time_falls_back_to_modified_then_now():
    submitted = datetime(2025, 1, 1, 2, 0, tzinfo=timezone.utc)
    modified = datetime(2025, 1, 6, 2, 0, tzinfo=timezone.utc)
    now = datetime(2025, 1, 13, 2, 0, tzinfo=timezone.utc)
    
    assert processing_time(submitted, None, modified, now, tz=KL).working_days == 3
    
    pending = processing_time(submitted, None, None, now, tz=KL, sla_working_days=3)
    assert pending.working_days == 8
    assert pending.is_overdue is True


def test_processing_time_exactly_at_sla_is_not_overdue():
    submitted = datetime(2025, 1, 6, 2, 0, tzinfo=timezone.utc)  # Monday
    now = datetime(2025, 1, 9, 2, 0, tzinfo=timezone.utc)  # Thursday
    
    result = processing_time(submitted, None, None, now, tz=KL, sla_working_days=3)
    assert result.working_days == 3
    assert result.is_overdue is False
