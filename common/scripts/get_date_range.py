# common/scripts/get_date_range.py
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def get_week_date_range(target_date: Optional[date] = None) -> tuple[date, date, int]:
    """
    Monday, Sunday and ISO week number of the week containing target_date.

    Example:
        >>> get_week_date_range(date(2024, 1, 10))
        (date(2024, 1, 8), date(2024, 1, 14), 2)
    """
    _date = target_date or date.today()
    week_start = _date - timedelta(days=_date.weekday())
    return week_start, week_start + timedelta(days=6), _date.isocalendar()[1]


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """
    First and last instant (UTC) of a calendar day, for inclusive
    created_at BETWEEN filters driven by date-only query params.
    """
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, datetime.combine(day, time.max, tzinfo=timezone.utc)


__all__ = ["get_week_date_range", "day_bounds"]
