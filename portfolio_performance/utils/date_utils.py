# portfolio_performance/utils/date_utils.py
"""
Calendar helpers shared by the snapshot service and analytics.

All snapshots are keyed by calendar day (weekends included), so these
helpers work on plain `datetime.date` values and never on business days.

Usage:
    from portfolio_performance.utils.date_utils import each_day, iso_week_key

    for day in each_day(start_date, end_date):
        ...
"""

from collections.abc import Iterator
from datetime import date, datetime, timedelta


def each_day(start_date: date, end_date: date) -> Iterator[date]:
    """
    Yield every calendar day in a range, both ends inclusive.

    Yields nothing when start_date is after end_date.

    Example:
        >>> list(each_day(date(2024, 1, 30), date(2024, 2, 1)))
        [date(2024, 1, 30), date(2024, 1, 31), date(2024, 2, 1)]
    """
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def days_between(start_date: date, end_date: date) -> int:
    """Whole calendar days from start_date to end_date (negative if reversed)."""
    return (end_date - start_date).days


def to_date(value: date | datetime | str) -> date:
    """
    Normalize a date-like value to a calendar day.

    Datetimes are truncated to their date; strings must be ISO formatted.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def iso_week_key(d: date) -> tuple[int, int]:
    """ISO (year, week) a day belongs to; weeks start on Monday."""
    iso = d.isocalendar()
    return iso[0], iso[1]


def month_key(d: date) -> tuple[int, int]:
    """(year, month) a day belongs to."""
    return d.year, d.month
