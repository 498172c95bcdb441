"""
Business-day calendar utilities.

Weekends are excluded; exchange holidays are not known here, so holiday dates show up
as expected trading days (a provider simply returns no candles for them).
"""

from datetime import date, timedelta
from typing import List

# Mon=0 ... Fri=4
_WEEKEND = frozenset({5, 6})


def is_weekday(day: date) -> bool:
    """Check if a date falls Monday-Friday"""
    return day.weekday() not in _WEEKEND


def weekdays(start: date, end: date) -> List[date]:
    """
    Return all weekdays (Mon-Fri) in the inclusive range [start, end].

    Args:
        start: First date of the range
        end: Last date of the range (inclusive)

    Returns:
        Ascending list of dates; empty if start > end

    Example:
        >>> weekdays(date(2025, 1, 13), date(2025, 1, 19))  # Mon..Sun
        [date(2025, 1, 13), ..., date(2025, 1, 17)]
    """
    days = []
    current = start
    while current <= end:
        if is_weekday(current):
            days.append(current)
        current += timedelta(days=1)
    return days
