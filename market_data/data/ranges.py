"""
Grouping of missing dates into fetch ranges.
"""

from datetime import date
from typing import List, Sequence, Tuple

# A weekend plus one holiday: Fri -> Tue is 4 days
DEFAULT_MAX_GAP_DAYS = 4


def contiguous_ranges(
    dates: Sequence[date],
    max_gap_days: int = DEFAULT_MAX_GAP_DAYS,
) -> List[Tuple[date, date]]:
    """
    Group sorted dates into (start, end) ranges to minimize provider calls.

    A range keeps growing while the next date is at most max_gap_days after the previous
    one. The grouping is greedy: dates inside a range are not checked for membership, so a
    range may span days that are not in the input (weekends, holidays, days already stored).

    Args:
        dates: Dates sorted ascending (not re-sorted here)
        max_gap_days: Largest calendar-day gap that still extends a range

    Returns:
        List of inclusive (start, end) tuples; empty for empty input

    Example:
        >>> contiguous_ranges([date(2025, 1, 13), date(2025, 1, 14), date(2025, 1, 20)])
        [(date(2025, 1, 13), date(2025, 1, 14)), (date(2025, 1, 20), date(2025, 1, 20))]
    """
    if not dates:
        return []

    ranges = []
    range_start = dates[0]
    prev = dates[0]

    for current in dates[1:]:
        if (current - prev).days > max_gap_days:
            ranges.append((range_start, prev))
            range_start = current
        prev = current

    ranges.append((range_start, prev))
    return ranges
