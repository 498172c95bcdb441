"""
Tests for grouping missing dates into fetch ranges.
"""

from datetime import date

from market_data.data import contiguous_ranges


def test_empty_input():
    assert contiguous_ranges([]) == []


def test_single_date():
    d = date(2025, 1, 15)
    assert contiguous_ranges([d]) == [(d, d)]


def test_weekend_gap_merges():
    """Fri -> Mon (3 days) stays in one range"""
    dates = [date(2025, 1, 16), date(2025, 1, 17), date(2025, 1, 20), date(2025, 1, 21)]
    assert contiguous_ranges(dates) == [(date(2025, 1, 16), date(2025, 1, 21))]


def test_gap_of_four_merges():
    """Fri -> Tue (4 days, long weekend) stays in one range"""
    dates = [date(2025, 1, 10), date(2025, 1, 14)]
    assert contiguous_ranges(dates) == [(date(2025, 1, 10), date(2025, 1, 14))]


def test_gap_of_five_splits():
    """Fri -> Wed (5 days) starts a new range"""
    dates = [date(2025, 1, 10), date(2025, 1, 15)]
    assert contiguous_ranges(dates) == [
        (date(2025, 1, 10), date(2025, 1, 10)),
        (date(2025, 1, 15), date(2025, 1, 15)),
    ]


def test_multiple_ranges():
    dates = [
        date(2025, 1, 6),
        date(2025, 1, 7),
        date(2025, 1, 20),
        date(2025, 1, 21),
        date(2025, 1, 22),
        date(2025, 2, 3),
    ]
    assert contiguous_ranges(dates) == [
        (date(2025, 1, 6), date(2025, 1, 7)),
        (date(2025, 1, 20), date(2025, 1, 22)),
        (date(2025, 2, 3), date(2025, 2, 3)),
    ]


def test_custom_max_gap():
    dates = [date(2025, 1, 13), date(2025, 1, 15)]
    assert contiguous_ranges(dates, max_gap_days=1) == [
        (date(2025, 1, 13), date(2025, 1, 13)),
        (date(2025, 1, 15), date(2025, 1, 15)),
    ]
    assert contiguous_ranges(dates, max_gap_days=2) == [(date(2025, 1, 13), date(2025, 1, 15))]
