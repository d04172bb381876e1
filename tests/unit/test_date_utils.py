"""Unit tests for date helpers"""

import pytest
from datetime import date
from pos_planner.utils.date_utils import add_days, add_months


@pytest.mark.parametrize(
    "start, months, expected",
    [
        (date(2024, 1, 31), 1, date(2024, 2, 29)),
        (date(2023, 1, 31), 1, date(2023, 2, 28)),
        (date(2024, 1, 31), 2, date(2024, 3, 31)),
        (date(2024, 3, 31), 1, date(2024, 4, 30)),
        (date(2024, 11, 15), 3, date(2025, 2, 15)),
        (date(2024, 5, 10), 0, date(2024, 5, 10)),
    ],
)
def test_add_months_clamps_to_month_end(start: date, months: int, expected: date):
    assert add_months(start, months) == expected


def test_add_months_is_computed_from_start_not_chained():
    """Jan 31 stays anchored on day 31 after passing through February"""
    start = date(2024, 1, 31)
    chained = add_months(add_months(start, 1), 1)

    assert chained == date(2024, 3, 29)
    assert add_months(start, 2) == date(2024, 3, 31)


def test_add_days_crosses_year_end():
    assert add_days(date(2024, 12, 25), 10) == date(2025, 1, 4)
