"""Tests for CLI date range resolution."""

from datetime import date

import pytest

from core.dates import months_before, resolve_date_range


def test_months_before_clamps_day():
    assert months_before(date(2025, 6, 15), 18) == date(2023, 12, 15)
    assert months_before(date(2025, 3, 31), 1) == date(2025, 2, 28)
    assert months_before(date(2025, 1, 10), 1) == date(2024, 12, 10)


def test_default_range_is_lookback_to_today():
    assert resolve_date_range(None, None, today=date(2025, 6, 15)) == (
        date(2023, 12, 15),
        date(2025, 6, 15),
    )


def test_explicit_range():
    assert resolve_date_range("2025-01-01", "2025-01-31") == (date(2025, 1, 1), date(2025, 1, 31))


def test_invalid_ranges():
    with pytest.raises(ValueError):
        resolve_date_range("2025-02-30", "2025-03-01")
    with pytest.raises(ValueError):
        resolve_date_range("2025-03-02", "2025-03-01")
    with pytest.raises(ValueError):
        resolve_date_range("06/01/2025", None)
