"""
Date range helpers shared by the batch scripts.
"""

import calendar
from datetime import date, datetime

from core.config import DEFAULT_LOOKBACK_MONTHS


def months_before(d: date, months: int) -> date:
    """Same day `months` earlier, clamped to the end of shorter months."""
    month_index = d.year * 12 + (d.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(d.day, last_day))


def parse_iso_date(value: str) -> date:
    """Parse a YYYY-MM-DD string."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def resolve_date_range(
    start_str: str | None, end_str: str | None, today: date | None = None
) -> tuple[date, date]:
    """
    Resolve CLI date bounds.

    Args:
        start_str: Optional start date (YYYY-MM-DD). Defaults to 18 months before the end.
        end_str: Optional end date (YYYY-MM-DD). Defaults to today.

    Returns:
        Tuple of (start_date, end_date)

    Raises:
        ValueError: If a bound is malformed or the range is inverted
    """
    end_date = parse_iso_date(end_str) if end_str else (today or date.today())
    if start_str:
        start_date = parse_iso_date(start_str)
    else:
        start_date = months_before(end_date, DEFAULT_LOOKBACK_MONTHS)

    if start_date > end_date:
        raise ValueError(f"Start date {start_date} is after end date {end_date}")
    return start_date, end_date
