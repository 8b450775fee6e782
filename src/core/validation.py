"""
Structural validation of parsed bookings.
"""

import re
from datetime import date

from core.config import MAX_DURATION_HOURS, MAX_PARTY_SIZE, MIN_DURATION_HOURS, MIN_PARTY_SIZE
from models.bookings import ParsedBooking

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_canonical_date(value: str | None) -> bool:
    """Check for a real calendar date written as YYYY-MM-DD."""
    if not value or not ISO_DATE_PATTERN.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def validate_parsed_booking(booking: ParsedBooking) -> list[str]:
    """
    Validate a parsed booking before it is written.

    Checks:
    1. Customer name has at least 2 characters
    2. Party size is within bounds
    3. Tour date is a canonical YYYY-MM-DD date
    4. Duration is within bounds

    Returns the violated rules; an empty list means the record may be inserted.
    """
    errors = []

    if not booking.customer_name or len(booking.customer_name.strip()) < 2:
        errors.append("Customer name is required")

    if not MIN_PARTY_SIZE <= booking.party_size <= MAX_PARTY_SIZE:
        errors.append(f"Party size must be between {MIN_PARTY_SIZE} and {MAX_PARTY_SIZE}")

    if not is_canonical_date(booking.tour_date):
        errors.append("Valid tour date is required")

    if not MIN_DURATION_HOURS <= booking.duration_hours <= MAX_DURATION_HOURS:
        errors.append(
            f"Duration must be between {MIN_DURATION_HOURS} and {MAX_DURATION_HOURS} hours"
        )

    return errors
