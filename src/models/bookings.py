"""
Booking-side models: parse confidence, parsed and persisted bookings,
timeline entries and email matches.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from models.events import CalendarEvent


class Confidence(str, Enum):
    """Trust in a parsed or matched record. LOW routes to human review."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]


_CONFIDENCE_RANK = {Confidence.LOW: 0, Confidence.MEDIUM: 1, Confidence.HIGH: 2}


class ConfidenceTracker:
    """
    Downgrade-only confidence accumulator.

    Starts at HIGH (or the given level) and can only move down the
    HIGH > MEDIUM > LOW lattice; a downgrade to a higher level is a no-op.
    """

    def __init__(self, start: Confidence = Confidence.HIGH):
        self._level = start

    @property
    def level(self) -> Confidence:
        return self._level

    def downgrade(self, to: Confidence) -> Confidence:
        if to.rank < self._level.rank:
            self._level = to
        return self._level


@dataclass(frozen=True)
class ParsedBooking:
    """Structured candidate inferred from one calendar event. Never edited in place."""

    customer_name: str
    party_size: int
    tour_date: str  # YYYY-MM-DD
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    duration_hours: float
    source_event: CalendarEvent
    confidence: Confidence
    customer_email: str | None = None
    customer_phone: str | None = None
    pickup_location: str | None = None
    dropoff_location: str | None = None
    stops: tuple[str, ...] = ()
    special_requests: str | None = None
    driver_notes: str | None = None
    warnings: tuple[str, ...] = ()

    @property
    def needs_review(self) -> bool:
        return self.confidence is Confidence.LOW


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing one event: a booking, or an error message."""

    booking: ParsedBooking | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.booking is not None

    @property
    def needs_review(self) -> bool:
        # Failed parses always need a human
        return self.booking is None or self.booking.needs_review


@dataclass
class BookingRecord:
    """Row of the bookings table as read by the compliance linker."""

    id: int
    booking_number: str
    customer_name: str
    tour_date: str
    status: str
    driver_id: int | None = None
    driver_name: str | None = None
    vehicle_id: int | None = None
    vehicle_name: str | None = None
    time_card_id: int | None = None
    customer_email: str | None = None
    pickup_location: str | None = None


@dataclass(frozen=True)
class TimelineEntry:
    """Append-only audit row; payload["source_id"] is the dedup key."""

    booking_id: int
    event_type: str
    description: str
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: str | None = None


@dataclass(frozen=True)
class BookingMatch:
    """Booking chosen for one email message. Computed fresh on every attempt."""

    booking_id: int
    booking_number: str
    customer_name: str
    tour_date: str
    confidence: Confidence
    reason: str
    customer_email: str | None = None


@dataclass(frozen=True)
class RecordIssue:
    """A per-record problem or review item, labelled with the record's title or subject."""

    label: str
    message: str
