"""
Calendar event parser.

Turns one CalendarEvent into a ParsedBooking (or a failed ParseResult) by
combining the field extractors. Pure: no I/O, no side effects.
"""

from datetime import datetime, timedelta

from core.config import (
    ALL_DAY_DURATION_HOURS,
    ALL_DAY_START_TIME,
    COMPANY_EMAIL_DOMAINS,
    DEFAULT_PARTY_SIZE,
)
from core.errors import EventParseError
from models.bookings import Confidence, ConfidenceTracker, ParsedBooking, ParseResult
from models.events import Attendee, CalendarEvent
from services.extraction import (
    extract_customer_name,
    extract_driver_notes,
    extract_dropoff,
    extract_email,
    extract_party_size,
    extract_phone,
    extract_pickup,
    extract_special_requests,
    extract_venues,
)

PARTY_SIZE_WARNING = f"Party size not found, defaulting to {DEFAULT_PARTY_SIZE}"
START_TIME_WARNING = f"All-day event, start time defaulted to {ALL_DAY_START_TIME}"
DURATION_WARNING = f"Duration not available, defaulting to {ALL_DAY_DURATION_HOURS:g} hours"
NO_CONTACT_WARNING = "No contact information found"


def is_company_address(email: str) -> bool:
    domain = email.rsplit("@", 1)[-1].lower()
    return any(domain == d or domain.endswith("." + d) for d in COMPANY_EMAIL_DOMAINS)


def first_customer_attendee(attendees: tuple[Attendee, ...]) -> Attendee | None:
    """First attendee whose address is not on a company domain."""
    for attendee in attendees:
        if attendee.email and not is_company_address(attendee.email):
            return attendee
    return None


def _hhmm(value: datetime) -> str:
    return value.strftime("%H:%M")


def resolve_schedule(event: CalendarEvent) -> tuple[str, str, str, float, list[str]]:
    """
    Resolve tour date, start/end time and duration.

    Timestamps win when present. Date-only (all-day) events start at the
    default hour; duration is a timestamp delta when both ends are timestamps,
    otherwise the default.

    Returns:
        Tuple of (tour_date, start_time, end_time, duration_hours, warnings)

    Raises:
        EventParseError: If the event has no start date at all
    """
    warnings = []
    start = event.start
    end = event.end

    if start.date_time is not None:
        tour_date = start.date_time.date().isoformat()
        start_dt = start.date_time
    elif start.day is not None:
        tour_date = start.day.isoformat()
        start_dt = datetime.combine(
            start.day, datetime.strptime(ALL_DAY_START_TIME, "%H:%M").time()
        )
        warnings.append(START_TIME_WARNING)
    else:
        raise EventParseError("No date found in event", event_id=event.id)

    if start.date_time is not None and end.date_time is not None:
        delta = end.date_time - start.date_time
        duration_hours = round(delta.total_seconds() / 3600, 1)
        end_time = _hhmm(end.date_time)
    else:
        duration_hours = ALL_DAY_DURATION_HOURS
        end_time = _hhmm(start_dt + timedelta(hours=duration_hours))
        warnings.append(DURATION_WARNING)

    return tour_date, _hhmm(start_dt), end_time, duration_hours, warnings


def parse_calendar_event(event: CalendarEvent) -> ParseResult:
    """
    Parse a calendar event into a booking candidate.

    Only a missing customer name (or a missing date) fails the parse.
    Confidence starts high, drops to medium when any field was defaulted and
    to low when neither email nor phone could be found.
    """
    warnings: list[str] = []
    confidence = ConfidenceTracker()

    customer_name = extract_customer_name(event.title)
    if not customer_name:
        return ParseResult(error=f'Could not extract customer name from: "{event.title}"')

    description = event.description or ""

    party_size = extract_party_size(f"{event.title}\n{description}")
    if party_size is None:
        party_size = DEFAULT_PARTY_SIZE
        warnings.append(PARTY_SIZE_WARNING)

    try:
        tour_date, start_time, end_time, duration_hours, schedule_warnings = resolve_schedule(
            event
        )
    except EventParseError as e:
        return ParseResult(error=str(e))
    warnings.extend(schedule_warnings)

    # Contact info: free text first, then the first non-company attendee
    customer_email = extract_email(description)
    customer_phone = extract_phone(description)
    if not customer_email:
        attendee = first_customer_attendee(event.attendees)
        if attendee:
            customer_email = attendee.email

    if warnings:
        confidence.downgrade(Confidence.MEDIUM)
    if not customer_email and not customer_phone:
        confidence.downgrade(Confidence.LOW)
        warnings.append(NO_CONTACT_WARNING)

    booking = ParsedBooking(
        customer_name=customer_name,
        customer_email=customer_email,
        customer_phone=customer_phone,
        party_size=party_size,
        tour_date=tour_date,
        start_time=start_time,
        end_time=end_time,
        duration_hours=duration_hours,
        pickup_location=event.location or extract_pickup(description),
        dropoff_location=extract_dropoff(description),
        stops=tuple(extract_venues(description)),
        special_requests=extract_special_requests(description),
        driver_notes=extract_driver_notes(description),
        source_event=event,
        confidence=confidence.level,
        warnings=tuple(warnings),
    )
    return ParseResult(booking=booking)


def format_booking_preview(booking: ParsedBooking) -> str:
    """Format a parsed booking for display."""
    lines = [
        f"Customer: {booking.customer_name}",
        f"Date: {booking.tour_date}",
        f"Time: {booking.start_time} - {booking.end_time} ({booking.duration_hours:g} hours)",
        f"Party Size: {booking.party_size}",
    ]

    if booking.customer_email:
        lines.append(f"Email: {booking.customer_email}")
    if booking.customer_phone:
        lines.append(f"Phone: {booking.customer_phone}")
    if booking.pickup_location:
        lines.append(f"Pickup: {booking.pickup_location}")
    if booking.stops:
        lines.append(f"Stops: {', '.join(booking.stops)}")
    lines.append(f"Confidence: {booking.confidence.value}")
    if booking.warnings:
        lines.append(f"Warnings: {', '.join(booking.warnings)}")

    return "\n".join(lines)
