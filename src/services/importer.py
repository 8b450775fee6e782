"""
Calendar import orchestration.

One run: filter the fetched events down to tours, then per event check the
booking store, parse, validate and insert. A failure on one event is
recorded in the run's error list and the loop moves on.
"""

import re
import sqlite3
from dataclasses import dataclass, field
from datetime import date

from core.config import (
    IMPORT_BOOKING_PREFIX,
    IMPORT_SOURCE_TAG,
    IMPORTED_STATUS,
    INTERNAL_KEYWORDS,
    TOUR_KEYWORDS,
)
from core.database import (
    booking_exists,
    insert_booking,
    insert_timeline_entry,
    is_source_linked,
    next_import_booking_number,
)
from core.validation import validate_parsed_booking
from models.bookings import ParsedBooking, RecordIssue
from models.events import CalendarEvent
from services.extraction import title_name_prefix
from services.parser import format_booking_preview, is_company_address, parse_calendar_event

CALENDAR_SOURCE = "calendar"


def _keyword_pattern(keywords: tuple[str, ...], whole_word: bool) -> re.Pattern:
    # Whole words allow a plural "s"; otherwise any word starting with a keyword
    suffix = r"s?\b" if whole_word else ""
    return re.compile(r"\b(?:" + "|".join(re.escape(k) for k in keywords) + ")" + suffix, re.I)


TOUR_KEYWORD_PATTERN = _keyword_pattern(TOUR_KEYWORDS, whole_word=False)
INTERNAL_KEYWORD_PATTERN = _keyword_pattern(INTERNAL_KEYWORDS, whole_word=True)


def is_relevant_event(event: CalendarEvent) -> bool:
    """
    Decide whether an event looks like a customer tour.

    Internal keywords exclude; tour keywords include; otherwise an attendee
    outside the company domains is taken as a customer.
    """
    text = f"{event.title} {event.description or ''}"

    if INTERNAL_KEYWORD_PATTERN.search(text):
        return False
    if TOUR_KEYWORD_PATTERN.search(text):
        return True
    return any(a.email and not is_company_address(a.email) for a in event.attendees)


@dataclass
class ImportStats:
    total_events: int = 0
    relevant_events: int = 0
    already_imported: int = 0
    imported: int = 0
    failed_parses: int = 0
    failed_validations: int = 0
    failed_inserts: int = 0
    failed_lookups: int = 0
    needs_review: int = 0
    errors: list[RecordIssue] = field(default_factory=list)
    review_queue: list[RecordIssue] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Counters for the run ledger."""
        return {
            "total_events": self.total_events,
            "relevant_events": self.relevant_events,
            "already_imported": self.already_imported,
            "imported": self.imported,
            "failed_parses": self.failed_parses,
            "failed_validations": self.failed_validations,
            "failed_inserts": self.failed_inserts,
            "failed_lookups": self.failed_lookups,
            "needs_review": self.needs_review,
        }


def is_already_imported(conn: sqlite3.Connection, event: CalendarEvent) -> bool:
    """Ledger hit on the event id, or an existing booking on its date with its name prefix."""
    if is_source_linked(conn, CALENDAR_SOURCE, event.id):
        return True

    tour_date = None
    if event.start.date_time is not None:
        tour_date = event.start.date_time.date().isoformat()
    elif event.start.day is not None:
        tour_date = event.start.day.isoformat()
    if tour_date is None:
        return False
    return booking_exists(conn, tour_date, title_name_prefix(event.title))


def save_booking(conn: sqlite3.Connection, booking: ParsedBooking, import_date: date) -> int:
    """Insert the booking and its import timeline entry; returns the booking id."""
    booking_number = next_import_booking_number(conn, IMPORT_BOOKING_PREFIX)
    booking_id = insert_booking(
        conn, booking, booking_number, source_tag=IMPORT_SOURCE_TAG, status=IMPORTED_STATUS
    )
    insert_timeline_entry(
        conn,
        booking_id,
        event_type="calendar_import",
        description=f"Imported from calendar: {booking.source_event.title}",
        payload={
            "source": CALENDAR_SOURCE,
            "source_id": booking.source_event.id,
            "import_date": import_date.isoformat(),
            "parse_confidence": booking.confidence.value,
            "warnings": list(booking.warnings),
            "stops": list(booking.stops),
        },
    )
    return booking_id


def _indent(text: str, prefix: str = "       ") -> str:
    return "\n".join(f"{prefix}{line}" for line in text.split("\n"))


def run_calendar_import(
    conn: sqlite3.Connection,
    events: list[CalendarEvent],
    dry_run: bool = False,
    verbose: bool = False,
    limit: int | None = None,
    import_date: date | None = None,
) -> ImportStats:
    """
    Import tour events into the booking store.

    Args:
        conn: Open booking store connection
        events: All events fetched for the window
        dry_run: Run every step except the writes
        verbose: Print one trace line per event
        limit: Process at most this many relevant events
        import_date: Date recorded in timeline payloads (default: today)

    Returns:
        Counters and the error / review lists for the run
    """
    import_date = import_date or date.today()
    stats = ImportStats(total_events=len(events))

    relevant = [event for event in events if is_relevant_event(event)]
    stats.relevant_events = len(relevant)
    print(f"Filtered to {len(relevant)} tour-related events\n")

    to_process = relevant[:limit] if limit else relevant

    for i, event in enumerate(to_process, start=1):
        label = event.title or "Untitled Event"
        if verbose:
            print(f"[{i}/{len(to_process)}] Processing: {label}")

        try:
            already_imported = is_already_imported(conn, event)
        except sqlite3.Error as e:
            stats.failed_lookups += 1
            stats.errors.append(RecordIssue(label, str(e)))
            if verbose:
                print(f"  -> Database error: {e}")
            continue

        if already_imported:
            stats.already_imported += 1
            if verbose:
                print("  -> Already imported, skipping")
            continue

        result = parse_calendar_event(event)
        if not result.success:
            stats.failed_parses += 1
            stats.errors.append(RecordIssue(label, result.error or "Unknown parse error"))
            if verbose:
                print(f"  -> Parse failed: {result.error}")
            continue

        booking = result.booking
        validation_errors = validate_parsed_booking(booking)
        if validation_errors:
            stats.failed_validations += 1
            stats.errors.append(RecordIssue(label, ", ".join(validation_errors)))
            if verbose:
                print(f"  -> Validation failed: {', '.join(validation_errors)}")
            continue

        # Low confidence is queued for review and still imported
        if result.needs_review:
            stats.needs_review += 1
            reason = ", ".join(booking.warnings)
            stats.review_queue.append(RecordIssue(label, reason))
            if verbose:
                print(f"  -> Added to review queue: {reason}")

        if dry_run:
            stats.imported += 1
            if verbose:
                print("  -> Would import:")
                print(_indent(format_booking_preview(booking)))
            continue

        try:
            booking_id = save_booking(conn, booking, import_date)
        except sqlite3.Error as e:
            stats.failed_inserts += 1
            stats.errors.append(RecordIssue(label, str(e)))
            if verbose:
                print(f"  -> Database error: {e}")
            continue

        stats.imported += 1
        if verbose:
            print(f"  -> Imported as booking #{booking_id}")

    return stats
