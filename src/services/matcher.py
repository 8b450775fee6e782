"""
Email-to-booking matching and linking.

Each message is matched against the booking store by an ordered cascade of
strategies; the first strategy that finds a booking wins. Matched messages
are linked by a timeline entry, which also serves as the dedup ledger.
"""

import re
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date

from core.config import EMAIL_SUBJECT_KEYWORDS, EXCLUDED_EMAIL_LABELS, MATCH_WINDOW_DAYS
from core.database import (
    find_booking_by_email,
    find_booking_by_name,
    find_booking_by_number,
    insert_timeline_entry,
    is_source_linked,
)
from models.bookings import BookingMatch, Confidence, RecordIssue
from models.events import EmailRecord

EMAIL_SOURCE = "email"

ANGLE_ADDRESS_PATTERN = re.compile(r"<([^>]+)>")
BOOKING_NUMBER_PATTERN = re.compile(r"\b(WWT|HIST|NWT)-?(\d{4,6})\b", re.I)
SUBJECT_KEYWORD_PATTERN = re.compile(
    r"\b(?:" + "|".join(EMAIL_SUBJECT_KEYWORDS) + r")\b", re.I
)
MIN_NAME_FRAGMENT = 2


def parse_sender(sender: str) -> tuple[str, str | None]:
    """
    Split a From header into (address, display name).

    "Jane Smith <jane@example.com>" -> ("jane@example.com", "Jane Smith")
    "jane@example.com" -> ("jane@example.com", None)
    """
    match = ANGLE_ADDRESS_PATTERN.search(sender)
    if not match:
        return sender.strip().lower(), None
    address = match.group(1).strip().lower()
    name = sender[: match.start()].strip().replace('"', "")
    return address, name or None


def is_relevant_email(email: EmailRecord) -> bool:
    """Tour-related subject, and not filed under an excluded label."""
    if any(label.lower() in EXCLUDED_EMAIL_LABELS for label in email.labels):
        return False
    return bool(SUBJECT_KEYWORD_PATTERN.search(email.subject))


def _to_match(row: sqlite3.Row, confidence: Confidence, reason: str) -> BookingMatch:
    return BookingMatch(
        booking_id=row["id"],
        booking_number=row["booking_number"],
        customer_name=row["customer_name"],
        customer_email=row["customer_email"],
        tour_date=row["tour_date"],
        confidence=confidence,
        reason=reason,
    )


# =============================================================================
# MATCH STRATEGIES
# =============================================================================


def match_by_contact(
    conn: sqlite3.Connection, email: EmailRecord, window_days: int
) -> BookingMatch | None:
    address, _ = parse_sender(email.sender)
    if not address:
        return None
    row = find_booking_by_email(conn, address, email.received_at.date(), window_days)
    if row is None:
        return None
    return _to_match(row, Confidence.HIGH, "Exact contact match")


def match_by_name(
    conn: sqlite3.Connection, email: EmailRecord, window_days: int
) -> BookingMatch | None:
    _, name = parse_sender(email.sender)
    if not name:
        return None

    # Full name first, then first name alone
    fragments = [name, name.split()[0]]
    for fragment in dict.fromkeys(fragments):
        if len(fragment) < MIN_NAME_FRAGMENT:
            continue
        row = find_booking_by_name(conn, fragment, email.received_at.date(), window_days)
        if row is not None:
            return _to_match(row, Confidence.MEDIUM, f'Name match: "{fragment}"')
    return None


def match_by_booking_number(
    conn: sqlite3.Connection, email: EmailRecord, window_days: int
) -> BookingMatch | None:
    match = BOOKING_NUMBER_PATTERN.search(email.body)
    if not match:
        return None
    booking_number = f"{match.group(1).upper()}-{match.group(2)}"
    row = find_booking_by_number(conn, booking_number)
    if row is None:
        return None
    return _to_match(row, Confidence.HIGH, f"Booking number in email: {match.group(0)}")


MatchStrategy = Callable[[sqlite3.Connection, EmailRecord, int], BookingMatch | None]

# Attempted in order; a later strategy runs only when every earlier one found nothing
MATCH_STRATEGIES: list[MatchStrategy] = [
    match_by_contact,
    match_by_name,
    match_by_booking_number,
]


def find_matching_booking(
    conn: sqlite3.Connection, email: EmailRecord, window_days: int = MATCH_WINDOW_DAYS
) -> BookingMatch | None:
    """Run the match cascade; None when no strategy finds a booking."""
    for strategy in MATCH_STRATEGIES:
        found = strategy(conn, email, window_days)
        if found is not None:
            return found
    return None


def link_email_to_booking(
    conn: sqlite3.Connection, email: EmailRecord, match: BookingMatch, import_date: date
) -> int:
    """Record the link as a timeline entry dated at the message's receipt."""
    return insert_timeline_entry(
        conn,
        match.booking_id,
        event_type="email",
        description=f"Email: {email.subject[:100]}",
        payload={
            "source": EMAIL_SOURCE,
            "source_id": email.id,
            "thread_id": email.thread_id,
            "from": email.sender,
            "subject": email.subject,
            "snippet": email.snippet,
            "match_confidence": match.confidence.value,
            "match_reason": match.reason,
            "import_date": import_date.isoformat(),
        },
        created_at=email.received_at.isoformat(),
    )


# =============================================================================
# EMAIL IMPORT RUN
# =============================================================================


@dataclass
class EmailImportStats:
    emails_processed: int = 0
    duplicates_skipped: int = 0
    relevant_emails: int = 0
    matched: int = 0
    unmatched: int = 0
    errors: list[RecordIssue] = field(default_factory=list)
    unmatched_emails: list[RecordIssue] = field(default_factory=list)

    @property
    def match_rate(self) -> int:
        """Matched share of relevant emails, as a whole percentage."""
        if not self.relevant_emails:
            return 0
        return round(self.matched / self.relevant_emails * 100)

    def to_dict(self) -> dict:
        return {
            "emails_processed": self.emails_processed,
            "duplicates_skipped": self.duplicates_skipped,
            "relevant_emails": self.relevant_emails,
            "matched": self.matched,
            "unmatched": self.unmatched,
            "errors": len(self.errors),
            "match_rate": self.match_rate,
        }


def run_email_import(
    conn: sqlite3.Connection,
    emails: list[EmailRecord],
    dry_run: bool = False,
    verbose: bool = False,
    window_days: int = MATCH_WINDOW_DAYS,
    import_date: date | None = None,
) -> EmailImportStats:
    """
    Match each message to at most one booking and link it.

    Messages already in the ledger are skipped before any matching; a match
    is linked immediately, so a message is never linked twice.
    """
    import_date = import_date or date.today()
    stats = EmailImportStats(emails_processed=len(emails))

    print(f"Processing {len(emails)} emails...\n")

    for i, email in enumerate(emails, start=1):
        label = email.subject or email.id
        if verbose and (i - 1) % 10 == 0:
            print(f"Processing email {i}/{len(emails)}...")

        try:
            if is_source_linked(conn, EMAIL_SOURCE, email.id):
                stats.duplicates_skipped += 1
                continue

            if not is_relevant_email(email):
                continue
            stats.relevant_emails += 1

            match = find_matching_booking(conn, email, window_days)
            if match is None:
                stats.unmatched += 1
                address, _ = parse_sender(email.sender)
                stats.unmatched_emails.append(RecordIssue(label, f"from {address}"))
                if verbose:
                    print(f'  Unmatched: "{email.subject[:50]}" from {address}')
                continue

            if not dry_run:
                link_email_to_booking(conn, email, match, import_date)
            stats.matched += 1
            if verbose:
                print(
                    f'  Matched: "{email.subject[:50]}" -> {match.booking_number} '
                    f"({match.confidence.value}, {match.reason})"
                )
        except sqlite3.Error as e:
            stats.errors.append(RecordIssue(label, str(e)))

    return stats
