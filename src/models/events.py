"""
Data models for external records (calendar events, email messages).

Both are read-only snapshots of what the source returned; the services
never write back to the source.
"""

from dataclasses import dataclass, field
from datetime import date, datetime


@dataclass(frozen=True)
class EventTime:
    """Start or end of an event: a timestamp, or a bare date for all-day events."""

    date_time: datetime | None = None
    day: date | None = None

    @property
    def is_date_only(self) -> bool:
        return self.date_time is None and self.day is not None


@dataclass(frozen=True)
class Attendee:
    """Calendar attendee or organizer."""

    email: str
    display_name: str | None = None


@dataclass(frozen=True)
class CalendarEvent:
    """Calendar event as returned by the external source."""

    id: str
    title: str
    start: EventTime
    end: EventTime
    description: str | None = None
    location: str | None = None
    attendees: tuple[Attendee, ...] = ()
    creator: Attendee | None = None


@dataclass(frozen=True)
class EmailRecord:
    """Email message as returned by the external mailbox."""

    id: str
    thread_id: str
    subject: str
    sender: str  # "Name <address>" or bare address
    to: str
    received_at: datetime
    snippet: str = ""
    body: str = ""
    labels: tuple[str, ...] = field(default_factory=tuple)
