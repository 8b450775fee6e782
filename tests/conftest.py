"""
Pytest configuration and shared fixtures.
"""

import sqlite3
import sys
from datetime import date, datetime
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.database import create_schema  # noqa: E402
from models.events import Attendee, CalendarEvent, EmailRecord, EventTime  # noqa: E402


@pytest.fixture
def conn():
    """In-memory booking store with the full schema."""
    connection = sqlite3.connect(":memory:", check_same_thread=False)
    connection.row_factory = sqlite3.Row
    connection.execute("PRAGMA foreign_keys = ON")
    create_schema(connection)
    yield connection
    connection.close()


@pytest.fixture
def make_event():
    """Build a CalendarEvent; timed when start/end datetimes are given, else all-day."""

    def _make_event(
        title: str = "Smith Party - 6 guests",
        day: date = date(2025, 6, 1),
        start: datetime | None = None,
        end: datetime | None = None,
        description: str | None = None,
        location: str | None = None,
        attendees: tuple[str, ...] = (),
        event_id: str | None = None,
    ) -> CalendarEvent:
        if start is not None:
            start_time = EventTime(date_time=start)
            end_time = EventTime(date_time=end) if end else EventTime()
        else:
            start_time = EventTime(day=day)
            end_time = EventTime(day=day)
        return CalendarEvent(
            id=event_id or f"evt-{title.lower().replace(' ', '-')}-{day.isoformat()}",
            title=title,
            start=start_time,
            end=end_time,
            description=description,
            location=location,
            attendees=tuple(Attendee(email=email) for email in attendees),
        )

    return _make_event


@pytest.fixture
def make_email():
    """Build an EmailRecord."""
    counter = iter(range(1, 10_000))

    def _make_email(
        subject: str = "Wine tour booking confirmation",
        sender: str = "Jane Smith <jane@example.com>",
        received_at: datetime = datetime(2025, 6, 3, 9, 30),
        body: str = "",
        labels: tuple[str, ...] = (),
        email_id: str | None = None,
    ) -> EmailRecord:
        message_id = email_id or f"msg-{next(counter)}"
        return EmailRecord(
            id=message_id,
            thread_id=f"thread-{message_id}",
            subject=subject,
            sender=sender,
            to="tours@wallawalla.travel",
            received_at=received_at,
            snippet=body[:80],
            body=body,
            labels=labels,
        )

    return _make_email


@pytest.fixture
def add_booking(conn):
    """Insert a booking row directly; returns its id."""
    counter = iter(range(1, 10_000))

    def _add_booking(
        customer_name: str = "Smith",
        tour_date: str = "2025-06-01",
        customer_email: str | None = None,
        booking_number: str | None = None,
        status: str = "completed",
        driver_id: int | None = None,
        vehicle_id: int | None = None,
        time_card_id: int | None = None,
    ) -> int:
        cursor = conn.execute(
            """
            INSERT INTO bookings (
                booking_number, customer_name, customer_email, party_size, tour_date,
                status, driver_id, vehicle_id, time_card_id
            ) VALUES (?, ?, ?, 2, ?, ?, ?, ?, ?)
            """,
            (
                booking_number or f"WWT-{10000 + next(counter)}",
                customer_name,
                customer_email,
                tour_date,
                status,
                driver_id,
                vehicle_id,
                time_card_id,
            ),
        )
        conn.commit()
        return cursor.lastrowid

    return _add_booking


@pytest.fixture
def add_driver(conn):
    """Insert a driver and return its id."""

    def _add_driver(name: str = "Dana Driver") -> int:
        cursor = conn.execute("INSERT INTO users (name, role) VALUES (?, 'driver')", (name,))
        conn.commit()
        return cursor.lastrowid

    return _add_driver


@pytest.fixture
def add_vehicle(conn):
    def _add_vehicle(vehicle_number: str = "Sprinter 1") -> int:
        cursor = conn.execute(
            "INSERT INTO vehicles (vehicle_number) VALUES (?)", (vehicle_number,)
        )
        conn.commit()
        return cursor.lastrowid

    return _add_vehicle


@pytest.fixture
def add_time_card(conn):
    def _add_time_card(driver_id: int, tour_date: str, vehicle_id: int | None = None) -> int:
        cursor = conn.execute(
            """
            INSERT INTO time_cards (driver_id, vehicle_id, date, clock_in_time, clock_out_time)
            VALUES (?, ?, ?, ?, ?)
            """,
            (driver_id, vehicle_id, tour_date, f"{tour_date} 08:30:00", f"{tour_date} 17:00:00"),
        )
        conn.commit()
        return cursor.lastrowid

    return _add_time_card


@pytest.fixture
def add_inspection(conn):
    def _add_inspection(
        driver_id: int, tour_date: str, inspection_type: str, vehicle_id: int | None = None
    ) -> int:
        hour = "08:45:00" if inspection_type == "pre_trip" else "16:45:00"
        cursor = conn.execute(
            "INSERT INTO inspections (driver_id, vehicle_id, type, created_at) VALUES (?, ?, ?, ?)",
            (driver_id, vehicle_id, inspection_type, f"{tour_date} {hour}"),
        )
        conn.commit()
        return cursor.lastrowid

    return _add_inspection
