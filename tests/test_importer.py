"""Tests for the calendar import run."""

import json
import sqlite3
from datetime import date, datetime

import services.importer as importer
from core.database import is_source_linked
from services.importer import is_relevant_event, run_calendar_import


def _count(conn, table):
    return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


def _tour_events(make_event, count):
    names = ["Smith", "Davis", "Garcia", "Nguyen", "Patel", "Brown", "Lopez", "Clark", "Young", "Hill"]
    return [
        make_event(
            f"{names[i]} Party - 4 guests",
            start=datetime(2025, 6, i + 1, 10, 0),
            end=datetime(2025, 6, i + 1, 16, 0),
            description=f"{names[i].lower()}@example.com",
        )
        for i in range(count)
    ]


def test_relevance_filter(make_event):
    """Test tour keywords include, internal keywords exclude, external attendees include."""
    assert is_relevant_event(make_event("Smith Party - 6 guests"))
    assert not is_relevant_event(make_event("Staff meeting"))
    assert not is_relevant_event(make_event("Wine tour planning call"))
    assert is_relevant_event(make_event("Callahan", attendees=("callahan@example.com",)))
    assert not is_relevant_event(make_event("Dentist", attendees=("me@nwtouring.com",)))


def test_import_creates_bookings_and_ledger_entries(conn, make_event):
    events = _tour_events(make_event, 3)

    stats = run_calendar_import(conn, events, import_date=date(2025, 9, 1))

    assert stats.imported == 3
    assert _count(conn, "bookings") == 3
    numbers = [row[0] for row in conn.execute("SELECT booking_number FROM bookings ORDER BY id")]
    assert numbers == ["HIST-00001", "HIST-00002", "HIST-00003"]

    row = conn.execute("SELECT status, booking_source FROM bookings LIMIT 1").fetchone()
    assert (row["status"], row["booking_source"]) == ("completed", "calendar_import")

    entry = conn.execute("SELECT event_type, event_data FROM booking_timeline LIMIT 1").fetchone()
    payload = json.loads(entry["event_data"])
    assert entry["event_type"] == "calendar_import"
    assert payload["source"] == "calendar"
    assert payload["source_id"] == events[0].id
    assert payload["import_date"] == "2025-09-01"
    assert payload["parse_confidence"] == "high"
    assert is_source_linked(conn, "calendar", events[0].id)


def test_reimport_is_idempotent(conn, make_event):
    """Test a second run over the same window inserts nothing."""
    events = _tour_events(make_event, 5)
    run_calendar_import(conn, events)

    second = run_calendar_import(conn, events)

    assert second.imported == 0
    assert second.already_imported == 5
    assert _count(conn, "bookings") == 5
    assert _count(conn, "booking_timeline") == 5


def test_dry_run_counts_without_writing(conn, make_event, add_booking):
    """Test 10 relevant events with 3 already present preview as 7 imports and write nothing."""
    events = _tour_events(make_event, 10)
    for event in events[:3]:
        add_booking(
            customer_name=event.title.split()[0],
            tour_date=event.start.date_time.date().isoformat(),
        )

    stats = run_calendar_import(conn, events, dry_run=True)

    assert stats.relevant_events == 10
    assert stats.already_imported == 3
    assert stats.imported == 7
    assert _count(conn, "bookings") == 3
    assert _count(conn, "booking_timeline") == 0


def test_failures_are_recorded_and_run_continues(conn, make_event):
    events = [
        make_event("- 4 guests"),
        make_event(
            "Brown Party - 4 guests",
            start=datetime(2025, 6, 2, 10, 0),
            end=datetime(2025, 6, 3, 12, 0),
            description="brown@example.com",
        ),
        *_tour_events(make_event, 1),
    ]

    stats = run_calendar_import(conn, events)

    assert stats.failed_parses == 1
    assert stats.failed_validations == 1
    assert stats.imported == 1
    assert [issue.label for issue in stats.errors] == ["- 4 guests", "Brown Party - 4 guests"]
    assert "Duration must be between 1 and 24 hours" in stats.errors[1].message


def test_low_confidence_is_queued_and_imported(conn, make_event):
    """Test review queueing does not block the import."""
    event = make_event(
        "Garcia Group - 8 guests",
        start=datetime(2025, 8, 9, 10, 0),
        end=datetime(2025, 8, 9, 15, 0),
    )

    stats = run_calendar_import(conn, [event])

    assert stats.needs_review == 1
    assert stats.imported == 1
    assert stats.review_queue[0].label == "Garcia Group - 8 guests"
    assert "No contact information found" in stats.review_queue[0].message


def test_limit_applies_to_relevant_events(conn, make_event):
    events = [make_event("Staff meeting"), *_tour_events(make_event, 4)]

    stats = run_calendar_import(conn, events, limit=2)

    assert stats.total_events == 5
    assert stats.relevant_events == 4
    assert stats.imported == 2


def test_inflected_tour_keywords_are_relevant(make_event):
    """Test keywords match as word prefixes so plurals still count."""
    assert is_relevant_event(make_event("Garcia tours"))
    assert is_relevant_event(make_event("Jones - wineries day"))
    assert is_relevant_event(make_event("Lee tastings"))


def test_plural_internal_keywords_exclude(make_event):
    assert not is_relevant_event(make_event("Weekly calls with wine buyers"))
    assert not is_relevant_event(make_event("Tour staff meetings"))


def test_store_error_on_existence_check_skips_only_that_event(conn, make_event, monkeypatch):
    """Test a failed lookup is recorded and the run moves on."""
    events = _tour_events(make_event, 2)
    real_booking_exists = importer.booking_exists
    calls = []

    def flaky_booking_exists(conn, tour_date, name_prefix):
        calls.append(name_prefix)
        if len(calls) == 1:
            raise sqlite3.OperationalError("database is locked")
        return real_booking_exists(conn, tour_date, name_prefix)

    monkeypatch.setattr(importer, "booking_exists", flaky_booking_exists)

    stats = run_calendar_import(conn, events)

    assert stats.failed_lookups == 1
    assert stats.imported == 1
    assert [(issue.label, issue.message) for issue in stats.errors] == [
        ("Smith Party - 4 guests", "database is locked")
    ]
    assert _count(conn, "bookings") == 1
