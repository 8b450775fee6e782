"""Tests for booking store helpers."""

from datetime import date

import pytest

from core.database import (
    booking_exists,
    create_run_record,
    generate_run_name,
    get_connection,
    next_import_booking_number,
)
from core.errors import StoreUnavailableError


def test_run_names_increment(conn):
    day = date(2025, 6, 1)

    first = generate_run_name("calendar_import", day, conn)
    create_run_record(conn, "calendar_import", first, {"imported": 3})
    second = generate_run_name("calendar_import", day, conn)

    assert first == "calendar_import_2025_06_01_a"
    assert second == "calendar_import_2025_06_01_b"
    assert generate_run_name("email_import", day, conn) == "email_import_2025_06_01_a"


def test_import_booking_numbers(conn, add_booking):
    assert next_import_booking_number(conn) == "HIST-00001"

    add_booking(booking_number="HIST-00009")
    add_booking(booking_number="WWT-12345")

    assert next_import_booking_number(conn) == "HIST-00010"


def test_booking_exists_by_date_and_name_prefix(conn, add_booking):
    add_booking(customer_name="Smith Family", tour_date="2025-06-01")

    assert booking_exists(conn, "2025-06-01", "Smith")
    assert booking_exists(conn, "2025-06-01", "smith")
    assert not booking_exists(conn, "2025-06-02", "Smith")
    assert not booking_exists(conn, "2025-06-01", "Jones")
    assert not booking_exists(conn, "2025-06-01", "")


def test_unopenable_store(tmp_path):
    with pytest.raises(StoreUnavailableError) as excinfo:
        get_connection(tmp_path / "missing" / "records.db")

    assert "missing" in excinfo.value.db_path
