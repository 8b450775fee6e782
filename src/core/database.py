"""
SQLite database operations for the booking store, timeline ledger,
compliance records and run ledger.
"""

import json
import sqlite3
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from core.config import DB_PATH, IMPORT_BOOKING_PREFIX
from core.errors import StoreUnavailableError
from models.bookings import BookingRecord, ParsedBooking
from models.compliance import Inspection, InspectionType, TimeCard

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT,
    role TEXT DEFAULT 'driver'
);

CREATE TABLE IF NOT EXISTS vehicles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    vehicle_number TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS time_cards (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    driver_id INTEGER NOT NULL,
    vehicle_id INTEGER,
    date TEXT NOT NULL,
    clock_in_time TEXT NOT NULL,
    clock_out_time TEXT,
    status TEXT DEFAULT 'completed',
    FOREIGN KEY (driver_id) REFERENCES users(id),
    FOREIGN KEY (vehicle_id) REFERENCES vehicles(id)
);

CREATE TABLE IF NOT EXISTS inspections (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    driver_id INTEGER NOT NULL,
    vehicle_id INTEGER,
    type TEXT NOT NULL CHECK(type IN ('pre_trip', 'post_trip')),
    created_at TEXT NOT NULL,
    FOREIGN KEY (driver_id) REFERENCES users(id),
    FOREIGN KEY (vehicle_id) REFERENCES vehicles(id)
);

CREATE TABLE IF NOT EXISTS bookings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    booking_number TEXT UNIQUE NOT NULL,
    customer_name TEXT NOT NULL,
    customer_email TEXT,
    customer_phone TEXT,
    party_size INTEGER NOT NULL,
    tour_date TEXT NOT NULL,
    start_time TEXT,
    end_time TEXT,
    duration_hours REAL,
    pickup_location TEXT,
    dropoff_location TEXT,
    special_requests TEXT,
    driver_notes TEXT,
    base_price REAL DEFAULT 0,
    total_price REAL DEFAULT 0,
    deposit_amount REAL DEFAULT 0,
    final_payment_amount REAL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'pending',
    booking_source TEXT,
    driver_id INTEGER,
    vehicle_id INTEGER,
    time_card_id INTEGER,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (driver_id) REFERENCES users(id),
    FOREIGN KEY (vehicle_id) REFERENCES vehicles(id),
    FOREIGN KEY (time_card_id) REFERENCES time_cards(id)
);

CREATE TABLE IF NOT EXISTS booking_timeline (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    booking_id INTEGER NOT NULL,
    event_type TEXT NOT NULL,
    event_description TEXT,
    event_data TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (booking_id) REFERENCES bookings(id)
);

CREATE TABLE IF NOT EXISTS import_runs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    type TEXT NOT NULL CHECK(type IN ('calendar_import', 'email_import', 'compliance_link')),
    name TEXT UNIQUE NOT NULL,
    stats TEXT,
    create_date TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS api_requests (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    request_id TEXT UNIQUE NOT NULL,
    timestamp TEXT NOT NULL,
    endpoint TEXT NOT NULL,
    method TEXT NOT NULL,
    client_ip TEXT,
    status_code INTEGER NOT NULL,
    error_code TEXT,
    error_message TEXT,
    processing_time_ms INTEGER NOT NULL,
    bookings_analyzed INTEGER,
    gaps_found INTEGER
);

CREATE INDEX IF NOT EXISTS idx_bookings_tour_date ON bookings(tour_date);
CREATE INDEX IF NOT EXISTS idx_bookings_email ON bookings(customer_email);
CREATE INDEX IF NOT EXISTS idx_timeline_source_id
    ON booking_timeline(json_extract(event_data, '$.source_id'));
CREATE INDEX IF NOT EXISTS idx_time_cards_driver_date ON time_cards(driver_id, date);
CREATE INDEX IF NOT EXISTS idx_inspections_driver_date ON inspections(driver_id, created_at);
CREATE INDEX IF NOT EXISTS idx_api_requests_timestamp ON api_requests(timestamp);
"""

BOOKING_COLUMNS = (
    "b.id, b.booking_number, b.customer_name, b.customer_email, b.tour_date, b.status, "
    "b.driver_id, b.vehicle_id, b.time_card_id, b.pickup_location"
)


def get_connection(
    db_path: Path | str = DB_PATH, check_same_thread: bool = True
) -> sqlite3.Connection:
    """
    Get a database connection.

    The API passes check_same_thread=False since FastAPI may resolve the
    dependency and run the endpoint on different threads.

    Raises:
        StoreUnavailableError: If the database cannot be opened
    """
    try:
        conn = sqlite3.connect(db_path, check_same_thread=check_same_thread)
        conn.execute("SELECT 1")
    except sqlite3.Error as e:
        raise StoreUnavailableError("Cannot open booking store", cause=e, db_path=str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def create_schema(conn: sqlite3.Connection):
    """Create all tables and indexes if they don't exist."""
    conn.executescript(SCHEMA)
    conn.commit()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# RUN LEDGER
# =============================================================================


def generate_run_name(run_type: str, as_of_date: date, conn: sqlite3.Connection) -> str:
    """
    Generate unique run name with auto-incremented suffix.

    Example: calendar_import_2025_06_01_a, calendar_import_2025_06_01_b
    """
    base_pattern = f"{run_type}_{as_of_date.strftime('%Y_%m_%d')}_"

    cursor = conn.cursor()
    cursor.execute(
        "SELECT name FROM import_runs WHERE name LIKE ? ORDER BY name DESC",
        (f"{base_pattern}%",),
    )
    existing = cursor.fetchall()

    if not existing:
        return f"{base_pattern}a"

    highest_suffix = "a"
    for (name,) in existing:
        suffix = name.replace(base_pattern, "")
        if suffix and suffix > highest_suffix:
            highest_suffix = suffix

    next_suffix = chr(ord(highest_suffix) + 1)
    return f"{base_pattern}{next_suffix}"


def create_run_record(
    conn: sqlite3.Connection, run_type: str, run_name: str, stats: dict[str, Any]
) -> int:
    """Record a committed run and its counters; returns the run id."""
    cursor = conn.cursor()
    cursor.execute(
        "INSERT INTO import_runs (type, name, stats) VALUES (?, ?, ?)",
        (run_type, run_name, json.dumps(stats)),
    )
    conn.commit()
    return cursor.lastrowid


# =============================================================================
# BOOKINGS + TIMELINE LEDGER
# =============================================================================


def booking_exists(conn: sqlite3.Connection, tour_date: str, name_prefix: str) -> bool:
    """
    Check whether a booking on this date already carries this name prefix.

    Substring match on the name: can false-positive on shared first names and
    miss reformatted names.
    """
    if not name_prefix:
        return False
    row = conn.execute(
        """
        SELECT id FROM bookings
        WHERE tour_date = ? AND LOWER(customer_name) LIKE ?
        LIMIT 1
        """,
        (tour_date, f"%{name_prefix.lower()}%"),
    ).fetchone()
    return row is not None


def is_source_linked(conn: sqlite3.Connection, source: str, source_id: str) -> bool:
    """Check the timeline ledger for an external record id."""
    row = conn.execute(
        """
        SELECT id FROM booking_timeline
        WHERE json_extract(event_data, '$.source_id') = ?
          AND json_extract(event_data, '$.source') = ?
        LIMIT 1
        """,
        (source_id, source),
    ).fetchone()
    return row is not None


def next_import_booking_number(
    conn: sqlite3.Connection, prefix: str = IMPORT_BOOKING_PREFIX
) -> str:
    """Next number in the import sequence, e.g. HIST-00001."""
    row = conn.execute(
        """
        SELECT MAX(CAST(SUBSTR(booking_number, ?) AS INTEGER))
        FROM bookings
        WHERE booking_number LIKE ?
        """,
        (len(prefix) + 2, f"{prefix}-%"),
    ).fetchone()
    last_num = row[0] or 0
    return f"{prefix}-{last_num + 1:05d}"


def insert_booking(
    conn: sqlite3.Connection,
    booking: ParsedBooking,
    booking_number: str,
    source_tag: str,
    status: str,
) -> int:
    """Insert a parsed booking with zero pricing; returns the new booking id."""
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO bookings (
            booking_number, customer_name, customer_email, customer_phone,
            party_size, tour_date, start_time, end_time, duration_hours,
            pickup_location, dropoff_location, special_requests, driver_notes,
            base_price, total_price, deposit_amount, final_payment_amount,
            status, booking_source, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, 0, 0, 0, ?, ?, ?, ?)
        """,
        (
            booking_number,
            booking.customer_name,
            booking.customer_email,
            booking.customer_phone,
            booking.party_size,
            booking.tour_date,
            booking.start_time,
            booking.end_time,
            booking.duration_hours,
            booking.pickup_location,
            booking.dropoff_location,
            booking.special_requests,
            booking.driver_notes,
            status,
            source_tag,
            _now(),
            _now(),
        ),
    )
    conn.commit()
    return cursor.lastrowid


def insert_timeline_entry(
    conn: sqlite3.Connection,
    booking_id: int,
    event_type: str,
    description: str,
    payload: dict[str, Any],
    created_at: str | None = None,
) -> int:
    """Append a timeline row; returns its id."""
    cursor = conn.cursor()
    cursor.execute(
        """
        INSERT INTO booking_timeline (
            booking_id, event_type, event_description, event_data, created_at
        ) VALUES (?, ?, ?, ?, ?)
        """,
        (booking_id, event_type, description, json.dumps(payload), created_at or _now()),
    )
    conn.commit()
    return cursor.lastrowid


def find_booking_by_email(
    conn: sqlite3.Connection, email: str, anchor: date, window_days: int
) -> sqlite3.Row | None:
    """Booking with this contact email nearest to the anchor date, within the window."""
    return conn.execute(
        """
        SELECT id, booking_number, customer_name, customer_email, tour_date
        FROM bookings
        WHERE LOWER(customer_email) = ?
          AND ABS(julianday(tour_date) - julianday(?)) <= ?
        ORDER BY ABS(julianday(tour_date) - julianday(?)), id
        LIMIT 1
        """,
        (email.lower(), anchor.isoformat(), window_days, anchor.isoformat()),
    ).fetchone()


def find_booking_by_name(
    conn: sqlite3.Connection, name_fragment: str, anchor: date, window_days: int
) -> sqlite3.Row | None:
    """Booking whose customer name contains the fragment, nearest to the anchor date."""
    return conn.execute(
        """
        SELECT id, booking_number, customer_name, customer_email, tour_date
        FROM bookings
        WHERE LOWER(customer_name) LIKE ?
          AND ABS(julianday(tour_date) - julianday(?)) <= ?
        ORDER BY ABS(julianday(tour_date) - julianday(?)), id
        LIMIT 1
        """,
        (f"%{name_fragment.lower()}%", anchor.isoformat(), window_days, anchor.isoformat()),
    ).fetchone()


def find_booking_by_number(conn: sqlite3.Connection, booking_number: str) -> sqlite3.Row | None:
    """Exact (case-insensitive) booking number lookup."""
    return conn.execute(
        """
        SELECT id, booking_number, customer_name, customer_email, tour_date
        FROM bookings
        WHERE UPPER(booking_number) = ?
        LIMIT 1
        """,
        (booking_number.upper(),),
    ).fetchone()


# =============================================================================
# COMPLIANCE RECORDS
# =============================================================================


def fetch_bookings_in_range(
    conn: sqlite3.Connection,
    start_date: date,
    end_date: date,
    driver_id: int | None = None,
    status: str = "completed",
) -> list[BookingRecord]:
    """Bookings with the given status in [start_date, end_date], oldest first."""
    query = f"""
        SELECT {BOOKING_COLUMNS}, u.name AS driver_name, v.vehicle_number AS vehicle_name
        FROM bookings b
        LEFT JOIN users u ON b.driver_id = u.id
        LEFT JOIN vehicles v ON b.vehicle_id = v.id
        WHERE b.tour_date >= ? AND b.tour_date <= ? AND b.status = ?
    """
    params: list[Any] = [start_date.isoformat(), end_date.isoformat(), status]
    if driver_id is not None:
        query += " AND b.driver_id = ?"
        params.append(driver_id)
    query += " ORDER BY b.tour_date, b.id"

    return [
        BookingRecord(
            id=row["id"],
            booking_number=row["booking_number"],
            customer_name=row["customer_name"],
            tour_date=row["tour_date"],
            status=row["status"],
            driver_id=row["driver_id"],
            driver_name=row["driver_name"],
            vehicle_id=row["vehicle_id"],
            vehicle_name=row["vehicle_name"],
            time_card_id=row["time_card_id"],
            customer_email=row["customer_email"],
            pickup_location=row["pickup_location"],
        )
        for row in conn.execute(query, params).fetchall()
    ]


def find_time_card(conn: sqlite3.Connection, driver_id: int, tour_date: str) -> TimeCard | None:
    """Latest time card for this driver clocked in on the tour date."""
    row = conn.execute(
        """
        SELECT id, driver_id, vehicle_id, date, clock_in_time, clock_out_time
        FROM time_cards
        WHERE driver_id = ? AND DATE(clock_in_time) = ?
        ORDER BY clock_in_time DESC
        LIMIT 1
        """,
        (driver_id, tour_date),
    ).fetchone()
    if row is None:
        return None
    return TimeCard(
        id=row["id"],
        driver_id=row["driver_id"],
        vehicle_id=row["vehicle_id"],
        date=row["date"],
        clock_in_time=row["clock_in_time"],
        clock_out_time=row["clock_out_time"],
    )


def find_inspections(
    conn: sqlite3.Connection, driver_id: int, tour_date: str, vehicle_id: int | None = None
) -> list[Inspection]:
    """Inspections by this driver on the tour date, narrowed to the vehicle when given."""
    query = """
        SELECT id, driver_id, vehicle_id, type, DATE(created_at) AS inspection_date
        FROM inspections
        WHERE driver_id = ? AND DATE(created_at) = ?
    """
    params: list[Any] = [driver_id, tour_date]
    if vehicle_id is not None:
        query += " AND vehicle_id = ?"
        params.append(vehicle_id)
    query += " ORDER BY created_at"

    return [
        Inspection(
            id=row["id"],
            driver_id=row["driver_id"],
            vehicle_id=row["vehicle_id"],
            type=InspectionType(row["type"]),
            inspection_date=row["inspection_date"],
        )
        for row in conn.execute(query, params).fetchall()
    ]


def link_time_card(conn: sqlite3.Connection, booking_id: int, time_card_id: int) -> bool:
    """
    Attach a time card to a booking that has none yet.

    Returns False when the booking was already linked, so re-runs are harmless.
    """
    cursor = conn.execute(
        """
        UPDATE bookings SET time_card_id = ?, updated_at = ?
        WHERE id = ? AND time_card_id IS NULL
        """,
        (time_card_id, _now(), booking_id),
    )
    conn.commit()
    return cursor.rowcount > 0
