#!/usr/bin/env python3
"""
Generate a month of bookings, drivers, time cards and inspections for local
runs of the compliance linker and the API.

Usage:
    uv run python tests/fixtures/generate_records.py
    uv run python tests/fixtures/generate_records.py --db data/db/tour-records.db --seed 7
"""

import argparse
import random
import sqlite3
import sys
from datetime import date, timedelta
from pathlib import Path

from faker import Faker

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from core.database import create_schema  # noqa: E402

DB_FILE = Path(__file__).parent / "records.db"

DRIVER_COUNT = 4
VEHICLES = ["Sprinter 1", "Sprinter 2", "Sprinter 3", "Suburban"]

# Share of driven bookings missing each record
NO_DRIVER_RATE = 0.05
MISSING_TIME_CARD_RATE = 0.1
MISSING_INSPECTION_RATE = 0.1


def month_days(month_start: date) -> list[date]:
    days = []
    day = month_start
    while day.month == month_start.month:
        days.append(day)
        day += timedelta(days=1)
    return days


def seed_database(
    conn: sqlite3.Connection, month_start: date = date(2025, 6, 1), seed: int | None = None
) -> dict[str, int]:
    """
    Fill the store with one month of completed bookings and driver records.

    Returns:
        Counts of inserted rows by table
    """
    fake = Faker()
    rng = random.Random(seed)
    if seed is not None:
        Faker.seed(seed)

    cursor = conn.cursor()
    driver_ids = []
    for _ in range(DRIVER_COUNT):
        cursor.execute(
            "INSERT INTO users (name, email, role) VALUES (?, ?, 'driver')",
            (fake.name(), fake.email()),
        )
        driver_ids.append(cursor.lastrowid)

    vehicle_ids = []
    for vehicle in VEHICLES:
        cursor.execute("INSERT INTO vehicles (vehicle_number) VALUES (?)", (vehicle,))
        vehicle_ids.append(cursor.lastrowid)

    counts = {"bookings": 0, "time_cards": 0, "inspections": 0}
    booking_number = 10000

    for day in month_days(month_start):
        # Weekends are busier
        tours = rng.randint(2, 4) if day.weekday() >= 4 else rng.randint(0, 2)
        drivers_today = rng.sample(driver_ids, k=min(tours, len(driver_ids)))

        for driver_id in drivers_today:
            booking_number += 1
            vehicle_id = rng.choice(vehicle_ids)
            assigned = rng.random() >= NO_DRIVER_RATE
            cursor.execute(
                """
                INSERT INTO bookings (
                    booking_number, customer_name, customer_email, customer_phone,
                    party_size, tour_date, start_time, end_time, duration_hours,
                    status, booking_source, driver_id, vehicle_id
                ) VALUES (?, ?, ?, ?, ?, ?, '10:00', '16:00', 6, 'completed', 'website', ?, ?)
                """,
                (
                    f"WWT-{booking_number}",
                    fake.last_name(),
                    fake.email(),
                    fake.numerify("(509) ###-####"),
                    rng.randint(2, 14),
                    day.isoformat(),
                    driver_id if assigned else None,
                    vehicle_id if assigned else None,
                ),
            )
            counts["bookings"] += 1
            if not assigned:
                continue

            if rng.random() >= MISSING_TIME_CARD_RATE:
                cursor.execute(
                    """
                    INSERT INTO time_cards (driver_id, vehicle_id, date, clock_in_time, clock_out_time)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        driver_id,
                        vehicle_id,
                        day.isoformat(),
                        f"{day.isoformat()} 08:30:00",
                        f"{day.isoformat()} 17:00:00",
                    ),
                )
                counts["time_cards"] += 1

            for inspection_type, hour in (("pre_trip", "08:45:00"), ("post_trip", "16:45:00")):
                if rng.random() < MISSING_INSPECTION_RATE:
                    continue
                cursor.execute(
                    """
                    INSERT INTO inspections (driver_id, vehicle_id, type, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (driver_id, vehicle_id, inspection_type, f"{day.isoformat()} {hour}"),
                )
                counts["inspections"] += 1

    conn.commit()
    return counts


def main():
    parser = argparse.ArgumentParser(description="Generate sample compliance records")
    parser.add_argument("--db", type=Path, default=DB_FILE, help="SQLite file to fill")
    parser.add_argument("--month", default="2025-06-01", help="First day of the month (YYYY-MM-DD)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for repeatable data")
    args = parser.parse_args()

    args.db.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(args.db)
    conn.execute("PRAGMA foreign_keys = ON")
    create_schema(conn)

    counts = seed_database(conn, date.fromisoformat(args.month), args.seed)
    conn.close()

    print(f"\nDatabase: {args.db}")
    for table, count in counts.items():
        print(f"  {table}: {count}")


if __name__ == "__main__":
    main()
