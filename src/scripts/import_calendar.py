#!/usr/bin/env python3
"""
Import historical tours from an MS365 calendar into the booking store.

Pages the mailbox calendar for the date range, keeps tour-looking events,
and creates one completed booking per event not already imported.

Usage:
    uv run python src/scripts/import_calendar.py --dry-run --verbose
    uv run python src/scripts/import_calendar.py --start-date 2024-01-01 --end-date 2024-12-31
"""

import argparse
import asyncio
import sqlite3
import sys
from datetime import date
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from azure.core.exceptions import ClientAuthenticationError

from core.config import DB_PATH, GRAPH_CALENDAR_ID, GRAPH_MAILBOX
from core.database import create_run_record, generate_run_name, get_connection
from core.dates import resolve_date_range
from core.errors import ConfigurationError, ReconciliationError
from core.graph_client import default_credential_provider, with_credential_refresh
from services.calendar import fetch_calendar_events, resolve_calendar_id
from services.importer import run_calendar_import
from services.reports import format_banner, format_import_summary


async def main(
    start_str: str | None = None,
    end_str: str | None = None,
    mailbox: str = GRAPH_MAILBOX,
    calendar_id: str | None = GRAPH_CALENDAR_ID,
    dry_run: bool = False,
    verbose: bool = False,
    limit: int | None = None,
) -> int:
    """Main entry point. Returns the process exit code."""
    print(format_banner("Historical Tour Import (Calendar)"))
    if dry_run:
        print("\n  DRY RUN MODE - No changes will be made to the database\n")

    conn = None
    try:
        start_date, end_date = resolve_date_range(start_str, end_str)
        if not mailbox:
            raise ConfigurationError("GRAPH_MAILBOX is not set", setting_name="GRAPH_MAILBOX")

        # 1. Open the store before touching the source
        conn = get_connection(DB_PATH)

        # 2. Fetch events
        print(f"\nFetching events from {start_date} to {end_date}...\n")

        async def fetch(graph):
            resolved_id = await resolve_calendar_id(graph, mailbox, calendar_id)
            return await fetch_calendar_events(graph, mailbox, resolved_id, start_date, end_date)

        events = await with_credential_refresh(default_credential_provider(), fetch)
        print(f"Total events found: {len(events)}\n")

        # 3. Import
        stats = run_calendar_import(conn, events, dry_run=dry_run, verbose=verbose, limit=limit)

        # 4. Record the run
        if not dry_run:
            run_name = generate_run_name("calendar_import", date.today(), conn)
            create_run_record(conn, "calendar_import", run_name, stats.to_dict())
            print(f"\nRecorded run: {run_name}")

    except (ReconciliationError, ClientAuthenticationError, sqlite3.Error, ValueError) as e:
        print(f"\n  Fatal error: {e}")
        return 1
    finally:
        if conn is not None:
            conn.close()

    print()
    print(format_import_summary(stats))
    if dry_run:
        print("  Run without --dry-run to apply these changes.\n")
    else:
        print("  Tip: use --dry-run to preview an import before committing it.\n")
    print("  Done!\n")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Import historical tours from calendar")
    parser.add_argument("--dry-run", action="store_true", help="Preview without writing")
    parser.add_argument("--verbose", action="store_true", help="Print one line per event")
    parser.add_argument("--start-date", help="First date (YYYY-MM-DD). Defaults to 18 months ago.")
    parser.add_argument("--end-date", help="Last date (YYYY-MM-DD). Defaults to today.")
    parser.add_argument("--limit", type=int, help="Process at most N tour events")
    parser.add_argument("--mailbox", default=GRAPH_MAILBOX, help="Mailbox owning the calendar")
    parser.add_argument(
        "--calendar-id",
        default=GRAPH_CALENDAR_ID,
        help="Calendar id (see list_users_calendars.py). Defaults to the mailbox's calendar.",
    )
    args = parser.parse_args()

    sys.exit(
        asyncio.run(
            main(
                start_str=args.start_date,
                end_str=args.end_date,
                mailbox=args.mailbox,
                calendar_id=args.calendar_id,
                dry_run=args.dry_run,
                verbose=args.verbose,
                limit=args.limit,
            )
        )
    )
