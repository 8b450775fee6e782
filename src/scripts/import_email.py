#!/usr/bin/env python3
"""
Link historical customer emails to imported bookings.

Usage:
    uv run python src/scripts/import_email.py --dry-run --verbose
    uv run python src/scripts/import_email.py --start-date 2024-01-01 --limit 1000
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

from core.config import DB_PATH, DEFAULT_EMAIL_LIMIT, GRAPH_MAILBOX, MATCH_WINDOW_DAYS
from core.database import create_run_record, generate_run_name, get_connection
from core.dates import resolve_date_range
from core.errors import ConfigurationError, ReconciliationError
from core.graph_client import default_credential_provider, with_credential_refresh
from services.mailbox import fetch_messages
from services.matcher import run_email_import
from services.reports import format_banner, format_email_summary


async def main(
    start_str: str | None = None,
    end_str: str | None = None,
    mailbox: str = GRAPH_MAILBOX,
    limit: int = DEFAULT_EMAIL_LIMIT,
    window_days: int = MATCH_WINDOW_DAYS,
    dry_run: bool = False,
    verbose: bool = False,
) -> int:
    """Main entry point. Returns the process exit code."""
    print(format_banner("Historical Email Import"))
    if dry_run:
        print("\n  DRY RUN MODE - No changes will be made to the database\n")

    conn = None
    try:
        start_date, end_date = resolve_date_range(start_str, end_str)
        if not mailbox:
            raise ConfigurationError("GRAPH_MAILBOX is not set", setting_name="GRAPH_MAILBOX")

        conn = get_connection(DB_PATH)

        print(f"\nSearching emails from {start_date} to {end_date}...\n")
        emails = await with_credential_refresh(
            default_credential_provider(),
            lambda graph: fetch_messages(graph, mailbox, start_date, end_date, limit=limit),
        )
        print(f"Total messages found: {len(emails)}\n")

        stats = run_email_import(
            conn, emails, dry_run=dry_run, verbose=verbose, window_days=window_days
        )

        if not dry_run:
            run_name = generate_run_name("email_import", date.today(), conn)
            create_run_record(conn, "email_import", run_name, stats.to_dict())
            print(f"\nRecorded run: {run_name}")

    except (ReconciliationError, ClientAuthenticationError, sqlite3.Error, ValueError) as e:
        print(f"\n  Fatal error: {e}")
        return 1
    finally:
        if conn is not None:
            conn.close()

    print()
    print(format_email_summary(stats))
    print()
    if dry_run:
        print("  Run without --dry-run to apply these changes.\n")
    else:
        print("  Tip: use --dry-run to preview matches before linking them.\n")
    print("  Done!\n")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Link historical emails to bookings")
    parser.add_argument("--dry-run", action="store_true", help="Match without linking")
    parser.add_argument("--verbose", action="store_true", help="Print match outcomes")
    parser.add_argument("--start-date", help="First date (YYYY-MM-DD). Defaults to 18 months ago.")
    parser.add_argument("--end-date", help="Last date (YYYY-MM-DD). Defaults to today.")
    parser.add_argument(
        "--limit", type=int, default=DEFAULT_EMAIL_LIMIT, help="Fetch at most N messages"
    )
    parser.add_argument("--mailbox", default=GRAPH_MAILBOX, help="Mailbox to read")
    parser.add_argument(
        "--window-days",
        type=int,
        default=MATCH_WINDOW_DAYS,
        help="Match bookings within this many days of the message",
    )
    args = parser.parse_args()

    sys.exit(
        asyncio.run(
            main(
                start_str=args.start_date,
                end_str=args.end_date,
                mailbox=args.mailbox,
                limit=args.limit,
                window_days=args.window_days,
                dry_run=args.dry_run,
                verbose=args.verbose,
            )
        )
    )
