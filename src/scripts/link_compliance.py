#!/usr/bin/env python3
"""
Link time cards to completed bookings and report compliance gaps.

Usage:
    uv run python src/scripts/link_compliance.py --dry-run --verbose
    uv run python src/scripts/link_compliance.py --report-only --output output/gaps.xlsx
    uv run python src/scripts/link_compliance.py --driver-id 3 --start-date 2024-06-01
"""

import argparse
import sqlite3
import sys
from datetime import date
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import DB_PATH
from core.database import create_run_record, generate_run_name, get_connection
from core.dates import resolve_date_range
from core.errors import ReconciliationError
from services.compliance import run_compliance_linker
from services.reports import (
    build_gap_report,
    format_banner,
    format_gap_report,
    format_linking_summary,
    write_gap_report_workbook,
)


def main(
    start_str: str | None = None,
    end_str: str | None = None,
    driver_id: int | None = None,
    dry_run: bool = False,
    report_only: bool = False,
    verbose: bool = False,
    output: Path | None = None,
) -> int:
    """Main entry point. Returns the process exit code."""
    print(format_banner("Compliance Linker - Booking/Inspection/TimeCard Matcher"))
    if dry_run:
        print("\n  DRY RUN MODE - No changes will be made to the database\n")
    if report_only:
        print("\n  REPORT ONLY MODE - Only generating gap report\n")

    conn = None
    try:
        start_date, end_date = resolve_date_range(start_str, end_str)
        conn = get_connection(DB_PATH)

        run = run_compliance_linker(
            conn,
            start_date,
            end_date,
            driver_id=driver_id,
            dry_run=dry_run,
            report_only=report_only,
            verbose=verbose,
        )
        print(f"\nAnalyzed {run.stats.bookings_analyzed} bookings from {start_date} to {end_date}")

        if not dry_run and not report_only:
            run_name = generate_run_name("compliance_link", date.today(), conn)
            create_run_record(conn, "compliance_link", run_name, run.stats.to_dict())
            print(f"Recorded run: {run_name}")

    except (ReconciliationError, sqlite3.Error, ValueError) as e:
        print(f"\n  Fatal error: {e}")
        return 1
    finally:
        if conn is not None:
            conn.close()

    report = build_gap_report(run.records, start_date, end_date)
    print()
    print(format_gap_report(report))
    print()

    if output:
        write_gap_report_workbook(report, run.records, output)

    if not report_only:
        print(format_linking_summary(run.stats, report))
        print()
        if dry_run:
            print("  Run without --dry-run to apply time card links.\n")
        else:
            print("  Tip: use --dry-run to preview time card links before writing them.\n")

    if report.bookings_with_gaps:
        print("  RECOMMENDATION: Digitize missing paper records to improve")
        print("  compliance coverage, then re-run this report.\n")

    print("  Done!\n")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Link time cards and report compliance gaps")
    parser.add_argument("--dry-run", action="store_true", help="Find links without writing them")
    parser.add_argument("--report-only", action="store_true", help="Skip linking, report gaps only")
    parser.add_argument("--verbose", action="store_true", help="Print one line per booking")
    parser.add_argument("--start-date", help="First date (YYYY-MM-DD). Defaults to 18 months ago.")
    parser.add_argument("--end-date", help="Last date (YYYY-MM-DD). Defaults to today.")
    parser.add_argument("--driver-id", type=int, help="Only this driver's bookings")
    parser.add_argument("--output", type=Path, help="Also save the gap report as .xlsx")
    args = parser.parse_args()

    sys.exit(
        main(
            start_str=args.start_date,
            end_str=args.end_date,
            driver_id=args.driver_id,
            dry_run=args.dry_run,
            report_only=args.report_only,
            verbose=args.verbose,
            output=args.output,
        )
    )
