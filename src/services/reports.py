"""
Run summaries, the compliance gap report, and its Excel export.

Formatting functions are pure and return strings; the scripts print them.
"""

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font

from core.config import GAP_SAMPLE_LIMIT, GAP_SHEET_HEADERS, SUMMARY_SAMPLE_LIMIT
from models.bookings import RecordIssue
from models.compliance import GapRecord, GapType
from services.compliance import LinkingStats
from services.importer import ImportStats
from services.matcher import EmailImportStats

RULE = "=" * 70


def format_date_display(d: date | str) -> str:
    """Format date as M/D/YYYY (platform-safe, no zero-padding)."""
    if isinstance(d, str):
        d = date.fromisoformat(d)
    return f"{d.month}/{d.day}/{d.year}"


def format_banner(title: str) -> str:
    return f"{RULE}\n  {title}\n{RULE}"


def _issue_lines(title: str, issues: list[RecordIssue], limit: int) -> list[str]:
    if not issues:
        return []
    lines = [f"  {title}:"]
    for issue in issues[:limit]:
        lines.append(f"    - {issue.label}: {issue.message}")
    if len(issues) > limit:
        lines.append(f"    ... and {len(issues) - limit} more")
    lines.append("")
    return lines


# =============================================================================
# GAP REPORT
# =============================================================================


@dataclass
class GapReport:
    """Aggregate over one linker run's GapRecords. Read-only."""

    start_date: date
    end_date: date
    total_bookings: int
    compliant_bookings: int
    by_type: dict[GapType, list[GapRecord]] = field(default_factory=dict)
    sample_limit: int = GAP_SAMPLE_LIMIT

    @property
    def bookings_with_gaps(self) -> int:
        return self.total_bookings - self.compliant_bookings

    @property
    def compliance_percent(self) -> float:
        """Share of bookings with no gaps; an empty range is fully compliant."""
        if self.total_bookings == 0:
            return 100.0
        return round(self.compliant_bookings / self.total_bookings * 100, 1)

    def count(self, gap_type: GapType) -> int:
        return len(self.by_type.get(gap_type, []))

    def sample(self, gap_type: GapType) -> list[GapRecord]:
        return self.by_type.get(gap_type, [])[: self.sample_limit]


def build_gap_report(
    records: list[GapRecord],
    start_date: date,
    end_date: date,
    sample_limit: int = GAP_SAMPLE_LIMIT,
) -> GapReport:
    """Group records by gap tag; a record with several gaps appears under each."""
    by_type: dict[GapType, list[GapRecord]] = {gap_type: [] for gap_type in GapType}
    for record in records:
        for gap_type in record.gap_types:
            by_type[gap_type].append(record)

    return GapReport(
        start_date=start_date,
        end_date=end_date,
        total_bookings=len(records),
        compliant_bookings=sum(1 for record in records if record.is_compliant),
        by_type=by_type,
        sample_limit=sample_limit,
    )


def _gap_line(gap_type: GapType, record: GapRecord) -> str:
    if gap_type is GapType.NO_DRIVER:
        return f"  {record.booking_number}  {record.tour_date}  {record.customer_name}"
    driver = record.driver_name or "Unknown driver"
    line = f"  {record.booking_number}  {record.tour_date}  {driver}  {record.customer_name}"
    if gap_type is not GapType.MISSING_TIME_CARD and record.vehicle_name:
        line += f"  ({record.vehicle_name})"
    return line


def format_gap_report(report: GapReport) -> str:
    lines = [
        "=" * 80,
        "  COMPLIANCE GAP REPORT",
        f"  {report.start_date.isoformat()} to {report.end_date.isoformat()}",
        "=" * 80,
        "",
    ]

    if report.bookings_with_gaps == 0:
        lines.append("  No compliance gaps found!")
        lines.append(f"  Compliance Rate: {report.compliance_percent:g}%")
        return "\n".join(lines)

    lines.extend(
        [
            "  SUMMARY",
            "  " + "-" * 40,
            f"  Bookings analyzed:           {report.total_bookings}",
            f"  Total bookings with gaps:    {report.bookings_with_gaps}",
        ]
    )
    for gap_type in GapType:
        lines.append(f"  {gap_type.label + ':':<29}{report.count(gap_type)}")
    lines.append(f"  Compliance Rate:             {report.compliance_percent:g}%")

    for gap_type in GapType:
        records = report.by_type.get(gap_type, [])
        if not records:
            continue
        lines.append("")
        lines.append(f"  {gap_type.label.upper()}")
        lines.append("  " + "-" * 60)
        lines.extend(_gap_line(gap_type, record) for record in report.sample(gap_type))
        if len(records) > report.sample_limit:
            lines.append(f"  ... and {len(records) - report.sample_limit} more")

    return "\n".join(lines)


def write_gap_report_workbook(report: GapReport, records: list[GapRecord], output_path: Path):
    """
    Save the gap report as an Excel workbook.

    Sheet 1: "Summary" - per-tag counts and compliance rate
    Sheet 2: "Gaps" - one row per booking with at least one gap
    """
    wb = Workbook()

    ws_summary = wb.active
    ws_summary.title = "Summary"
    for col_idx, header in enumerate(["Metric", "Value"], start=1):
        cell = ws_summary.cell(row=1, column=col_idx, value=header)
        cell.font = Font(bold=True)

    summary_rows = [
        ("Start date", format_date_display(report.start_date)),
        ("End date", format_date_display(report.end_date)),
        ("Bookings analyzed", report.total_bookings),
        ("Bookings with gaps", report.bookings_with_gaps),
    ]
    summary_rows.extend((gap_type.label, report.count(gap_type)) for gap_type in GapType)
    summary_rows.append(("Compliance rate (%)", report.compliance_percent))

    for row_idx, (metric, value) in enumerate(summary_rows, start=2):
        ws_summary.cell(row=row_idx, column=1, value=metric)
        ws_summary.cell(row=row_idx, column=2, value=value)

    ws_gaps = wb.create_sheet(title="Gaps")
    for col_idx, header in enumerate(GAP_SHEET_HEADERS, start=1):
        cell = ws_gaps.cell(row=1, column=col_idx, value=header)
        cell.font = Font(bold=True)

    gap_rows = [record for record in records if not record.is_compliant]
    for row_idx, record in enumerate(gap_rows, start=2):
        row_data = [
            record.booking_number,
            format_date_display(record.tour_date),
            record.customer_name,
            record.driver_name or "",
            record.vehicle_name or "",
            "Yes" if record.has_time_card else "No",
            "Yes" if record.has_pre_trip else "No",
            "Yes" if record.has_post_trip else "No",
            ", ".join(gap_type.label for gap_type in record.gap_types),
        ]
        for col_idx, value in enumerate(row_data, start=1):
            ws_gaps.cell(row=row_idx, column=col_idx, value=value)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(str(output_path))
    print(f"Saved gap report to: {output_path}")


# =============================================================================
# RUN SUMMARIES
# =============================================================================


def format_import_summary(stats: ImportStats, limit: int = SUMMARY_SAMPLE_LIMIT) -> str:
    lines = [
        format_banner("Import Summary"),
        "",
        f"  Total calendar events:  {stats.total_events}",
        f"  Tour-related events:    {stats.relevant_events}",
        f"  Already imported:       {stats.already_imported}",
        f"  Successfully imported:  {stats.imported}",
        f"  Failed to parse:        {stats.failed_parses}",
        f"  Failed validation:      {stats.failed_validations}",
        f"  Failed to insert:       {stats.failed_inserts}",
        f"  Failed store lookup:    {stats.failed_lookups}",
        f"  Needs manual review:    {stats.needs_review}",
        "",
    ]
    lines.extend(_issue_lines("Errors", stats.errors, limit))
    lines.extend(_issue_lines("Manual Review Queue", stats.review_queue, limit))
    return "\n".join(lines)


def format_email_summary(stats: EmailImportStats, limit: int = SUMMARY_SAMPLE_LIMIT) -> str:
    lines = [
        format_banner("Email Import Summary"),
        "",
        f"  Emails processed:      {stats.emails_processed}",
        f"  Tour-related emails:   {stats.relevant_emails}",
        f"  Matched to bookings:   {stats.matched}",
        f"  Unmatched emails:      {stats.unmatched}",
        f"  Duplicates skipped:    {stats.duplicates_skipped}",
        f"  Errors:                {len(stats.errors)}",
        "",
    ]
    lines.extend(_issue_lines("Errors", stats.errors, limit))
    lines.extend(_issue_lines("Unmatched", stats.unmatched_emails, limit))
    lines.append(f"  Match Rate: {stats.match_rate}%")
    return "\n".join(lines)


def format_linking_summary(stats: LinkingStats, report: GapReport) -> str:
    lines = [
        format_banner("Linking Summary"),
        "",
        f"  Bookings analyzed:      {stats.bookings_analyzed}",
        f"  Unique drivers:         {stats.drivers_analyzed}",
        f"  Time cards linked:      {stats.time_cards_linked}",
        f"  Inspections matched:    {stats.inspections_matched}",
        f"  Compliance gaps found:  {stats.gaps_found}",
        "",
        f"  Compliance Rate: {report.compliance_percent:g}%",
    ]
    return "\n".join(lines)
