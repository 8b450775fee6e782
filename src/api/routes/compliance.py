"""Compliance gap report endpoint."""

import asyncio
import sqlite3
import time
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from api.dependencies import get_db, verify_api_key
from api.logging import RequestLog, log_request
from api.models.responses import ErrorCodes, GapItem, GapReportResponse
from core.dates import resolve_date_range
from models.compliance import GapRecord, GapType
from services.compliance import run_compliance_linker
from services.reports import GapReport, build_gap_report

router = APIRouter(prefix="/v1")


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def parse_date_range(start_date: str | None, end_date: str | None) -> tuple[date, date]:
    """Resolve query bounds, defaulting like the CLI."""
    try:
        return resolve_date_range(start_date, end_date)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Invalid date range",
                "code": ErrorCodes.INVALID_REQUEST,
                "details": [str(e), "Expected format: YYYY-MM-DD"],
            },
        )


def _analyze(
    conn: sqlite3.Connection, start: date, end: date, driver_id: int | None
) -> tuple[GapReport, list[GapRecord]]:
    run = run_compliance_linker(conn, start, end, driver_id=driver_id, report_only=True)
    records_with_gaps = [record for record in run.records if not record.is_compliant]
    return build_gap_report(run.records, start, end), records_with_gaps


def to_response(report: GapReport, records_with_gaps: list[GapRecord]) -> GapReportResponse:
    return GapReportResponse(
        start_date=report.start_date.isoformat(),
        end_date=report.end_date.isoformat(),
        bookings_analyzed=report.total_bookings,
        bookings_with_gaps=report.bookings_with_gaps,
        compliance_percent=report.compliance_percent,
        gap_counts={gap_type.value: report.count(gap_type) for gap_type in GapType},
        gaps=[
            GapItem(
                booking_number=record.booking_number,
                tour_date=record.tour_date,
                customer_name=record.customer_name,
                driver_name=record.driver_name,
                vehicle_name=record.vehicle_name,
                gap_types=[gap_type.value for gap_type in record.gap_types],
            )
            for record in records_with_gaps
        ],
    )


@router.get("/compliance/gaps", response_model=GapReportResponse)
async def compliance_gaps_endpoint(
    request: Request,
    start_date: str | None = Query(None, description="First tour date (YYYY-MM-DD)"),
    end_date: str | None = Query(None, description="Last tour date (YYYY-MM-DD)"),
    driver_id: int | None = Query(None, description="Only this driver's bookings"),
    _api_key: str = Depends(verify_api_key),
    conn: sqlite3.Connection = Depends(get_db),
):
    """
    Report compliance gaps for completed bookings in a date range.

    Read-only: stored time card links are reported, never created.
    """
    start_time = time.time()

    request_log = RequestLog(
        endpoint="/v1/compliance/gaps",
        method="GET",
        client_ip=get_client_ip(request),
    )

    try:
        start, end = parse_date_range(start_date, end_date)

        report, records_with_gaps = await asyncio.to_thread(
            _analyze, conn, start, end, driver_id
        )

        request_log.status_code = 200
        request_log.bookings_analyzed = report.total_bookings
        request_log.gaps_found = report.bookings_with_gaps
        request_log.processing_time_ms = int((time.time() - start_time) * 1000)

        return to_response(report, records_with_gaps)

    except HTTPException as e:
        request_log.status_code = e.status_code
        if isinstance(e.detail, dict):
            request_log.error_code = e.detail.get("code")
            request_log.error_message = e.detail.get("error")
        else:
            request_log.error_message = str(e.detail)
        request_log.processing_time_ms = int((time.time() - start_time) * 1000)
        raise

    except sqlite3.Error as e:
        request_log.status_code = 500
        request_log.error_code = ErrorCodes.INTERNAL_ERROR
        request_log.error_message = str(e)
        request_log.processing_time_ms = int((time.time() - start_time) * 1000)

        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "Internal server error",
                "code": ErrorCodes.INTERNAL_ERROR,
                "details": [],
            },
        )

    finally:
        # A failed log write must not fail the request
        try:
            log_request(conn, request_log)
        except sqlite3.Error as e:
            print(f"Request log write failed: {e}")
