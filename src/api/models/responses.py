"""Pydantic response models for API endpoints."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy" or "unhealthy"
    version: str
    database_available: bool
    timestamp: str  # ISO 8601 UTC
    error: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    details: list[str] = []


class ErrorCodes:
    """Error code constants."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class GapItem(BaseModel):
    """One booking with at least one compliance gap."""

    booking_number: str
    tour_date: str
    customer_name: str
    driver_name: str | None = None
    vehicle_name: str | None = None
    gap_types: list[str]


class GapReportResponse(BaseModel):
    """Compliance gap report for a date range."""

    start_date: str
    end_date: str
    bookings_analyzed: int
    bookings_with_gaps: int
    compliance_percent: float
    gap_counts: dict[str, int]
    gaps: list[GapItem]
