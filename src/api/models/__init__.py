"""API Pydantic models."""

from .responses import ErrorCodes, ErrorResponse, GapItem, GapReportResponse, HealthResponse

__all__ = ["HealthResponse", "ErrorResponse", "ErrorCodes", "GapItem", "GapReportResponse"]
