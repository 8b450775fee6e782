"""Health check endpoint."""

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_db_path
from api.models.responses import HealthResponse
from core.config import API_VERSION

router = APIRouter()


def database_available(db_path: Path) -> bool:
    """Check the booking store exists and has its schema."""
    if not Path(db_path).exists():
        return False
    try:
        conn = sqlite3.connect(db_path)
        try:
            conn.execute("SELECT 1 FROM bookings LIMIT 1")
        finally:
            conn.close()
    except sqlite3.Error:
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health_check(db_path: Path = Depends(get_db_path)):
    """
    Health check endpoint for monitoring.

    Returns 200 if healthy, 503 if unhealthy.
    """
    timestamp = datetime.now(timezone.utc).isoformat()

    if database_available(db_path):
        return HealthResponse(
            status="healthy",
            version=API_VERSION,
            database_available=True,
            timestamp=timestamp,
        )
    else:
        return JSONResponse(
            status_code=503,
            content=HealthResponse(
                status="unhealthy",
                version=API_VERSION,
                database_available=False,
                timestamp=timestamp,
                error="Booking store not found or not initialized",
            ).model_dump(),
        )
