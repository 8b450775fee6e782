"""FastAPI dependencies for authentication and shared resources."""

import secrets
import sqlite3
from collections.abc import Iterator
from pathlib import Path

from fastapi import Depends, Header, HTTPException, status

from api.models.responses import ErrorCodes
from core.config import DB_PATH, RECORDS_API_KEY
from core.database import get_connection
from core.errors import StoreUnavailableError


async def verify_api_key(x_api_key: str = Header(..., alias="X-API-Key")) -> str:
    """
    Verify API key from X-API-Key header.

    Raises:
        HTTPException: 401 if key is missing or invalid
    """
    if not RECORDS_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "API key not configured on server",
                "code": ErrorCodes.INTERNAL_ERROR,
                "details": [],
            },
        )

    # Use constant-time comparison to prevent timing attacks
    if not secrets.compare_digest(x_api_key, RECORDS_API_KEY):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "Invalid or missing API key",
                "code": ErrorCodes.UNAUTHORIZED,
                "details": [],
            },
        )

    return x_api_key


def get_db_path() -> Path:
    """Location of the booking store."""
    return DB_PATH


def get_db(db_path: Path = Depends(get_db_path)) -> Iterator[sqlite3.Connection]:
    """
    Open a booking store connection for one request.

    Raises:
        HTTPException: 503 if the store cannot be opened
    """
    if not Path(db_path).exists():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "Booking store not available",
                "code": ErrorCodes.STORE_UNAVAILABLE,
                "details": [f"Database not found at {db_path}"],
            },
        )
    try:
        conn = get_connection(db_path, check_same_thread=False)
    except StoreUnavailableError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "Booking store not available",
                "code": ErrorCodes.STORE_UNAVAILABLE,
                "details": [str(e)],
            },
        )
    try:
        yield conn
    finally:
        conn.close()
