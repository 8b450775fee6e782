"""FastAPI application entry point for the records API."""

import warnings
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models.responses import ErrorCodes, ErrorResponse
from api.routes import compliance_router, health_router
from api.routes.health import database_available
from core.config import API_DEBUG, API_VERSION, DB_PATH
from core.errors import StoreUnavailableError


@asynccontextmanager
async def lifespan(app: FastAPI):
    # The API never creates the store; init_db.py does
    if not database_available(DB_PATH):
        warnings.warn(f"Booking store not ready at {DB_PATH}; run scripts/init_db.py")
    yield


app = FastAPI(
    title="Tour Records Reconciliation API",
    description="Read-only access to compliance gaps over imported tour bookings",
    version=API_VERSION,
    debug=API_DEBUG,
    lifespan=lifespan,
)

if API_DEBUG:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["X-API-Key"],
    )


def _error_response(status_code: int, error: str, code: str, details: list[str]) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, code=code, details=details).model_dump(),
    )


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    return _error_response(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Booking store not available",
        ErrorCodes.STORE_UNAVAILABLE,
        [str(exc)],
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Anything unexpected becomes a 500 in the standard error shape."""
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        ErrorCodes.INTERNAL_ERROR,
        [],
    )


app.include_router(health_router)
app.include_router(compliance_router)


if __name__ == "__main__":
    import uvicorn

    from core.config import API_HOST, API_PORT

    uvicorn.run("api.main:app", host=API_HOST, port=API_PORT, reload=API_DEBUG)
