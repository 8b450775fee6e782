"""API route modules."""

from .compliance import router as compliance_router
from .health import router as health_router

__all__ = ["health_router", "compliance_router"]
