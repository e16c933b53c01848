"""FastAPI routers package."""

from .bookings import router as bookings_router
from .cabins import router as cabins_router
from .health import router as health_router
from .metrics import router as metrics_router

__all__ = [
    "bookings_router",
    "cabins_router",
    "health_router",
    "metrics_router",
]
