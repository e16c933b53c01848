"""Service layer package."""

from .booking_service import BookingService
from .cabin_service import CabinService
from .identity import IdentityLookup, IdentityResolver
from .lifecycle import LifecycleManager
from .overlap import OverlapChecker
from .policy_service import PolicyService
from .stats_service import StatsService
from .validation import BookingValidator

__all__ = [
    "BookingService",
    "BookingValidator",
    "CabinService",
    "IdentityLookup",
    "IdentityResolver",
    "LifecycleManager",
    "OverlapChecker",
    "PolicyService",
    "StatsService",
]
