"""Models module exporting all database models."""

from .booking import Booking, BookingNight, BookingStatus, PaymentMethod
from .cabin import Cabin, CabinStatus
from .policy import BookingPolicy

__all__ = [
    # Directory entities
    "Cabin",
    "CabinStatus",
    "BookingPolicy",

    # Booking entities
    "Booking",
    "BookingNight",
    "BookingStatus",
    "PaymentMethod",
]
