"""Business-rule validation of booking payloads."""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import AbstractSet, Optional

from ..core.exceptions import InvalidStateError, PolicyViolationError, ValidationError
from ..models.cabin import Cabin
from ..schemas.policy import PolicyRules
from .pricing import count_nights

logger = logging.getLogger(__name__)

# Fields a lifecycle-only update may carry besides the booking id
STATUS_TRANSITION_FIELDS = frozenset({"status", "record_payment"})


class ValidationProfile(str, Enum):
    """Which rule set applies to a payload."""
    FULL = "full"
    STATUS_TRANSITION = "status-transition"


def select_profile(fields_set: AbstractSet[str]) -> ValidationProfile:
    """
    Pick the validation profile from the fields present in an update payload.

    Args:
        fields_set: Names of the fields the client actually sent (``id`` excluded)

    Returns:
        STATUS_TRANSITION when only status and/or a payment record are present
    """
    if fields_set and set(fields_set) <= STATUS_TRANSITION_FIELDS:
        return ValidationProfile.STATUS_TRANSITION
    return ValidationProfile.FULL


@dataclass(frozen=True)
class StayRequest:
    """The parts of a booking the full profile checks."""

    check_in_date: date
    check_out_date: date
    num_guests: int


class BookingValidator:
    """Applies cabin and policy rules to a prospective stay."""

    def __init__(self, rules: PolicyRules):
        self.rules = rules

    def validate_dates(self, check_in_date: date, check_out_date: date) -> int:
        """Ensure the stay is at least one night long and return its length."""
        if check_out_date <= check_in_date:
            raise ValidationError(
                detail="Check-out date must be after check-in date",
                details=[{"path": "checkOutDate", "message": "Check-out date must be after check-in date"}],
            )
        return count_nights(check_in_date, check_out_date)

    def validate_cabin(self, cabin: Cabin) -> None:
        if not cabin.is_active:
            logger.info(
                "Booking rejected for inactive cabin",
                extra={"cabin_id": str(cabin.id)}
            )
            raise InvalidStateError(f"Cabin '{cabin.name}' is inactive and cannot be booked")

    def validate_guests(self, num_guests: int, cabin: Cabin) -> None:
        """Guest count must fit both the cabin and the policy cap."""
        limit: Optional[int] = cabin.capacity
        rule = "capacity"
        policy_cap = self.rules.max_guests_per_booking
        if policy_cap is not None and policy_cap < limit:
            limit = policy_cap
            rule = "maxGuestsPerBooking"

        if num_guests > limit:
            raise PolicyViolationError(
                detail=f"Number of guests cannot exceed {limit}",
                rule=rule,
                limit=limit,
            )

    def validate_length(self, num_nights: int) -> None:
        min_length = self.rules.min_booking_length
        max_length = self.rules.max_booking_length

        if min_length is not None and num_nights < min_length:
            raise PolicyViolationError(
                detail=f"Minimum booking length is {min_length} nights",
                rule="minBookingLength",
                limit=min_length,
            )
        if max_length is not None and num_nights > max_length:
            raise PolicyViolationError(
                detail=f"Maximum booking length is {max_length} nights",
                rule="maxBookingLength",
                limit=max_length,
            )

    def validate_stay(self, stay: StayRequest, cabin: Cabin) -> int:
        """
        Run the full profile against a stay.

        Args:
            stay: Dates and guest count to check
            cabin: Cabin the stay is for

        Returns:
            Number of nights of the stay

        Raises:
            ValidationError: If the dates are not ordered
            InvalidStateError: If the cabin is inactive
            PolicyViolationError: If a guest or length bound is exceeded
        """
        num_nights = self.validate_dates(stay.check_in_date, stay.check_out_date)
        self.validate_cabin(cabin)
        self.validate_guests(stay.num_guests, cabin)
        self.validate_length(num_nights)
        return num_nights
