"""Effective booking policy rules."""

from typing import Optional

from pydantic import Field

from ..models.policy import BookingPolicy
from .common import CamelModel


class PolicyRules(CamelModel):
    """
    Rules the booking engine applies, derived from the stored policy.

    ``None`` bounds mean "no constraint"; this is what the engine works with
    when no policy document exists.
    """

    min_booking_length: Optional[int] = Field(None, ge=1)
    max_booking_length: Optional[int] = Field(None, ge=1)
    max_guests_per_booking: Optional[int] = Field(None, ge=1)
    breakfast_price: float = Field(0, ge=0)
    pet_fee: float = Field(0, ge=0)
    parking_fee: float = Field(0, ge=0)
    parking_included: bool = False
    early_check_in_fee: float = Field(0, ge=0)
    late_check_out_fee: float = Field(0, ge=0)
    require_deposit: bool = False
    deposit_percentage: float = Field(0, ge=0, le=100)

    @classmethod
    def from_model(cls, policy: BookingPolicy) -> "PolicyRules":
        return cls(
            min_booking_length=policy.min_booking_length,
            max_booking_length=policy.max_booking_length,
            max_guests_per_booking=policy.max_guests_per_booking,
            breakfast_price=policy.breakfast_price,
            pet_fee=policy.pet_fee,
            parking_fee=policy.parking_fee,
            parking_included=policy.parking_included,
            early_check_in_fee=policy.early_check_in_fee,
            late_check_out_fee=policy.late_check_out_fee,
            require_deposit=policy.require_deposit,
            deposit_percentage=policy.deposit_percentage,
        )

    @classmethod
    def unconstrained(cls, max_guests_per_booking: Optional[int] = None) -> "PolicyRules":
        """Rules used when no policy document exists."""
        return cls(max_guests_per_booking=max_guests_per_booking)
