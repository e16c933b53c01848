"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import ConfigDict, Field

from ..models.booking import Booking as BookingModel
from ..models.booking import BookingStatus, PaymentMethod
from .common import CamelModel
from .customer import CustomerProfile


class BookingSortField(str, Enum):
    """Columns a booking listing may be sorted by."""
    CHECK_IN_DATE = "checkInDate"
    CHECK_OUT_DATE = "checkOutDate"
    CREATED_AT = "createdAt"
    TOTAL_PRICE = "totalPrice"
    NUM_GUESTS = "numGuests"
    NUM_NIGHTS = "numNights"
    STATUS = "status"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ExtrasSelection(CamelModel):
    """
    Extras toggles sent by clients.

    Fee values may be present in client payloads but are always recomputed
    from the booking policy.
    """

    has_breakfast: bool = Field(False, description="Breakfast for every guest and night")
    has_pets: bool = Field(False, description="Guests bring pets")
    has_parking: bool = Field(False, description="Parking space")
    has_early_check_in: bool = Field(False, description="Early check-in")
    has_late_check_out: bool = Field(False, description="Late check-out")
    breakfast_price: Optional[float] = Field(None, ge=0, description="Ignored, recomputed")
    pet_fee: Optional[float] = Field(None, ge=0, description="Ignored, recomputed")
    parking_fee: Optional[float] = Field(None, ge=0, description="Ignored, recomputed")
    early_check_in_fee: Optional[float] = Field(None, ge=0, description="Ignored, recomputed")
    late_check_out_fee: Optional[float] = Field(None, ge=0, description="Ignored, recomputed")


class BookingExtras(CamelModel):
    """Extras toggles together with their computed fees."""

    has_breakfast: bool
    breakfast_price: float
    has_pets: bool
    pet_fee: float
    has_parking: bool
    parking_fee: float
    has_early_check_in: bool
    early_check_in_fee: float
    has_late_check_out: bool
    late_check_out_fee: float


class RecordPaymentRequest(CamelModel):
    """A payment received for a booking."""

    payment_method: PaymentMethod = Field(..., description="How the guest paid")
    amount_paid: float = Field(..., gt=0, description="Amount received, must be positive")
    notes: Optional[str] = Field(None, max_length=500, description="Appended to the booking observations")


class CreateBookingRequest(CamelModel):
    """Request schema for creating a booking."""

    cabin_id: UUID = Field(..., description="Cabin to reserve")
    customer_id: str = Field(..., min_length=1, max_length=128, description="Opaque customer identifier")
    check_in_date: date = Field(..., description="Arrival date")
    check_out_date: date = Field(..., description="Departure date, after the arrival date")
    num_guests: int = Field(..., ge=1, le=50, description="Number of guests")
    extras: ExtrasSelection = Field(default_factory=ExtrasSelection, description="Extras selection")
    payment_method: Optional[PaymentMethod] = Field(None, description="Payment method of an upfront payment")
    deposit_paid: bool = Field(False, description="Whether an upfront payment was received")
    deposit_amount: float = Field(0, ge=0, description="Amount already paid at creation")
    observations: Optional[str] = Field(None, max_length=1000, description="Free-text notes")
    special_requests: list[str] = Field(default_factory=list, description="Ordered guest requests")

    # Derived values; accepted for compatibility, recomputed server-side
    num_nights: Optional[int] = Field(None, ge=1, description="Ignored, recomputed from dates")
    cabin_price: Optional[float] = Field(None, ge=0, description="Ignored, recomputed")
    extras_price: Optional[float] = Field(None, ge=0, description="Ignored, recomputed")
    total_price: Optional[float] = Field(None, ge=0, description="Ignored, recomputed")
    remaining_amount: Optional[float] = Field(None, ge=0, description="Ignored, recomputed")
    is_paid: Optional[bool] = Field(None, description="Ignored, recomputed")


class UpdateBookingRequest(CamelModel):
    """Request schema for a full booking update; only present fields change."""

    # Unknown keys such as cabinName are kept in model_extra and force the full profile
    model_config = ConfigDict(extra="allow")

    id: UUID = Field(..., description="Booking to update")
    cabin_id: Optional[UUID] = Field(None, description="Move the stay to another cabin")
    customer_id: Optional[str] = Field(None, min_length=1, max_length=128)
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    num_guests: Optional[int] = Field(None, ge=1, le=50)
    status: Optional[BookingStatus] = None
    extras: Optional[ExtrasSelection] = None
    payment_method: Optional[PaymentMethod] = None
    deposit_paid: Optional[bool] = None
    deposit_amount: Optional[float] = Field(None, ge=0)
    observations: Optional[str] = Field(None, max_length=1000)
    special_requests: Optional[list[str]] = None
    record_payment: Optional[RecordPaymentRequest] = None

    # Derived values; accepted for compatibility, recomputed server-side
    num_nights: Optional[int] = Field(None, ge=1)
    cabin_price: Optional[float] = Field(None, ge=0)
    extras_price: Optional[float] = Field(None, ge=0)
    total_price: Optional[float] = Field(None, ge=0)
    remaining_amount: Optional[float] = Field(None, ge=0)
    is_paid: Optional[bool] = None


class PatchBookingRequest(CamelModel):
    """Partial update: a status transition and/or a payment record."""

    status: Optional[BookingStatus] = Field(None, description="Target status")
    record_payment: Optional[RecordPaymentRequest] = Field(None, description="Payment to record")


class QuoteRequest(CamelModel):
    """Prospective stay to price without booking it."""

    cabin_id: UUID
    check_in_date: date
    check_out_date: date
    num_guests: int = Field(..., ge=1, le=50)
    extras: ExtrasSelection = Field(default_factory=ExtrasSelection)


class PriceBreakdown(CamelModel):
    """Price of a stay, itemised."""

    num_nights: int
    num_guests: int
    effective_cabin_rate: float
    cabin_price: float
    breakfast_fee: float
    pet_fee: float
    parking_fee: float
    early_check_in_fee: float
    late_check_out_fee: float
    extras_price: float
    total_price: float
    deposit_amount: float = Field(..., description="Deposit required by policy")


class Booking(CamelModel):
    """Booking response schema."""

    id: UUID
    cabin_id: UUID
    customer_id: str
    check_in_date: date
    check_out_date: date
    num_nights: int
    num_guests: int
    status: BookingStatus
    cabin_price: float
    extras_price: float
    total_price: float
    is_paid: bool
    payment_method: Optional[PaymentMethod] = None
    deposit_paid: bool
    deposit_amount: float
    remaining_amount: float
    extras: BookingExtras
    observations: Optional[str] = None
    special_requests: list[str] = Field(default_factory=list)
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    payment_status: str
    duration_text: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, booking: BookingModel) -> "Booking":
        return cls(
            id=booking.id,
            cabin_id=booking.cabin_id,
            customer_id=booking.customer_id,
            check_in_date=booking.check_in_date,
            check_out_date=booking.check_out_date,
            num_nights=booking.num_nights,
            num_guests=booking.num_guests,
            status=booking.status,
            cabin_price=booking.cabin_price,
            extras_price=booking.extras_price,
            total_price=booking.total_price,
            is_paid=booking.is_paid,
            payment_method=booking.payment_method,
            deposit_paid=booking.deposit_paid,
            deposit_amount=booking.deposit_amount,
            remaining_amount=booking.remaining_amount,
            extras=BookingExtras(
                has_breakfast=booking.has_breakfast,
                breakfast_price=booking.breakfast_price,
                has_pets=booking.has_pets,
                pet_fee=booking.pet_fee,
                has_parking=booking.has_parking,
                parking_fee=booking.parking_fee,
                has_early_check_in=booking.has_early_check_in,
                early_check_in_fee=booking.early_check_in_fee,
                has_late_check_out=booking.has_late_check_out,
                late_check_out_fee=booking.late_check_out_fee,
            ),
            observations=booking.observations,
            special_requests=list(booking.special_requests or []),
            check_in_time=booking.check_in_time,
            check_out_time=booking.check_out_time,
            payment_status=booking.payment_status,
            duration_text=booking.duration_text,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class BookingDetail(Booking):
    """Booking enriched with the best-effort customer profile and cabin name."""

    cabin_name: Optional[str] = None
    customer: Optional[CustomerProfile] = None
    guest: Optional[CustomerProfile] = None
    customer_lookup_failed: bool = False

    @classmethod
    def build(
        cls,
        booking: BookingModel,
        customer: Optional[CustomerProfile] = None,
        lookup_failed: bool = False,
    ) -> "BookingDetail":
        base = Booking.from_model(booking)
        cabin = booking.cabin
        return cls(
            **base.model_dump(),
            cabin_name=cabin.name if cabin is not None else None,
            customer=customer,
            guest=customer,
            customer_lookup_failed=lookup_failed,
        )
