"""Booking and booking-night model definitions."""

from datetime import date, datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .cabin import Cabin


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    UNCONFIRMED = "unconfirmed"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked-in"
    CHECKED_OUT = "checked-out"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    """Accepted payment methods."""
    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank-transfer"
    ONLINE = "online"


class Booking(Base):
    """Booking entity representing one reservation of a cabin."""

    __tablename__ = "bookings"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # References
    cabin_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("cabins.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    customer_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    # Stay
    check_in_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    check_out_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    num_nights: Mapped[int] = mapped_column(Integer, nullable=False)
    num_guests: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        String(20),
        nullable=False,
        default=BookingStatus.UNCONFIRMED,
        index=True
    )

    # Pricing
    cabin_price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    extras_price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_price: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    # Extras toggles and their computed fees
    has_breakfast: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    breakfast_price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    has_pets: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pet_fee: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    has_parking: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    parking_fee: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    has_early_check_in: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    early_check_in_fee: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    has_late_check_out: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    late_check_out_fee: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    # Payment reconciliation
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    payment_method: Mapped[PaymentMethod | None] = mapped_column(String(20), nullable=True)
    deposit_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # Cumulative amount paid so far, not just the initial deposit
    deposit_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    remaining_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    # Notes
    observations: Mapped[str | None] = mapped_column(Text, nullable=True)
    special_requests: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # Lifecycle timestamps
    check_in_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    check_out_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
        index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now()
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("check_out_date > check_in_date", name="ck_booking_dates_ordered"),
        CheckConstraint("num_nights >= 1", name="ck_booking_nights_positive"),
        CheckConstraint("num_guests >= 1", name="ck_booking_guests_positive"),
        CheckConstraint("total_price >= 0", name="ck_booking_total_non_negative"),
        CheckConstraint("deposit_amount >= 0", name="ck_booking_deposit_non_negative"),
        CheckConstraint("remaining_amount >= 0", name="ck_booking_remaining_non_negative"),
    )

    # Relationships
    cabin: Mapped["Cabin"] = relationship("Cabin", lazy="selectin")

    @property
    def payment_status(self) -> str:
        if self.is_paid:
            return "paid"
        if self.deposit_paid:
            return "partial"
        return "unpaid"

    @property
    def duration_text(self) -> str:
        return f"{self.num_nights} night{'s' if self.num_nights > 1 else ''}"

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, cabin_id={self.cabin_id}, "
            f"{self.check_in_date}->{self.check_out_date}, status={self.status})>"
        )


class BookingNight(Base):
    """
    One occupied night of a non-cancelled booking.

    The unique (cabin_id, night) key makes the database reject a second
    booking for the same cabin and night even when two requests pass the
    overlap check concurrently.
    """

    __tablename__ = "booking_nights"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    cabin_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    night: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (
        UniqueConstraint("cabin_id", "night", name="uq_booking_night_cabin_night"),
    )

    def __repr__(self) -> str:
        return f"<BookingNight(cabin_id={self.cabin_id}, night={self.night}, booking_id={self.booking_id})>"
