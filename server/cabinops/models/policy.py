"""Booking policy model definition."""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Float, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingPolicy(Base):
    """
    The single active business-rule document applied to bookings.

    Managed by the settings screen; the booking engine only reads it.
    """

    __tablename__ = "booking_policies"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Stay bounds
    min_booking_length: Mapped[int] = mapped_column(Integer, nullable=False)
    max_booking_length: Mapped[int] = mapped_column(Integer, nullable=False)
    max_guests_per_booking: Mapped[int] = mapped_column(Integer, nullable=False)

    # Extras fee schedule
    breakfast_price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    pet_fee: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    parking_fee: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    parking_included: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    early_check_in_fee: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    late_check_out_fee: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    # Deposit rule
    require_deposit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    deposit_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0)

    # Informational
    check_in_time: Mapped[str] = mapped_column(String(5), nullable=False, default="15:00")
    check_out_time: Mapped[str] = mapped_column(String(5), nullable=False, default="11:00")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=_utcnow,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now()
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("min_booking_length >= 1", name="ck_policy_min_length_positive"),
        CheckConstraint("max_booking_length >= min_booking_length", name="ck_policy_max_length_gte_min"),
        CheckConstraint("max_guests_per_booking >= 1", name="ck_policy_max_guests_positive"),
        CheckConstraint(
            "deposit_percentage >= 0 AND deposit_percentage <= 100",
            name="ck_policy_deposit_percentage_range"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<BookingPolicy(id={self.id}, length={self.min_booking_length}-{self.max_booking_length}, "
            f"max_guests={self.max_guests_per_booking}, deposit={self.deposit_percentage}%)>"
        )
