"""Cabin model definition."""

from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Float, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from ..core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CabinStatus(str, Enum):
    """Cabin availability flag."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class Cabin(Base):
    """Cabin directory record. Owned by the cabin catalogue, read-only here."""

    __tablename__ = "cabins"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Cabin information
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    discount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    status: Mapped[CabinStatus] = mapped_column(
        String(20),
        nullable=False,
        default=CabinStatus.ACTIVE,
        index=True
    )
    image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

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
        CheckConstraint("capacity >= 1", name="ck_cabin_capacity_min"),
        CheckConstraint("capacity <= 20", name="ck_cabin_capacity_max"),
        CheckConstraint("price >= 0", name="ck_cabin_price_non_negative"),
        CheckConstraint("discount >= 0", name="ck_cabin_discount_non_negative"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == CabinStatus.ACTIVE

    def __repr__(self) -> str:
        return (
            f"<Cabin(id={self.id}, name='{self.name}', capacity={self.capacity}, "
            f"price={self.price}, status={self.status})>"
        )
