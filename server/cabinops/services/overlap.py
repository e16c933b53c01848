"""Date-range conflict detection for cabin bookings."""

import logging
from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.booking import Booking, BookingNight, BookingStatus

logger = logging.getLogger(__name__)


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """
    Half-open interval intersection of [a_start, a_end) and [b_start, b_end).

    A stay ending on the day another one starts does not overlap it.
    """
    return a_start < b_end and a_end > b_start


def nights_of(check_in_date: date, check_out_date: date) -> list[date]:
    """Nights occupied by a stay, check-out day excluded."""
    return [
        check_in_date + timedelta(days=offset)
        for offset in range((check_out_date - check_in_date).days)
    ]


class OverlapChecker:
    """Queries and maintains cabin occupancy over the booking store."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_overlapping(
        self,
        cabin_id: UUID,
        check_in_date: date,
        check_out_date: date,
        exclude_booking_id: UUID | None = None,
    ) -> list[Booking]:
        """
        Find non-cancelled bookings of a cabin intersecting [check_in, check_out).

        Args:
            cabin_id: Cabin to check
            check_in_date: Start of the requested range
            check_out_date: End of the requested range (exclusive)
            exclude_booking_id: Booking to ignore, used when a booking moves

        Returns:
            Conflicting bookings ordered by check-in date
        """
        stmt = select(Booking).where(
            Booking.cabin_id == cabin_id,
            Booking.status != BookingStatus.CANCELLED,
            Booking.check_in_date < check_out_date,
            Booking.check_out_date > check_in_date,
        )
        if exclude_booking_id is not None:
            stmt = stmt.where(Booking.id != exclude_booking_id)
        stmt = stmt.order_by(Booking.check_in_date)

        result = await self.db.execute(stmt)
        conflicts = list(result.scalars())

        if conflicts:
            logger.info(
                "Overlapping bookings found",
                extra={
                    "cabin_id": str(cabin_id),
                    "check_in_date": check_in_date.isoformat(),
                    "check_out_date": check_out_date.isoformat(),
                    "conflict_ids": [str(b.id) for b in conflicts],
                }
            )

        return conflicts

    async def unavailable_ranges(
        self,
        cabin_id: UUID,
        start: date,
        end: date,
    ) -> list[tuple[date, date]]:
        """Occupied [check_in, check_out) ranges of a cabin within a window."""
        stmt = (
            select(Booking.check_in_date, Booking.check_out_date)
            .where(
                Booking.cabin_id == cabin_id,
                Booking.status != BookingStatus.CANCELLED,
                Booking.check_in_date < end,
                Booking.check_out_date > start,
            )
            .order_by(Booking.check_in_date)
        )
        result = await self.db.execute(stmt)
        return [(row.check_in_date, row.check_out_date) for row in result]

    async def reserve_nights(self, booking: Booking) -> None:
        """
        Record the nights held by a booking in the night ledger.

        The rows are flushed immediately so a unique-key violation surfaces
        here, inside the caller's transaction, rather than at commit.
        """
        self.db.add_all(
            BookingNight(booking_id=booking.id, cabin_id=booking.cabin_id, night=night)
            for night in nights_of(booking.check_in_date, booking.check_out_date)
        )
        await self.db.flush()

    async def release_nights(self, booking_id: UUID) -> None:
        """Drop every night held by a booking."""
        await self.db.execute(delete(BookingNight).where(BookingNight.booking_id == booking_id))
