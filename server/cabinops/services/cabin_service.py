"""Read access to the cabin directory."""

import logging
from datetime import date, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import is_postgresql
from ..core.exceptions import NotFoundError, ValidationError
from ..models.cabin import Cabin
from ..schemas.stats import CabinAvailability, DateRange
from .overlap import OverlapChecker

logger = logging.getLogger(__name__)

AVAILABILITY_WINDOW_DAYS = 183


class CabinService:
    """Service for cabin lookups needed by the booking engine."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_cabin_by_id(self, cabin_id: UUID) -> Optional[Cabin]:
        """
        Get cabin by ID.

        Args:
            cabin_id: Cabin ID to search for

        Returns:
            Cabin if found, None otherwise
        """
        stmt = select(Cabin).where(Cabin.id == cabin_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_cabin_by_id_or_raise(self, cabin_id: UUID) -> Cabin:
        """
        Get cabin by ID or raise NotFoundError.

        Args:
            cabin_id: Cabin ID to search for

        Returns:
            Cabin entity

        Raises:
            NotFoundError: If cabin not found
        """
        cabin = await self.get_cabin_by_id(cabin_id)
        if not cabin:
            logger.warning(
                "Cabin not found",
                extra={"cabin_id": str(cabin_id)}
            )
            raise NotFoundError(
                resource_type="cabin",
                resource_id=str(cabin_id)
            )
        return cabin

    async def get_cabin_with_lock(self, cabin_id: UUID) -> Cabin:
        """
        Get cabin by ID holding a transaction-scoped advisory lock.

        Serializes booking writes for one cabin on PostgreSQL. Other backends
        rely on the unique night ledger alone.

        Raises:
            NotFoundError: If cabin not found
        """
        if is_postgresql(self.db):
            await self.db.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:cabin_id))"),
                {"cabin_id": str(cabin_id)}
            )

        cabin = await self.get_cabin_by_id_or_raise(cabin_id)

        logger.debug(
            "Acquired advisory lock for cabin",
            extra={"cabin_id": str(cabin_id)}
        )

        return cabin

    async def get_availability(
        self,
        cabin_id: UUID,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> CabinAvailability:
        """
        Occupied date ranges of a cabin within a window.

        The window defaults to today through six months ahead.

        Raises:
            NotFoundError: If cabin not found
            ValidationError: If the window is empty
        """
        await self.get_cabin_by_id_or_raise(cabin_id)

        start = start or date.today()
        end = end or start + timedelta(days=AVAILABILITY_WINDOW_DAYS)
        if end <= start:
            raise ValidationError(detail="End date must be after start date")

        ranges = await OverlapChecker(self.db).unavailable_ranges(cabin_id, start, end)
        return CabinAvailability(
            cabin_id=cabin_id,
            unavailable_dates=[DateRange(start=s, end=e) for s, e in ranges],
            query_range=DateRange(start=start, end=end),
        )
