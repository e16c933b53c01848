"""Read access to the active booking policy."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..models.policy import BookingPolicy
from ..schemas.policy import PolicyRules

logger = logging.getLogger(__name__)


class PolicyService:
    """Service exposing the policy document as effective rules."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_policy(self) -> Optional[BookingPolicy]:
        """Return the stored policy document, or None if there is none."""
        stmt = select(BookingPolicy).order_by(BookingPolicy.created_at).limit(1)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_rules(self) -> PolicyRules:
        """
        Return the rules to apply to bookings.

        A missing policy document is not an error: bookings are then only
        bounded by cabin capacity and the configured fallback guest cap.
        """
        policy = await self.get_policy()
        if policy is None:
            logger.warning(
                "No booking policy found, applying unconstrained rules",
                extra={"fallback_max_guests": settings.fallback_max_guests_per_booking}
            )
            return PolicyRules.unconstrained(settings.fallback_max_guests_per_booking)
        return PolicyRules.from_model(policy)
