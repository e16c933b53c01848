"""Cabin router exposing occupancy for booking calendars."""

import logging
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import DatabaseSession
from ..core.exceptions import ApiException, InternalServerError
from ..schemas.common import envelope
from ..services.cabin_service import CabinService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cabins", tags=["cabins"])


@router.get("/{cabin_id}/availability")
async def cabin_availability(
    cabin_id: UUID,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """
    Occupied date ranges of a cabin.

    Each range is half-open: its end date is a check-out day and can be
    booked as the next check-in.
    """
    cabin_service = CabinService(db)

    try:
        availability = await cabin_service.get_availability(cabin_id, start_date, end_date)
        return JSONResponse(
            status_code=200,
            content=envelope(availability.model_dump(mode="json", by_alias=True)),
        )

    except ApiException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error fetching cabin availability",
            extra={"cabin_id": str(cabin_id), "error": str(e)},
            exc_info=True
        )
        raise InternalServerError() from e
