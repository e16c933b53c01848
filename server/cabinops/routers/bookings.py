"""Booking router for lifecycle, query, and reporting operations."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import (
    BookingCreateRateLimit,
    DatabaseSession,
    IdentityProvider,
    MutationRateLimit,
)
from ..core.exceptions import ApiException, InternalServerError, ValidationError
from ..schemas.booking import (
    BookingSortField,
    CreateBookingRequest,
    PatchBookingRequest,
    QuoteRequest,
    SortOrder,
    UpdateBookingRequest,
)
from ..schemas.common import ErrorResponse, envelope
from ..schemas.stats import AnalyticsPeriod, BookingAnalytics, BookingStats
from ..services.booking_service import MAX_PAGE_SIZE, BookingService
from ..services.identity import IdentityResolver
from ..services.stats_service import StatsService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/bookings",
    tags=["bookings"],
    responses={
        400: {"model": ErrorResponse, "description": "Validation, policy or state error"},
        404: {"model": ErrorResponse, "description": "Booking or cabin not found"},
        409: {"model": ErrorResponse, "description": "Cabin already booked for the dates"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "Unexpected failure"},
    },
)


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


def _read_failure(message: str, empty) -> JSONResponse:
    # Reads keep their data shape so dashboard tables and charts render empty
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": message, "data": empty},
    )


def _internal_error(message: str, e: Exception, **context) -> InternalServerError:
    logger.error(
        message,
        extra={**context, "error": str(e)},
        exc_info=True
    )
    return InternalServerError()


@router.get("")
async def list_bookings(
    booking_status: Optional[str] = Query(None, alias="status", description="Status filter or 'all'"),
    search: Optional[str] = Query(None, max_length=200),
    sort_by: BookingSortField = Query(BookingSortField.CHECK_IN_DATE, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    db: AsyncSession = DatabaseSession,
    identity: IdentityResolver = IdentityProvider,
) -> JSONResponse:
    """List bookings with filters, search, sorting and pagination."""
    booking_service = BookingService(db, identity)

    try:
        items, pagination = await booking_service.list_bookings(
            status=booking_status,
            search=search,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            limit=limit,
        )
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=envelope([_dump(item) for item in items], pagination),
        )

    except ApiException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error listing bookings",
            extra={"status": booking_status, "search": search, "error": str(e)},
            exc_info=True
        )
        return _read_failure("Failed to fetch bookings", [])


@router.post("", dependencies=[BookingCreateRateLimit])
async def create_booking(
    request: CreateBookingRequest,
    db: AsyncSession = DatabaseSession,
    identity: IdentityResolver = IdentityProvider,
) -> JSONResponse:
    """
    Create a booking.

    Derived amounts in the payload are ignored and recomputed.
    """
    booking_service = BookingService(db, identity)

    try:
        booking = await booking_service.create_booking(request)
        detail = await booking_service.enrich(booking)
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content=envelope(_dump(detail)),
        )

    except ApiException:
        raise

    except Exception as e:
        raise _internal_error(
            "Unexpected error in booking creation", e,
            cabin_id=str(request.cabin_id), customer_id=request.customer_id
        ) from e


@router.put("", dependencies=[MutationRateLimit])
async def update_booking(
    request: UpdateBookingRequest,
    db: AsyncSession = DatabaseSession,
    identity: IdentityResolver = IdentityProvider,
) -> JSONResponse:
    """
    Update a booking identified by ``id`` in the body.

    Payloads carrying only ``status`` and/or ``recordPayment`` take the
    lifecycle path.
    """
    booking_service = BookingService(db, identity)

    try:
        booking = await booking_service.update_booking(request)
        detail = await booking_service.enrich(booking)
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=envelope(_dump(detail)),
        )

    except ApiException:
        raise

    except Exception as e:
        raise _internal_error(
            "Unexpected error in booking update", e, booking_id=str(request.id)
        ) from e


@router.delete("", dependencies=[MutationRateLimit])
async def delete_booking(
    booking_id: Optional[str] = Query(None, alias="id"),
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Hard-delete a booking."""
    if not booking_id:
        raise ValidationError(detail="Booking ID is required")
    try:
        booking_uuid = UUID(booking_id)
    except ValueError:
        raise ValidationError(detail="Invalid booking ID")

    booking_service = BookingService(db)

    try:
        booking = await booking_service.delete_booking(booking_uuid)
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=envelope({"id": str(booking.id), "deleted": True}),
        )

    except ApiException:
        raise

    except Exception as e:
        raise _internal_error(
            "Unexpected error in booking deletion", e, booking_id=booking_id
        ) from e


@router.get("/stats")
async def booking_stats(db: AsyncSession = DatabaseSession) -> JSONResponse:
    """Today's arrivals and departures plus in-house and pending counts."""
    try:
        stats = await StatsService(db).get_today_stats()
        return JSONResponse(status_code=status.HTTP_200_OK, content=envelope(_dump(stats)))

    except ApiException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error computing booking stats",
            extra={"error": str(e)},
            exc_info=True
        )
        return _read_failure("Failed to fetch booking stats", _dump(BookingStats.empty()))


@router.get("/analytics")
async def booking_analytics(
    period: AnalyticsPeriod = Query(AnalyticsPeriod.MONTH),
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Reporting aggregates over a look-back period."""
    try:
        analytics = await StatsService(db).get_analytics(period)
        return JSONResponse(status_code=status.HTTP_200_OK, content=envelope(_dump(analytics)))

    except ApiException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error computing booking analytics",
            extra={"period": period.value, "error": str(e)},
            exc_info=True
        )
        return _read_failure(
            "Failed to fetch booking analytics", _dump(BookingAnalytics.empty(period))
        )


@router.get("/by-email")
async def booking_by_email(
    email: Optional[str] = Query(None, max_length=320),
    db: AsyncSession = DatabaseSession,
    identity: IdentityResolver = IdentityProvider,
) -> JSONResponse:
    """Most recent booking of the customer registered under ``email``."""
    booking_service = BookingService(db, identity)

    try:
        detail = await booking_service.get_latest_booking_by_email(email)
        return JSONResponse(status_code=status.HTTP_200_OK, content=envelope(_dump(detail)))

    except ApiException:
        raise

    except Exception as e:
        raise _internal_error("Unexpected error fetching booking by email", e) from e


@router.post("/quote")
async def quote_booking(
    request: QuoteRequest,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Price breakdown for a prospective stay; nothing is stored."""
    booking_service = BookingService(db)

    try:
        breakdown = await booking_service.quote(request)
        return JSONResponse(status_code=status.HTTP_200_OK, content=envelope(_dump(breakdown)))

    except ApiException:
        raise

    except Exception as e:
        raise _internal_error(
            "Unexpected error in booking quote", e, cabin_id=str(request.cabin_id)
        ) from e


@router.get("/{booking_id}")
async def get_booking(
    booking_id: UUID,
    db: AsyncSession = DatabaseSession,
    identity: IdentityResolver = IdentityProvider,
) -> JSONResponse:
    """Fetch one booking with its customer profile and cabin name."""
    booking_service = BookingService(db, identity)

    try:
        detail = await booking_service.get_booking_detail(booking_id)
        return JSONResponse(status_code=status.HTTP_200_OK, content=envelope(_dump(detail)))

    except ApiException:
        raise

    except Exception as e:
        raise _internal_error(
            "Unexpected error fetching booking", e, booking_id=str(booking_id)
        ) from e


@router.patch("/{booking_id}", dependencies=[MutationRateLimit])
async def patch_booking(
    booking_id: UUID,
    request: PatchBookingRequest,
    db: AsyncSession = DatabaseSession,
    identity: IdentityResolver = IdentityProvider,
) -> JSONResponse:
    """Apply a status transition and/or record a payment."""
    booking_service = BookingService(db, identity)

    try:
        booking = await booking_service.patch_booking(booking_id, request)
        detail = await booking_service.enrich(booking)
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=envelope(_dump(detail)),
        )

    except ApiException:
        raise

    except Exception as e:
        raise _internal_error(
            "Unexpected error patching booking", e, booking_id=str(booking_id)
        ) from e
