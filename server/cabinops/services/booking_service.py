"""Booking service for business logic operations."""

import logging
import math
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, InternalServerError, NotFoundError, ValidationError
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingStatus
from ..models.cabin import Cabin
from ..schemas.booking import (
    BookingDetail,
    BookingSortField,
    CreateBookingRequest,
    ExtrasSelection,
    PatchBookingRequest,
    PriceBreakdown,
    QuoteRequest,
    SortOrder,
    UpdateBookingRequest,
)
from ..schemas.common import Pagination
from .cabin_service import CabinService
from .identity import IdentityResolver
from .lifecycle import LifecycleManager, ensure_transition
from .overlap import OverlapChecker
from .policy_service import PolicyService
from .pricing import calculate_price, remaining_amount
from .validation import BookingValidator, StayRequest, ValidationProfile, select_profile

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    BookingSortField.CHECK_IN_DATE: Booking.check_in_date,
    BookingSortField.CHECK_OUT_DATE: Booking.check_out_date,
    BookingSortField.CREATED_AT: Booking.created_at,
    BookingSortField.TOTAL_PRICE: Booking.total_price,
    BookingSortField.NUM_GUESTS: Booking.num_guests,
    BookingSortField.NUM_NIGHTS: Booking.num_nights,
    BookingSortField.STATUS: Booking.status,
}

MAX_PAGE_SIZE = 100


def _is_night_conflict(error: IntegrityError) -> bool:
    # SQLite names the table, PostgreSQL the constraint; both contain this
    return "booking_night" in str(error.orig)


class BookingService:
    """Service for booking-related operations."""

    def __init__(self, db: AsyncSession, identity: Optional[IdentityResolver] = None):
        self.db = db
        self.cabin_service = CabinService(db)
        self.policy_service = PolicyService(db)
        self.overlap = OverlapChecker(db)
        self.lifecycle = LifecycleManager(db)
        self.identity = identity or IdentityResolver()

    async def get_booking_by_id(self, booking_id: UUID) -> Optional[Booking]:
        """
        Get booking by ID.

        Args:
            booking_id: Booking ID to search for

        Returns:
            Booking if found, None otherwise
        """
        stmt = select(Booking).where(Booking.id == booking_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_booking_by_id_or_raise(self, booking_id: UUID) -> Booking:
        """
        Get booking by ID or raise NotFoundError.

        Raises:
            NotFoundError: If booking not found
        """
        booking = await self.get_booking_by_id(booking_id)
        if not booking:
            logger.warning(
                "Booking not found",
                extra={"booking_id": str(booking_id)}
            )
            raise NotFoundError(
                resource_type="booking",
                resource_id=str(booking_id)
            )
        return booking

    async def _ensure_available(
        self,
        cabin_id: UUID,
        check_in_date: date,
        check_out_date: date,
        exclude_booking_id: Optional[UUID] = None,
    ) -> None:
        conflicts = await self.overlap.find_overlapping(
            cabin_id, check_in_date, check_out_date, exclude_booking_id
        )
        if conflicts:
            metrics_collector.record_overlap_conflict()
            raise ConflictError(
                detail="Cabin is already booked for the selected dates",
                conflicting_resources=[
                    {
                        "bookingId": str(b.id),
                        "checkInDate": b.check_in_date.isoformat(),
                        "checkOutDate": b.check_out_date.isoformat(),
                    }
                    for b in conflicts
                ],
            )

    async def _commit(self, booking_id: UUID) -> None:
        """Commit, turning a night-ledger collision into a conflict."""
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self._handle_integrity_error(e, booking_id)

    async def _handle_integrity_error(self, error: IntegrityError, booking_id: UUID) -> None:
        await self.db.rollback()
        if not _is_night_conflict(error):
            raise error
        metrics_collector.record_overlap_conflict()
        logger.warning(
            "Booking write lost a race for the same nights",
            extra={"booking_id": str(booking_id)}
        )
        raise ConflictError(detail="Cabin is already booked for the selected dates") from error

    @staticmethod
    def _apply_price(booking: Booking, breakdown: PriceBreakdown, extras: ExtrasSelection) -> None:
        booking.num_nights = breakdown.num_nights
        booking.cabin_price = breakdown.cabin_price
        booking.extras_price = breakdown.extras_price
        booking.total_price = breakdown.total_price

        booking.has_breakfast = extras.has_breakfast
        booking.breakfast_price = breakdown.breakfast_fee
        booking.has_pets = extras.has_pets
        booking.pet_fee = breakdown.pet_fee
        booking.has_parking = extras.has_parking
        booking.parking_fee = breakdown.parking_fee
        booking.has_early_check_in = extras.has_early_check_in
        booking.early_check_in_fee = breakdown.early_check_in_fee
        booking.has_late_check_out = extras.has_late_check_out
        booking.late_check_out_fee = breakdown.late_check_out_fee

        booking.remaining_amount = remaining_amount(booking.total_price, booking.deposit_amount or 0)
        booking.is_paid = booking.remaining_amount == 0

    @staticmethod
    def _extras_of(booking: Booking) -> ExtrasSelection:
        return ExtrasSelection(
            has_breakfast=booking.has_breakfast,
            has_pets=booking.has_pets,
            has_parking=booking.has_parking,
            has_early_check_in=booking.has_early_check_in,
            has_late_check_out=booking.has_late_check_out,
        )

    async def _price_stay(
        self,
        cabin: Cabin,
        stay: StayRequest,
        extras: ExtrasSelection,
    ) -> PriceBreakdown:
        rules = await self.policy_service.get_rules()
        num_nights = BookingValidator(rules).validate_stay(stay, cabin)
        return calculate_price(
            cabin_price=cabin.price,
            cabin_discount=cabin.discount,
            rules=rules,
            num_nights=num_nights,
            num_guests=stay.num_guests,
            extras=extras,
        )

    async def quote(self, request: QuoteRequest) -> PriceBreakdown:
        """
        Price a prospective stay without writing anything.

        Raises:
            NotFoundError: If the cabin does not exist
            InvalidStateError: If the cabin is inactive
            PolicyViolationError: If a guest or length bound is exceeded
        """
        cabin = await self.cabin_service.get_cabin_by_id_or_raise(request.cabin_id)
        stay = StayRequest(request.check_in_date, request.check_out_date, request.num_guests)
        return await self._price_stay(cabin, stay, request.extras)

    async def create_booking(self, request: CreateBookingRequest) -> Booking:
        """
        Create a booking after validation, availability and pricing.

        Args:
            request: Booking creation request

        Returns:
            Created booking entity

        Raises:
            NotFoundError: If the cabin does not exist
            InvalidStateError: If the cabin is inactive
            ValidationError: If the dates are not ordered
            PolicyViolationError: If a guest or length bound is exceeded
            ConflictError: If the cabin is already booked on any of the nights
        """
        cabin = await self.cabin_service.get_cabin_with_lock(request.cabin_id)
        stay = StayRequest(request.check_in_date, request.check_out_date, request.num_guests)
        breakdown = await self._price_stay(cabin, stay, request.extras)

        await self._ensure_available(cabin.id, request.check_in_date, request.check_out_date)

        # Without an explicit amount the policy deposit is what the guest owes upfront
        deposit_given = "deposit_amount" in request.model_fields_set
        deposit_amount = request.deposit_amount if deposit_given else breakdown.deposit_amount

        booking = Booking(
            cabin_id=cabin.id,
            customer_id=request.customer_id,
            check_in_date=request.check_in_date,
            check_out_date=request.check_out_date,
            num_guests=request.num_guests,
            status=BookingStatus.UNCONFIRMED.value,
            payment_method=request.payment_method.value if request.payment_method else None,
            deposit_paid=request.deposit_paid or (deposit_given and deposit_amount > 0),
            deposit_amount=deposit_amount,
            observations=request.observations,
            special_requests=list(request.special_requests),
        )
        booking.cabin = cabin
        self._apply_price(booking, breakdown, request.extras)

        self.db.add(booking)
        try:
            await self.db.flush()
            await self.overlap.reserve_nights(booking)
        except IntegrityError as e:
            await self._handle_integrity_error(e, booking.id)
        await self._commit(booking.id)

        metrics_collector.record_booking_created()
        logger.info(
            "Booking created successfully",
            extra={
                "booking_id": str(booking.id),
                "cabin_id": str(cabin.id),
                "customer_id": booking.customer_id,
                "check_in_date": booking.check_in_date.isoformat(),
                "check_out_date": booking.check_out_date.isoformat(),
                "num_guests": booking.num_guests,
                "total_price": booking.total_price,
            }
        )

        return booking

    async def update_booking(self, request: UpdateBookingRequest) -> Booking:
        """
        Update a booking; only fields present in the payload change.

        A payload carrying nothing but ``status`` and/or ``recordPayment`` goes
        through the lifecycle path and skips the guest and length rules.

        Raises:
            NotFoundError: If the booking or the target cabin does not exist
            InvalidStateError: If the status transition is not allowed
            ConflictError: If the new dates or cabin collide with another stay
        """
        # Keys the schema does not know still count as a full edit
        fields = (request.model_fields_set | set(request.model_extra or {})) - {"id"}
        booking = await self.get_booking_by_id_or_raise(request.id)

        if select_profile(fields) == ValidationProfile.STATUS_TRANSITION:
            return await self._apply_lifecycle(booking, request.status, request.record_payment)

        target_status = request.status or BookingStatus(booking.status)
        ensure_transition(BookingStatus(booking.status), target_status)

        cabin_id = request.cabin_id or booking.cabin_id
        cabin = await self.cabin_service.get_cabin_with_lock(cabin_id)

        check_in_date = request.check_in_date or booking.check_in_date
        check_out_date = request.check_out_date or booking.check_out_date
        num_guests = request.num_guests or booking.num_guests
        extras = request.extras if request.extras is not None else self._extras_of(booking)

        stay_changed = (
            cabin_id != booking.cabin_id
            or check_in_date != booking.check_in_date
            or check_out_date != booking.check_out_date
        )
        holds_nights = (
            BookingStatus(booking.status) != BookingStatus.CANCELLED
            and target_status != BookingStatus.CANCELLED
        )

        breakdown = await self._price_stay(
            cabin, StayRequest(check_in_date, check_out_date, num_guests), extras
        )
        if stay_changed and holds_nights:
            await self._ensure_available(cabin_id, check_in_date, check_out_date, booking.id)

        booking.cabin_id = cabin_id
        booking.cabin = cabin
        booking.check_in_date = check_in_date
        booking.check_out_date = check_out_date
        booking.num_guests = num_guests
        if "customer_id" in fields and request.customer_id:
            booking.customer_id = request.customer_id
        if "payment_method" in fields:
            booking.payment_method = request.payment_method.value if request.payment_method else None
        if request.deposit_amount is not None:
            booking.deposit_amount = request.deposit_amount
        if request.deposit_paid is not None:
            booking.deposit_paid = request.deposit_paid
        if "observations" in fields:
            booking.observations = request.observations
        if request.special_requests is not None:
            booking.special_requests = list(request.special_requests)
        self._apply_price(booking, breakdown, extras)

        await self.lifecycle.apply(booking, request.status, request.record_payment)

        try:
            if stay_changed and holds_nights:
                await self.overlap.release_nights(booking.id)
                await self.overlap.reserve_nights(booking)
            else:
                await self.db.flush()
        except IntegrityError as e:
            await self._handle_integrity_error(e, booking.id)
        await self._commit(booking.id)

        logger.info(
            "Booking updated successfully",
            extra={
                "booking_id": str(booking.id),
                "fields": sorted(fields),
                "stay_changed": stay_changed,
                "status": booking.status,
            }
        )

        return booking

    async def patch_booking(self, booking_id: UUID, request: PatchBookingRequest) -> Booking:
        """
        Apply a status transition and/or a payment record.

        Raises:
            ValidationError: If the payload carries neither
            NotFoundError: If the booking does not exist
            InvalidStateError: If the status transition is not allowed
        """
        if request.status is None and request.record_payment is None:
            raise ValidationError(detail="Provide a status or a payment to record")

        booking = await self.get_booking_by_id_or_raise(booking_id)
        return await self._apply_lifecycle(booking, request.status, request.record_payment)

    async def _apply_lifecycle(self, booking: Booking, status, payment) -> Booking:
        await self.lifecycle.apply(booking, status, payment)
        await self._commit(booking.id)
        return booking

    async def delete_booking(self, booking_id: UUID) -> Booking:
        """
        Hard-delete a booking and free its nights.

        Raises:
            NotFoundError: If the booking does not exist
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)

        await self.overlap.release_nights(booking.id)
        await self.db.delete(booking)
        await self.db.commit()

        logger.info(
            "Booking deleted",
            extra={"booking_id": str(booking_id), "cabin_id": str(booking.cabin_id)}
        )

        return booking

    async def get_booking_detail(self, booking_id: UUID) -> BookingDetail:
        """Fetch one booking with its cabin name and best-effort customer profile."""
        booking = await self.get_booking_by_id_or_raise(booking_id)
        return await self.enrich(booking)

    async def enrich(self, booking: Booking) -> BookingDetail:
        """Attach the best-effort customer profile to a stored booking."""
        lookup = await self.identity.resolve(booking.customer_id)
        return BookingDetail.build(booking, lookup.profile, lookup.failed)

    async def get_latest_booking_by_email(self, email: str) -> BookingDetail:
        """
        Most recent booking of the customer registered under ``email``.

        Raises:
            ValidationError: If no email is given
            NotFoundError: If no customer or no booking matches
            InternalServerError: If the identity provider cannot be reached
        """
        email = (email or "").strip()
        if not email:
            raise ValidationError(detail="Email parameter is required")

        lookup = await self.identity.find_by_email(email)
        if lookup.failed:
            raise InternalServerError(detail="Customer lookup is unavailable")
        if lookup.profile is None:
            raise NotFoundError(resource_type="customer", detail="User not found for this email")

        stmt = (
            select(Booking)
            .where(Booking.customer_id == lookup.profile.id)
            .order_by(Booking.created_at.desc(), Booking.id)
            .limit(1)
        )
        booking = (await self.db.execute(stmt)).scalar_one_or_none()
        if booking is None:
            raise NotFoundError(resource_type="booking", detail="Booking not found for this email")

        return BookingDetail.build(booking, lookup.profile)

    async def list_bookings(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: BookingSortField = BookingSortField.CHECK_IN_DATE,
        sort_order: SortOrder = SortOrder.DESC,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[BookingDetail], Pagination]:
        """
        List bookings with filtering, search, sorting and pagination.

        Args:
            status: A booking status, or ``all``/None for no filter
            search: Case-insensitive text matched against cabin name, customer
                id and the customer's name or email
            sort_by: Sort column
            sort_order: ``asc`` or ``desc``
            page: 1-based page number
            limit: Page size, 1 to 100

        Returns:
            The page of bookings and its pagination block

        Raises:
            ValidationError: If a parameter is out of range
        """
        if page < 1:
            raise ValidationError(detail="page must be at least 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(detail=f"limit must be between 1 and {MAX_PAGE_SIZE}")

        stmt = select(Booking).join(Cabin, Booking.cabin_id == Cabin.id)

        if status and status != "all":
            try:
                stmt = stmt.where(Booking.status == BookingStatus(status).value)
            except ValueError:
                raise ValidationError(detail=f"Unknown booking status '{status}'")

        search = (search or "").strip()
        if search:
            pattern = f"%{search}%"
            conditions = [Cabin.name.ilike(pattern), Booking.customer_id.ilike(pattern)]
            customer_ids = await self.identity.search_customer_ids(search)
            if customer_ids:
                conditions.append(Booking.customer_id.in_(customer_ids))
            stmt = stmt.where(or_(*conditions))

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self.db.execute(count_stmt)).scalar_one()

        column = SORT_COLUMNS[BookingSortField(sort_by)]
        ordering = column.asc() if SortOrder(sort_order) == SortOrder.ASC else column.desc()
        stmt = stmt.order_by(ordering, Booking.id).offset((page - 1) * limit).limit(limit)

        result = await self.db.execute(stmt)
        bookings = list(result.scalars())

        lookups = await self.identity.resolve_many(b.customer_id for b in bookings)
        items = []
        for booking in bookings:
            lookup = lookups.get(booking.customer_id)
            items.append(
                BookingDetail.build(
                    booking,
                    lookup.profile if lookup else None,
                    lookup.failed if lookup else False,
                )
            )

        total_pages = math.ceil(total / limit) if total else 0
        pagination = Pagination(
            current_page=page,
            total_pages=total_pages,
            total_bookings=total,
            limit=limit,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )

        return items, pagination
