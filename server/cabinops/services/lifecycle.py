"""Booking status state machine and payment reconciliation."""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import InvalidStateError
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingStatus
from ..schemas.booking import RecordPaymentRequest
from .overlap import OverlapChecker
from .pricing import add_payment, remaining_amount

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.UNCONFIRMED: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CHECKED_IN, BookingStatus.CANCELLED}),
    BookingStatus.CHECKED_IN: frozenset({BookingStatus.CHECKED_OUT, BookingStatus.CANCELLED}),
    BookingStatus.CHECKED_OUT: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    """Whether ``current -> target`` is allowed; staying put always is."""
    return current == target or target in ALLOWED_TRANSITIONS[BookingStatus(current)]


def ensure_transition(current: BookingStatus, target: BookingStatus) -> None:
    """
    Raises:
        InvalidStateError: If ``current -> target`` is not allowed
    """
    if not can_transition(current, target):
        raise InvalidStateError(
            f"Cannot change booking status from '{BookingStatus(current).value}' "
            f"to '{BookingStatus(target).value}'"
        )


def apply_status_transition(
    booking: Booking,
    target: BookingStatus,
    now: Optional[datetime] = None,
) -> bool:
    """
    Move a booking to ``target`` and stamp the lifecycle timestamps.

    Args:
        booking: Booking to mutate in place
        target: Requested status
        now: Clock override

    Returns:
        True if the status changed, False for a same-status no-op

    Raises:
        InvalidStateError: If the transition is not allowed
    """
    current = BookingStatus(booking.status)
    target = BookingStatus(target)

    if current == target:
        return False

    ensure_transition(current, target)

    now = now or datetime.now(timezone.utc)
    if target == BookingStatus.CHECKED_IN and booking.check_in_time is None:
        booking.check_in_time = now
    elif target == BookingStatus.CHECKED_OUT and booking.check_out_time is None:
        booking.check_out_time = now

    booking.status = target.value
    return True


def apply_payment(booking: Booking, payment: RecordPaymentRequest) -> None:
    """
    Reconcile a received payment into the booking.

    Overpayment is accepted; the remaining balance floors at zero.
    """
    paid = add_payment(booking.deposit_amount or 0, payment.amount_paid)

    booking.deposit_amount = paid
    booking.remaining_amount = remaining_amount(booking.total_price, paid)
    booking.is_paid = booking.remaining_amount == 0
    booking.deposit_paid = True
    booking.payment_method = payment.payment_method.value

    if payment.notes:
        booking.observations = (
            f"{booking.observations}\n\n{payment.notes}" if booking.observations else payment.notes
        )


class LifecycleManager:
    """Applies status changes and payments with their storage side effects."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.overlap = OverlapChecker(db)

    async def transition(self, booking: Booking, target: BookingStatus) -> bool:
        """
        Apply a status transition; cancelled bookings give up their nights.

        The caller owns the transaction and commits.
        """
        previous = BookingStatus(booking.status)
        changed = apply_status_transition(booking, target)
        if not changed:
            return False

        if booking.status == BookingStatus.CANCELLED:
            await self.overlap.release_nights(booking.id)

        metrics_collector.record_status_transition(previous.value, BookingStatus(target).value)
        logger.info(
            "Booking status changed",
            extra={
                "booking_id": str(booking.id),
                "from_status": previous.value,
                "to_status": BookingStatus(target).value,
            }
        )
        return True

    def record_payment(self, booking: Booking, payment: RecordPaymentRequest) -> None:
        apply_payment(booking, payment)

        metrics_collector.record_payment(payment.payment_method.value)
        logger.info(
            "Payment recorded",
            extra={
                "booking_id": str(booking.id),
                "payment_method": payment.payment_method.value,
                "amount_paid": payment.amount_paid,
                "remaining_amount": booking.remaining_amount,
                "is_paid": booking.is_paid,
            }
        )

    async def apply(
        self,
        booking: Booking,
        status: Optional[BookingStatus] = None,
        payment: Optional[RecordPaymentRequest] = None,
    ) -> Booking:
        """Apply a status change and/or a payment to the same booking."""
        if status is not None:
            await self.transition(booking, status)
        if payment is not None:
            self.record_payment(booking, payment)
        return booking
