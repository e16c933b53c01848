"""Unit tests for the booking status machine and payment reconciliation."""

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from cabinops.core.exceptions import InvalidStateError
from cabinops.models import Booking, BookingNight, BookingStatus, PaymentMethod
from cabinops.schemas.booking import RecordPaymentRequest
from cabinops.services.lifecycle import (
    ALLOWED_TRANSITIONS,
    LifecycleManager,
    apply_payment,
    apply_status_transition,
    can_transition,
)
from cabinops.services.overlap import OverlapChecker

NOW = datetime(2025, 7, 1, 15, 30, tzinfo=timezone.utc)


def _booking(status: BookingStatus = BookingStatus.UNCONFIRMED, total: float = 500, paid: float = 0) -> Booking:
    return Booking(
        customer_id="user_1",
        check_in_date=date(2025, 7, 1),
        check_out_date=date(2025, 7, 4),
        num_nights=3,
        num_guests=2,
        status=status.value,
        total_price=total,
        deposit_amount=paid,
        remaining_amount=total - paid,
        deposit_paid=paid > 0,
        is_paid=False,
        observations=None,
    )


@pytest.mark.parametrize(
    "current, target",
    [
        (BookingStatus.UNCONFIRMED, BookingStatus.CONFIRMED),
        (BookingStatus.UNCONFIRMED, BookingStatus.CANCELLED),
        (BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN),
        (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
        (BookingStatus.CHECKED_IN, BookingStatus.CHECKED_OUT),
        (BookingStatus.CHECKED_IN, BookingStatus.CANCELLED),
    ],
)
def test_allowed_transitions(current, target):
    booking = _booking(current)

    assert apply_status_transition(booking, target, now=NOW) is True
    assert booking.status == target


@pytest.mark.parametrize(
    "current, target",
    [
        (BookingStatus.UNCONFIRMED, BookingStatus.CHECKED_IN),
        (BookingStatus.UNCONFIRMED, BookingStatus.CHECKED_OUT),
        (BookingStatus.CONFIRMED, BookingStatus.UNCONFIRMED),
        (BookingStatus.CHECKED_OUT, BookingStatus.CHECKED_IN),
        (BookingStatus.CHECKED_OUT, BookingStatus.CANCELLED),
        (BookingStatus.CANCELLED, BookingStatus.CONFIRMED),
    ],
)
def test_rejected_transitions(current, target):
    booking = _booking(current)

    with pytest.raises(InvalidStateError):
        apply_status_transition(booking, target, now=NOW)

    assert booking.status == current


def test_terminal_states_have_no_exits():
    assert ALLOWED_TRANSITIONS[BookingStatus.CHECKED_OUT] == frozenset()
    assert ALLOWED_TRANSITIONS[BookingStatus.CANCELLED] == frozenset()


@pytest.mark.parametrize("status", list(BookingStatus))
def test_same_status_is_a_no_op(status):
    booking = _booking(status)

    assert can_transition(status, status)
    assert apply_status_transition(booking, status, now=NOW) is False
    assert booking.check_in_time is None


def test_check_in_and_out_stamp_times_once():
    booking = _booking(BookingStatus.CONFIRMED)

    apply_status_transition(booking, BookingStatus.CHECKED_IN, now=NOW)
    assert booking.check_in_time == NOW

    later = NOW + timedelta(days=3)
    apply_status_transition(booking, BookingStatus.CHECKED_OUT, now=later)
    assert booking.check_in_time == NOW
    assert booking.check_out_time == later


def test_partial_payment():
    booking = _booking(total=500)

    apply_payment(booking, RecordPaymentRequest(payment_method=PaymentMethod.CARD, amount_paid=125))

    assert booking.deposit_amount == 125
    assert booking.remaining_amount == 375
    assert booking.is_paid is False
    assert booking.deposit_paid is True
    assert booking.payment_method == "card"


def test_payments_accumulate_until_paid():
    booking = _booking(total=500, paid=125)

    apply_payment(booking, RecordPaymentRequest(payment_method=PaymentMethod.CASH, amount_paid=375))

    assert booking.deposit_amount == 500
    assert booking.remaining_amount == 0
    assert booking.is_paid is True
    assert booking.payment_method == "cash"


def test_overpayment_floors_remaining_at_zero():
    booking = _booking(total=500, paid=400)

    apply_payment(booking, RecordPaymentRequest(payment_method=PaymentMethod.ONLINE, amount_paid=250))

    assert booking.deposit_amount == 650
    assert booking.remaining_amount == 0
    assert booking.is_paid is True


def test_payment_notes_append_as_paragraph():
    booking = _booking()
    booking.observations = "Late arrival"

    apply_payment(
        booking,
        RecordPaymentRequest(payment_method=PaymentMethod.BANK_TRANSFER, amount_paid=50, notes="Wire ref 123"),
    )

    assert booking.observations == "Late arrival\n\nWire ref 123"


def test_payment_notes_without_prior_observations():
    booking = _booking()

    apply_payment(booking, RecordPaymentRequest(payment_method=PaymentMethod.CARD, amount_paid=50, notes="Paid at desk"))

    assert booking.observations == "Paid at desk"


def test_non_positive_payment_is_rejected():
    from pydantic import ValidationError

    with pytest.raises(ValidationError):
        RecordPaymentRequest(payment_method=PaymentMethod.CARD, amount_paid=0)


@pytest.mark.asyncio
async def test_cancellation_releases_nights(test_session, cabin):
    booking = _booking(BookingStatus.CONFIRMED)
    booking.cabin_id = cabin.id
    test_session.add(booking)
    await test_session.flush()
    await OverlapChecker(test_session).reserve_nights(booking)
    await test_session.commit()

    manager = LifecycleManager(test_session)
    assert await manager.transition(booking, BookingStatus.CANCELLED) is True
    await test_session.commit()

    nights = await test_session.scalar(
        select(func.count()).select_from(BookingNight).where(BookingNight.booking_id == booking.id)
    )
    assert nights == 0
    assert await OverlapChecker(test_session).find_overlapping(
        cabin.id, booking.check_in_date, booking.check_out_date
    ) == []


@pytest.mark.asyncio
async def test_status_and_payment_apply_together(test_session, cabin):
    booking = _booking(BookingStatus.UNCONFIRMED, total=300)
    booking.cabin_id = cabin.id
    test_session.add(booking)
    await test_session.commit()

    await LifecycleManager(test_session).apply(
        booking,
        BookingStatus.CONFIRMED,
        RecordPaymentRequest(payment_method=PaymentMethod.CARD, amount_paid=300),
    )
    await test_session.commit()

    assert booking.status == BookingStatus.CONFIRMED
    assert booking.is_paid is True
