"""Unit tests for the booking service."""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from cabinops.core.exceptions import (
    ConflictError,
    InternalServerError,
    InvalidStateError,
    NotFoundError,
    PolicyViolationError,
    ValidationError,
)
from cabinops.models import BookingNight, BookingStatus, CabinStatus
from cabinops.schemas.booking import (
    BookingSortField,
    CreateBookingRequest,
    ExtrasSelection,
    PatchBookingRequest,
    QuoteRequest,
    RecordPaymentRequest,
    SortOrder,
    UpdateBookingRequest,
)
from cabinops.services.booking_service import BookingService


def _create_request(cabin, stay_dates, **overrides) -> CreateBookingRequest:
    check_in, check_out = stay_dates
    values = {
        "cabin_id": cabin.id,
        "customer_id": "user_1",
        "check_in_date": check_in,
        "check_out_date": check_out,
        "num_guests": 2,
        "extras": ExtrasSelection(has_breakfast=True),
    }
    values.update(overrides)
    return CreateBookingRequest(**values)


async def _night_count(session, booking_id) -> int:
    return await session.scalar(
        select(func.count()).select_from(BookingNight).where(BookingNight.booking_id == booking_id)
    )


@pytest.mark.asyncio
async def test_create_booking_prices_and_reserves(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)

    booking = await service.create_booking(_create_request(cabin, stay_dates))

    assert booking.status == BookingStatus.UNCONFIRMED
    assert booking.num_nights == 3
    assert booking.cabin_price == 540
    assert booking.breakfast_price == 90
    assert booking.extras_price == 90
    assert booking.total_price == 630
    # 25% of 630, rounded half-up
    assert booking.deposit_amount == 158
    assert booking.remaining_amount == 472
    assert booking.is_paid is False
    assert await _night_count(test_session, booking.id) == 3


@pytest.mark.asyncio
async def test_create_ignores_client_derived_amounts(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)

    booking = await service.create_booking(
        _create_request(cabin, stay_dates, num_nights=10, total_price=1, cabin_price=1, is_paid=True)
    )

    assert booking.num_nights == 3
    assert booking.total_price == 630
    assert booking.is_paid is False


@pytest.mark.asyncio
async def test_create_with_upfront_payment(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)

    booking = await service.create_booking(
        _create_request(cabin, stay_dates, deposit_amount=630, payment_method="card")
    )

    assert booking.deposit_paid is True
    assert booking.remaining_amount == 0
    assert booking.is_paid is True


@pytest.mark.asyncio
async def test_create_uses_policy_deposit_unless_given(test_session, cabin_factory, policy, stay_dates, identity):
    service = BookingService(test_session, identity)
    first = await cabin_factory(name="Cabin 002")
    second = await cabin_factory(name="Cabin 003")

    owed = await service.create_booking(_create_request(first, stay_dates))
    waived = await service.create_booking(_create_request(second, stay_dates, deposit_amount=0))

    assert owed.deposit_amount == 158
    assert owed.deposit_paid is False
    assert owed.payment_status == "unpaid"
    assert waived.deposit_amount == 0
    assert waived.remaining_amount == 630


@pytest.mark.asyncio
async def test_create_unknown_cabin(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)

    with pytest.raises(NotFoundError) as exc_info:
        await service.create_booking(_create_request(cabin, stay_dates, cabin_id=uuid4()))

    assert exc_info.value.detail == "Cabin not found"


@pytest.mark.asyncio
async def test_create_inactive_cabin(test_session, cabin_factory, policy, stay_dates, identity):
    closed = await cabin_factory(name="Closed", status=CabinStatus.INACTIVE.value)
    service = BookingService(test_session, identity)

    with pytest.raises(InvalidStateError):
        await service.create_booking(_create_request(closed, stay_dates))


@pytest.mark.asyncio
async def test_create_overlapping_stay_conflicts(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)
    first = await service.create_booking(_create_request(cabin, stay_dates))
    check_in, _ = stay_dates

    with pytest.raises(ConflictError) as exc_info:
        await service.create_booking(
            _create_request(
                cabin,
                (check_in + timedelta(days=1), check_in + timedelta(days=4)),
                customer_id="user_2",
            )
        )

    assert exc_info.value.status_code == 409
    assert exc_info.value.body["conflicts"][0]["bookingId"] == str(first.id)


@pytest.mark.asyncio
async def test_back_to_back_stays_are_allowed(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)
    _, check_out = stay_dates
    await service.create_booking(_create_request(cabin, stay_dates))

    second = await service.create_booking(
        _create_request(cabin, (check_out, check_out + timedelta(days=2)))
    )

    assert second.check_in_date == check_out


@pytest.mark.asyncio
async def test_create_without_policy_is_unconstrained(test_session, cabin, stay_dates, identity):
    service = BookingService(test_session, identity)
    check_in, _ = stay_dates

    booking = await service.create_booking(
        _create_request(cabin, (check_in, check_in + timedelta(days=1)), num_guests=4)
    )

    assert booking.num_nights == 1
    assert booking.extras_price == 0
    assert booking.total_price == 180


@pytest.mark.asyncio
async def test_quote_does_not_store(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)
    check_in, check_out = stay_dates

    breakdown = await service.quote(
        QuoteRequest(cabin_id=cabin.id, check_in_date=check_in, check_out_date=check_out, num_guests=2)
    )

    assert breakdown.total_price == 540
    assert breakdown.deposit_amount == 135
    items, pagination = await service.list_bookings()
    assert items == []
    assert pagination.total_bookings == 0


@pytest.mark.asyncio
async def test_status_only_update_skips_guest_rules(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)
    booking = await service.create_booking(_create_request(cabin, stay_dates, num_guests=4))
    # Shrinking the policy would fail the full profile for this booking
    policy.max_guests_per_booking = 2
    await test_session.commit()

    updated = await service.update_booking(
        UpdateBookingRequest(id=booking.id, status=BookingStatus.CONFIRMED)
    )

    assert updated.status == BookingStatus.CONFIRMED


@pytest.mark.asyncio
async def test_full_update_enforces_guest_rules(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)
    booking = await service.create_booking(_create_request(cabin, stay_dates))

    with pytest.raises(PolicyViolationError) as exc_info:
        await service.update_booking(
            UpdateBookingRequest(id=booking.id, status=BookingStatus.CONFIRMED, num_guests=5)
        )

    assert exc_info.value.detail == "Number of guests cannot exceed 4"


@pytest.mark.asyncio
async def test_full_update_moves_nights(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)
    booking = await service.create_booking(_create_request(cabin, stay_dates))
    check_in, _ = stay_dates

    new_in = check_in + timedelta(days=10)
    updated = await service.update_booking(
        UpdateBookingRequest(id=booking.id, check_in_date=new_in, check_out_date=new_in + timedelta(days=4))
    )

    assert updated.num_nights == 4
    assert updated.total_price == 840  # 4 x 180 + breakfast 15 x 2 x 4
    assert await _night_count(test_session, booking.id) == 4
    # The old dates are free again
    other = await service.create_booking(_create_request(cabin, stay_dates, customer_id="user_2"))
    assert other.check_in_date == check_in


@pytest.mark.asyncio
async def test_full_update_into_taken_dates_conflicts(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)
    check_in, check_out = stay_dates
    await service.create_booking(_create_request(cabin, stay_dates))
    later = await service.create_booking(
        _create_request(cabin, (check_out + timedelta(days=5), check_out + timedelta(days=8)))
    )

    with pytest.raises(ConflictError):
        await service.update_booking(
            UpdateBookingRequest(id=later.id, check_in_date=check_in, check_out_date=check_out)
        )


@pytest.mark.asyncio
async def test_update_unknown_booking(test_session, policy, identity):
    with pytest.raises(NotFoundError):
        await BookingService(test_session, identity).update_booking(
            UpdateBookingRequest(id=uuid4(), status=BookingStatus.CONFIRMED)
        )


@pytest.mark.asyncio
async def test_patch_cancel_frees_dates(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)
    booking = await service.create_booking(_create_request(cabin, stay_dates))

    cancelled = await service.patch_booking(booking.id, PatchBookingRequest(status=BookingStatus.CANCELLED))

    assert cancelled.status == BookingStatus.CANCELLED
    assert await _night_count(test_session, booking.id) == 0
    rebooked = await service.create_booking(_create_request(cabin, stay_dates, customer_id="user_2"))
    assert rebooked.id != booking.id


@pytest.mark.asyncio
async def test_patch_invalid_transition(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)
    booking = await service.create_booking(_create_request(cabin, stay_dates))

    with pytest.raises(InvalidStateError):
        await service.patch_booking(booking.id, PatchBookingRequest(status=BookingStatus.CHECKED_OUT))


@pytest.mark.asyncio
async def test_patch_records_payment(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)
    booking = await service.create_booking(_create_request(cabin, stay_dates))

    paid = await service.patch_booking(
        booking.id,
        PatchBookingRequest(record_payment=RecordPaymentRequest(payment_method="cash", amount_paid=630)),
    )

    assert paid.is_paid is True
    assert paid.remaining_amount == 0
    assert paid.payment_status == "paid"


@pytest.mark.asyncio
async def test_patch_requires_a_change(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)
    booking = await service.create_booking(_create_request(cabin, stay_dates))

    with pytest.raises(ValidationError):
        await service.patch_booking(booking.id, PatchBookingRequest())


@pytest.mark.asyncio
async def test_delete_booking(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)
    booking = await service.create_booking(_create_request(cabin, stay_dates))

    await service.delete_booking(booking.id)

    assert await service.get_booking_by_id(booking.id) is None
    assert await _night_count(test_session, booking.id) == 0
    with pytest.raises(NotFoundError):
        await service.delete_booking(booking.id)


@pytest.mark.asyncio
async def test_booking_detail_includes_customer(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)
    booking = await service.create_booking(_create_request(cabin, stay_dates))

    detail = await service.get_booking_detail(booking.id)

    assert detail.cabin_name == "Cabin 001"
    assert detail.customer.name == "Jane Guest"
    assert detail.guest == detail.customer
    assert detail.customer_lookup_failed is False


@pytest.mark.asyncio
async def test_booking_detail_survives_identity_outage(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)
    booking = await service.create_booking(_create_request(cabin, stay_dates))
    identity.failing = True

    detail = await service.get_booking_detail(booking.id)

    assert detail.customer is None
    assert detail.customer_lookup_failed is True


@pytest.mark.asyncio
async def test_list_filters_sorts_and_paginates(test_session, cabin_factory, policy, stay_dates, identity):
    lake = await cabin_factory(name="Lakeside")
    forest = await cabin_factory(name="Forest Hut")
    service = BookingService(test_session, identity)
    check_in, _ = stay_dates

    created = []
    for week in range(3):
        start = check_in + timedelta(days=7 * week)
        created.append(
            await service.create_booking(
                _create_request(lake, (start, start + timedelta(days=2)), customer_id=f"user_{week + 1}")
            )
        )
    await service.create_booking(_create_request(forest, stay_dates, customer_id="user_9"))
    await service.patch_booking(created[0].id, PatchBookingRequest(status=BookingStatus.CONFIRMED))

    items, pagination = await service.list_bookings(search="lake", sort_order=SortOrder.ASC, limit=2)
    assert [item.id for item in items] == [created[0].id, created[1].id]
    assert pagination.total_bookings == 3
    assert pagination.total_pages == 2
    assert pagination.has_next_page is True
    assert pagination.has_prev_page is False

    items, pagination = await service.list_bookings(search="lake", sort_order=SortOrder.ASC, limit=2, page=2)
    assert [item.id for item in items] == [created[2].id]
    assert pagination.has_next_page is False

    confirmed, _ = await service.list_bookings(status="confirmed")
    assert [item.id for item in confirmed] == [created[0].id]

    everything, _ = await service.list_bookings(status="all", sort_by=BookingSortField.CREATED_AT)
    assert len(everything) == 4


@pytest.mark.asyncio
async def test_list_searches_customer_profiles(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)
    mine = await service.create_booking(_create_request(cabin, stay_dates))
    _, check_out = stay_dates
    await service.create_booking(
        _create_request(cabin, (check_out, check_out + timedelta(days=2)), customer_id="user_2")
    )

    items, _ = await service.list_bookings(search="jane@example")

    assert [item.id for item in items] == [mine.id]
    assert items[0].customer.email == "jane@example.com"


@pytest.mark.asyncio
async def test_list_rejects_unknown_status(test_session, identity):
    with pytest.raises(ValidationError):
        await BookingService(test_session, identity).list_bookings(status="archived")


@pytest.mark.asyncio
async def test_unknown_update_keys_force_full_validation(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)
    booking = await service.create_booking(_create_request(cabin, stay_dates, num_guests=4))
    policy.max_guests_per_booking = 2
    await test_session.commit()

    request = UpdateBookingRequest.model_validate(
        {"id": str(booking.id), "status": "confirmed", "cabinName": "Cabin 001"}
    )

    with pytest.raises(PolicyViolationError):
        await service.update_booking(request)


@pytest.mark.asyncio
async def test_latest_booking_by_email(test_session, cabin, policy, stay_dates, identity):
    service = BookingService(test_session, identity)
    older = await service.create_booking(_create_request(cabin, stay_dates))
    _, check_out = stay_dates
    newer = await service.create_booking(
        _create_request(cabin, (check_out, check_out + timedelta(days=2)))
    )
    older.created_at = newer.created_at - timedelta(days=1)
    await test_session.commit()

    detail = await service.get_latest_booking_by_email("JANE@example.com")

    assert detail.id == newer.id
    assert detail.customer.name == "Jane Guest"
    assert detail.customer_lookup_failed is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "email, error, message",
    [
        ("", ValidationError, "Email parameter is required"),
        ("nobody@example.com", NotFoundError, "User not found for this email"),
        ("jane@example.com", NotFoundError, "Booking not found for this email"),
    ],
)
async def test_booking_by_email_errors(test_session, identity, email, error, message):
    with pytest.raises(error) as exc_info:
        await BookingService(test_session, identity).get_latest_booking_by_email(email)

    assert exc_info.value.detail == message


@pytest.mark.asyncio
async def test_booking_by_email_with_identity_down(test_session, identity):
    identity.failing = True

    with pytest.raises(InternalServerError):
        await BookingService(test_session, identity).get_latest_booking_by_email("jane@example.com")
