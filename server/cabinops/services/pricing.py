"""Stay price calculation.

Everything here is a pure function of its inputs: the caller fetches the
cabin and the policy rules and passes them in.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from ..schemas.booking import ExtrasSelection, PriceBreakdown
from ..schemas.policy import PolicyRules

_WHOLE_UNIT = Decimal("1")


def _dec(value: float | int) -> Decimal:
    # str() keeps 0.1 as 0.1 instead of its binary expansion
    return Decimal(str(value))


def count_nights(check_in_date: date, check_out_date: date) -> int:
    """Calendar-day difference between the two dates."""
    return (check_out_date - check_in_date).days


def effective_cabin_rate(price: float, discount: float) -> Decimal:
    """Nightly rate after the cabin discount, applied only when positive."""
    rate = _dec(price)
    if discount and discount > 0:
        rate -= _dec(discount)
    return rate


def required_deposit(total_price: Decimal, rules: PolicyRules) -> Decimal:
    """Deposit demanded by policy, rounded half-up to the whole currency unit."""
    if not rules.require_deposit:
        return Decimal("0")
    raw = total_price * _dec(rules.deposit_percentage) / Decimal("100")
    return raw.quantize(_WHOLE_UNIT, rounding=ROUND_HALF_UP)


def calculate_price(
    cabin_price: float,
    cabin_discount: float,
    rules: PolicyRules,
    num_nights: int,
    num_guests: int,
    extras: ExtrasSelection,
) -> PriceBreakdown:
    """
    Compute the price breakdown of a stay.

    Args:
        cabin_price: Nightly cabin rate
        cabin_discount: Per-night discount of the cabin
        rules: Effective policy rules
        num_nights: Length of stay
        num_guests: Number of guests
        extras: Extras selection

    Returns:
        Itemised price breakdown
    """
    nights = Decimal(num_nights)
    rate = effective_cabin_rate(cabin_price, cabin_discount)
    cabin_total = rate * nights

    breakfast_fee = (
        _dec(rules.breakfast_price) * Decimal(num_guests) * nights
        if extras.has_breakfast else Decimal("0")
    )
    pet_fee = _dec(rules.pet_fee) * nights if extras.has_pets else Decimal("0")
    parking_fee = (
        _dec(rules.parking_fee) * nights
        if extras.has_parking and not rules.parking_included else Decimal("0")
    )
    # Early check-in and late check-out are flat fees, not nightly
    early_check_in_fee = _dec(rules.early_check_in_fee) if extras.has_early_check_in else Decimal("0")
    late_check_out_fee = _dec(rules.late_check_out_fee) if extras.has_late_check_out else Decimal("0")

    extras_total = breakfast_fee + pet_fee + parking_fee + early_check_in_fee + late_check_out_fee
    total = cabin_total + extras_total

    return PriceBreakdown(
        num_nights=num_nights,
        num_guests=num_guests,
        effective_cabin_rate=float(rate),
        cabin_price=float(cabin_total),
        breakfast_fee=float(breakfast_fee),
        pet_fee=float(pet_fee),
        parking_fee=float(parking_fee),
        early_check_in_fee=float(early_check_in_fee),
        late_check_out_fee=float(late_check_out_fee),
        extras_price=float(extras_total),
        total_price=float(total),
        deposit_amount=float(required_deposit(total, rules)),
    )


def remaining_amount(total_price: float, paid: float) -> float:
    """Outstanding balance, floored at zero so overpayment never goes negative."""
    return float(max(Decimal("0"), _dec(total_price) - _dec(paid)))


def add_payment(paid: float, amount: float) -> float:
    """Cumulative amount paid after receiving ``amount``."""
    return float(_dec(paid) + _dec(amount))
