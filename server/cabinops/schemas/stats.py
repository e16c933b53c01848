"""Reporting schemas for booking aggregates and cabin availability."""

from datetime import date
from enum import Enum
from uuid import UUID

from pydantic import Field

from .common import CamelModel


class AnalyticsPeriod(str, Enum):
    """Look-back window for analytics."""
    WEEK = "7d"
    MONTH = "30d"
    QUARTER = "90d"
    YEAR = "1y"
    ALL = "all"


class BookingStats(CamelModel):
    """Front-desk counters for today."""

    today_check_ins: int = Field(..., ge=0)
    today_check_outs: int = Field(..., ge=0)
    checked_in: int = Field(..., ge=0)
    unconfirmed: int = Field(..., ge=0)

    @classmethod
    def empty(cls) -> "BookingStats":
        return cls(today_check_ins=0, today_check_outs=0, checked_in=0, unconfirmed=0)


class AnalyticsSummary(CamelModel):
    """Headline figures over the selected period."""

    total_revenue: float
    total_bookings: int
    avg_booking_value: float
    avg_num_guests: float
    avg_num_nights: float
    cancelled_bookings: int
    cancellation_rate: float


class RevenuePoint(CamelModel):
    """Revenue bucket (a day or an ISO week)."""

    period: str
    revenue: float
    bookings: int


class StatusCount(CamelModel):
    status: str
    count: int


class PopularCabin(CamelModel):
    cabin_id: UUID
    cabin_name: str
    bookings: int
    revenue: float


class ExtrasAdoption(CamelModel):
    """Percentage of non-cancelled bookings using each extra."""

    breakfast: float
    pets: float
    parking: float
    early_check_in: float
    late_check_out: float


class BookingAnalytics(CamelModel):
    period: AnalyticsPeriod
    summary: AnalyticsSummary
    revenue_over_time: list[RevenuePoint]
    status_distribution: list[StatusCount]
    popular_cabins: list[PopularCabin]
    extras_adoption: ExtrasAdoption

    @classmethod
    def empty(cls, period: AnalyticsPeriod) -> "BookingAnalytics":
        """Zeroed aggregates, served when the bookings cannot be read."""
        return cls(
            period=period,
            summary=AnalyticsSummary(
                total_revenue=0,
                total_bookings=0,
                avg_booking_value=0,
                avg_num_guests=0,
                avg_num_nights=0,
                cancelled_bookings=0,
                cancellation_rate=0,
            ),
            revenue_over_time=[],
            status_distribution=[],
            popular_cabins=[],
            extras_adoption=ExtrasAdoption(
                breakfast=0, pets=0, parking=0, early_check_in=0, late_check_out=0
            ),
        )


class DateRange(CamelModel):
    start: date
    end: date


class CabinAvailability(CamelModel):
    cabin_id: UUID
    unavailable_dates: list[DateRange]
    query_range: DateRange
