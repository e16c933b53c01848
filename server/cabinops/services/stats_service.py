"""Front-desk counters and reporting aggregates over bookings."""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import Date, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.booking import Booking, BookingStatus
from ..models.cabin import Cabin
from ..schemas.stats import (
    AnalyticsPeriod,
    AnalyticsSummary,
    BookingAnalytics,
    BookingStats,
    ExtrasAdoption,
    PopularCabin,
    RevenuePoint,
    StatusCount,
)

logger = logging.getLogger(__name__)

PERIOD_DAYS = {
    AnalyticsPeriod.WEEK: 7,
    AnalyticsPeriod.MONTH: 30,
    AnalyticsPeriod.QUARTER: 90,
    AnalyticsPeriod.YEAR: 365,
    AnalyticsPeriod.ALL: None,
}

DAILY_PERIODS = {AnalyticsPeriod.WEEK, AnalyticsPeriod.MONTH}

POPULAR_CABIN_LIMIT = 5


def bucket_label(created: date, period: AnalyticsPeriod) -> str:
    """Day (``2024-05-01``) or ISO week (``2024-W18``) a creation date falls in."""
    day = created.date() if isinstance(created, datetime) else created
    if period in DAILY_PERIODS:
        return day.isoformat()
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"


def _percentage(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def _average(total, count: int, digits: int) -> float:
    return round(float(total) / count, digits) if count else 0


def _total(expression):
    return func.coalesce(func.sum(expression), 0)


def _adopted(flag):
    return _total(case((flag, 1), else_=0))


class StatsService:
    """Service computing booking aggregates."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _count(self, *conditions) -> int:
        stmt = select(func.count()).select_from(Booking).where(*conditions)
        return (await self.db.execute(stmt)).scalar_one()

    async def get_today_stats(self, today: Optional[date] = None) -> BookingStats:
        """Arrivals and departures due today plus in-house and pending counts."""
        today = today or date.today()
        not_cancelled = Booking.status != BookingStatus.CANCELLED.value

        stats = BookingStats(
            today_check_ins=await self._count(Booking.check_in_date == today, not_cancelled),
            today_check_outs=await self._count(Booking.check_out_date == today, not_cancelled),
            checked_in=await self._count(Booking.status == BookingStatus.CHECKED_IN.value),
            unconfirmed=await self._count(Booking.status == BookingStatus.UNCONFIRMED.value),
        )

        logger.debug("Computed booking stats", extra=stats.model_dump())
        return stats

    async def get_analytics(
        self,
        period: AnalyticsPeriod = AnalyticsPeriod.MONTH,
        now: Optional[datetime] = None,
    ) -> BookingAnalytics:
        """
        Reporting aggregates over bookings created within ``period``.

        Revenue only counts paid bookings; cancelled bookings are excluded
        from every figure except the status distribution and the
        cancellation count. Counts and sums are computed by the database,
        grouped by status, by creation day and by cabin.
        """
        now = now or datetime.now(timezone.utc)
        days = PERIOD_DAYS[period]
        in_period = [] if days is None else [Booking.created_at >= now - timedelta(days=days)]
        active = [*in_period, Booking.status != BookingStatus.CANCELLED.value]

        paid_revenue = _total(case((Booking.is_paid, Booking.total_price), else_=0))

        status_rows = await self.db.execute(
            select(Booking.status, func.count()).where(*in_period).group_by(Booking.status)
        )
        status_counts = {BookingStatus(s).value: count for s, count in status_rows}
        cancelled = status_counts.get(BookingStatus.CANCELLED.value, 0)

        totals = (await self.db.execute(
            select(
                func.count(),
                _total(Booking.total_price),
                paid_revenue,
                _total(Booking.num_guests),
                _total(Booking.num_nights),
                _adopted(Booking.has_breakfast),
                _adopted(Booking.has_pets),
                _adopted(Booking.has_parking),
                _adopted(Booking.has_early_check_in),
                _adopted(Booking.has_late_check_out),
            ).select_from(Booking).where(*active)
        )).one()
        (total_active, booked_value, revenue, guests, nights,
         breakfast, pets, parking, early_check_in, late_check_out) = totals

        summary = AnalyticsSummary(
            total_revenue=round(float(revenue), 2),
            total_bookings=total_active,
            avg_booking_value=_average(booked_value, total_active, 2),
            avg_num_guests=_average(guests, total_active, 1),
            avg_num_nights=_average(nights, total_active, 1),
            cancelled_bookings=cancelled,
            cancellation_rate=_percentage(cancelled, total_active + cancelled),
        )

        # Daily groups are folded into ISO weeks for the longer periods
        day = func.date(Booking.created_at, type_=Date)
        day_rows = await self.db.execute(
            select(day, paid_revenue, func.count()).where(*active).group_by(day)
        )
        buckets: dict[str, list[float]] = defaultdict(lambda: [0.0, 0])
        for created_on, day_revenue, count in day_rows:
            bucket = buckets[bucket_label(created_on, period)]
            bucket[0] += float(day_revenue)
            bucket[1] += count
        revenue_over_time = [
            RevenuePoint(period=label, revenue=round(bucket_revenue, 2), bookings=count)
            for label, (bucket_revenue, count) in sorted(buckets.items())
        ]

        bookings_per_cabin = func.count(Booking.id).label("bookings")
        cabin_rows = await self.db.execute(
            select(Booking.cabin_id, Cabin.name, bookings_per_cabin, _total(Booking.total_price))
            .join(Cabin, Booking.cabin_id == Cabin.id)
            .where(*active)
            .group_by(Booking.cabin_id, Cabin.name)
            .order_by(bookings_per_cabin.desc(), Cabin.name)
            .limit(POPULAR_CABIN_LIMIT)
        )
        popular_cabins = [
            PopularCabin(
                cabin_id=cabin_id,
                cabin_name=name,
                bookings=count,
                revenue=round(float(cabin_revenue), 2),
            )
            for cabin_id, name, count, cabin_revenue in cabin_rows
        ]

        extras_adoption = ExtrasAdoption(
            breakfast=_percentage(breakfast, total_active),
            pets=_percentage(pets, total_active),
            parking=_percentage(parking, total_active),
            early_check_in=_percentage(early_check_in, total_active),
            late_check_out=_percentage(late_check_out, total_active),
        )

        logger.info(
            "Computed booking analytics",
            extra={"period": period.value, "bookings": sum(status_counts.values())}
        )

        return BookingAnalytics(
            period=period,
            summary=summary,
            revenue_over_time=revenue_over_time,
            status_distribution=[
                StatusCount(status=status, count=count)
                for status, count in sorted(status_counts.items())
            ],
            popular_cabins=popular_cabins,
            extras_adoption=extras_adoption,
        )
