"""
Sales and target metrics
Single read path for dashboard KPIs. Sales and target rows hold whole SAR;
everything returned here is in halalas. Day, week and month boundaries
follow the Riyadh calendar with Saturday-start weeks.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.core.money import sar_to_halalas
from retailops.core.timeutils import (
    get_days_in_month,
    get_month_dates,
    get_week_range_for_date,
    intersect_ranges,
    iter_dates,
    month_key_for,
    normalize_month_key,
    riyadh_today,
)
from retailops.models.sales import COUNTED_SALES_SOURCES, SalesEntry
from retailops.models.target import BoutiqueMonthlyTarget, EmployeeMonthlyTarget
from retailops.services.targets import get_daily_target_for_day

logger = logging.getLogger(__name__)


def percent_of(actual: int, target: int) -> int:
    """actual / target * 100 rounded half up; 0 when target is 0"""
    if not target or target <= 0:
        return 0
    pct = Decimal(actual) * 100 / Decimal(target)
    return int(pct.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass
class SalesMetrics:
    net_sales_total: int
    entries_count: int
    by_date_key: dict[str, int] = field(default_factory=dict)


@dataclass
class TargetMetrics:
    month_key: str
    month_target: int
    boutique_target: Optional[int]
    mtd_sales: int
    today_sales: int
    week_sales: int
    daily_target: int
    week_target: int
    remaining: int
    pct_daily: int
    pct_week: int
    pct_month: int
    today: date
    today_in_selected_month: bool
    week_range_label: str
    days_in_month: int
    leave_days_in_month: Optional[int]
    presence_factor: Optional[float]
    scheduled_days_in_month: Optional[int]


@dataclass
class DashboardSalesMetrics:
    current_month_target: int
    current_month_actual: int
    completion_pct: int
    remaining_gap: int
    by_user_id: dict[str, int] = field(default_factory=dict)


def _counted(query, boutique_id: str, user_id: Optional[str] = None):
    query = query.where(
        SalesEntry.boutique_id == boutique_id,
        SalesEntry.source.in_(COUNTED_SALES_SOURCES),
    )
    if user_id:
        query = query.where(SalesEntry.user_id == user_id)
    return query


class MetricsService:
    """
    Service class for sales and target KPIs
    """

    @staticmethod
    async def get_sales_metrics(
        db: AsyncSession,
        boutique_id: str,
        from_date: date,
        to_exclusive: date,
        user_id: Optional[str] = None,
    ) -> SalesMetrics:
        """Counted sales in [from_date, to_exclusive), in halalas, with a per-day breakdown"""
        query = _counted(
            select(SalesEntry.date_key, func.sum(SalesEntry.amount), func.count(SalesEntry.id)),
            boutique_id,
            user_id,
        ).where(SalesEntry.date >= from_date, SalesEntry.date < to_exclusive)
        result = await db.execute(query.group_by(SalesEntry.date_key))

        metrics = SalesMetrics(net_sales_total=0, entries_count=0)
        for date_key, amount, count in result.all():
            halalas = sar_to_halalas(amount or 0)
            metrics.by_date_key[date_key] = halalas
            metrics.net_sales_total += halalas
            metrics.entries_count += count
        return metrics

    @staticmethod
    async def _sum_sales(
        db: AsyncSession, boutique_id: str, user_id: str, start: date, end: date
    ) -> int:
        query = _counted(select(func.coalesce(func.sum(SalesEntry.amount), 0)), boutique_id, user_id)
        result = await db.execute(query.where(SalesEntry.date >= start, SalesEntry.date < end))
        return sar_to_halalas(result.scalar_one())

    @staticmethod
    async def get_target_metrics(
        db: AsyncSession,
        boutique_id: str,
        user_id: str,
        month_key: str,
        today: Optional[date] = None,
    ) -> TargetMetrics:
        """
        Month, week and day targets against actual sales for one user

        Args:
            db: Database session
            boutique_id: Boutique in scope
            user_id: User whose target is reported
            month_key: YYYY-MM (Arabic digits accepted)
            today: Riyadh date to anchor day/week figures (defaults to now)

        Returns:
            TargetMetrics in halalas
        """
        month_key = normalize_month_key(month_key)
        month_start, month_end = get_month_dates(month_key)
        days_in_month = get_days_in_month(month_key)
        today = today or riyadh_today()
        today_in_month = month_key_for(today) == month_key

        anchor = today if today_in_month else month_start
        week_start, week_end = get_week_range_for_date(anchor)
        week_in_month = intersect_ranges(week_start, week_end, month_start, month_end)
        week_label = ""
        if week_in_month:
            week_label = f"{week_start.isoformat()} – {(week_end - timedelta(days=1)).isoformat()}"

        boutique_target = (
            await db.execute(
                select(BoutiqueMonthlyTarget).where(
                    BoutiqueMonthlyTarget.boutique_id == boutique_id,
                    BoutiqueMonthlyTarget.month == month_key,
                )
            )
        ).scalars().first()
        employee_target = (
            await db.execute(
                select(EmployeeMonthlyTarget).where(
                    EmployeeMonthlyTarget.boutique_id == boutique_id,
                    EmployeeMonthlyTarget.month == month_key,
                    EmployeeMonthlyTarget.user_id == user_id,
                )
            )
        ).scalars().first()

        month_target = sar_to_halalas(employee_target.amount) if employee_target else 0
        mtd_sales = await MetricsService._sum_sales(db, boutique_id, user_id, month_start, month_end)
        today_sales = 0
        if today_in_month:
            today_sales = await MetricsService._sum_sales(
                db, boutique_id, user_id, today, today + timedelta(days=1)
            )
        week_sales = 0
        week_target = 0
        if week_in_month:
            week_sales = await MetricsService._sum_sales(db, boutique_id, user_id, *week_in_month)
            week_target = sum(
                get_daily_target_for_day(month_target, days_in_month, day.day)
                for day in iter_dates(*week_in_month)
            )

        daily_target = get_daily_target_for_day(month_target, days_in_month, today.day) if today_in_month else 0

        return TargetMetrics(
            month_key=month_key,
            month_target=month_target,
            boutique_target=sar_to_halalas(boutique_target.amount) if boutique_target else None,
            mtd_sales=mtd_sales,
            today_sales=today_sales,
            week_sales=week_sales,
            daily_target=daily_target,
            week_target=week_target,
            remaining=max(0, month_target - mtd_sales),
            pct_daily=percent_of(today_sales, daily_target),
            pct_week=percent_of(week_sales, week_target),
            pct_month=percent_of(mtd_sales, month_target),
            today=today,
            today_in_selected_month=today_in_month,
            week_range_label=week_label,
            days_in_month=days_in_month,
            leave_days_in_month=employee_target.leave_days_in_month if employee_target else None,
            presence_factor=employee_target.presence_factor if employee_target else None,
            scheduled_days_in_month=employee_target.scheduled_days_in_month if employee_target else None,
        )

    @staticmethod
    async def get_dashboard_sales_metrics(
        db: AsyncSession,
        boutique_id: str,
        month_key: str,
        user_id: Optional[str] = None,
        employee_only: bool = False,
    ) -> DashboardSalesMetrics:
        """Month target vs. actual for the boutique, or for one user when employee_only"""
        month_key = normalize_month_key(month_key)
        get_month_dates(month_key)
        single_user = employee_only and user_id

        if single_user:
            target_query = select(EmployeeMonthlyTarget.amount).where(
                EmployeeMonthlyTarget.boutique_id == boutique_id,
                EmployeeMonthlyTarget.month == month_key,
                EmployeeMonthlyTarget.user_id == user_id,
            )
        else:
            target_query = select(BoutiqueMonthlyTarget.amount).where(
                BoutiqueMonthlyTarget.boutique_id == boutique_id,
                BoutiqueMonthlyTarget.month == month_key,
            )
        target_sar = (await db.execute(target_query)).scalars().first() or 0

        sales_query = _counted(
            select(SalesEntry.user_id, func.sum(SalesEntry.amount)),
            boutique_id,
            user_id if single_user else None,
        ).where(SalesEntry.month == month_key)
        result = await db.execute(sales_query.group_by(SalesEntry.user_id))

        by_user_id = {uid: sar_to_halalas(amount or 0) for uid, amount in result.all()}
        actual = sum(by_user_id.values())
        target = sar_to_halalas(target_sar)
        return DashboardSalesMetrics(
            current_month_target=target,
            current_month_actual=actual,
            completion_pct=percent_of(actual, target),
            remaining_gap=max(0, target - actual),
            by_user_id=by_user_id,
        )
