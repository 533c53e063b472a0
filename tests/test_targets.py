"""Tests for boutique/employee target generation and target metrics."""
from datetime import date, datetime, timezone

import pytest
from conftest import add_leave, make_user
from sqlalchemy import select

from retailops.core.exceptions import ForbiddenError, NotFoundError, StateConflictError, ValidationError
from retailops.models import (
    AuditLog,
    BoutiqueMonthlyTarget,
    Employee,
    EmployeeMonthlyTarget,
    Role,
    SalesEntry,
    SalesSource,
    SalesTargetRole,
    SalesTargetRoleWeight,
    User,
)
from retailops.services.metrics import MetricsService
from retailops.services.targets import TargetService

MONTH = "2026-01"


async def test_boutique_target_upsert_is_idempotent(world, manager) -> None:
    first = await TargetService.upsert_boutique_target(world, "B1", MONTH, 50_000, manager)
    second = await TargetService.upsert_boutique_target(world, "B1", "٢٠٢٦-٠١", 60_000, manager)
    assert first.id == second.id
    assert second.amount == 60_000


@pytest.mark.parametrize("amount", [-1, 10.5, True])
async def test_boutique_target_rejects_bad_amounts(world, manager, amount) -> None:
    with pytest.raises(ValidationError):
        await TargetService.upsert_boutique_target(world, "B1", MONTH, amount, manager)


async def test_employee_cannot_set_targets(world) -> None:
    with pytest.raises(ForbiddenError):
        await TargetService.upsert_boutique_target(world, "B1", MONTH, 1000, make_user(Role.EMPLOYEE))


async def test_generate_splits_by_role_weight(world, manager, settings) -> None:
    db = world
    await TargetService.upsert_boutique_target(db, "B1", MONTH, 100_000, manager)

    rows = await TargetService.generate_targets(db, "B1", MONTH, manager, settings)
    amounts = {row.emp_id: row.amount for row in rows}

    # Weights 0.5 (manager), 1.0 (sales), 1.5 (senior); full presence for everyone
    assert amounts == {"E1": 16_667, "E2": 33_333, "E3": 50_000}
    assert sum(amounts.values()) == 100_000
    by_emp = {row.emp_id: row for row in rows}
    assert by_emp["E1"].role_at_generation == SalesTargetRole.MANAGER
    assert by_emp["E3"].presence_factor == 1.0
    assert by_emp["E3"].scheduled_days_in_month == 31


async def test_generate_excludes_disabled_and_inactive(world, manager, settings) -> None:
    db = world
    (await db.get(User, "u-E2")).disabled = True
    (await db.get(Employee, "E3")).active = False
    await db.flush()
    await TargetService.upsert_boutique_target(db, "B1", MONTH, 1_000, manager)

    rows = await TargetService.generate_targets(db, "B1", MONTH, manager, settings)
    assert [(row.emp_id, row.amount) for row in rows] == [("E1", 1_000)]


async def test_leave_reduces_presence(world, manager, settings) -> None:
    db = world
    await add_leave(db, "E2", date(2026, 1, 1), date(2026, 1, 10))
    await TargetService.upsert_boutique_target(db, "B1", MONTH, 90_001, manager)

    rows = await TargetService.generate_targets(db, "B1", MONTH, manager, settings)
    badr = next(row for row in rows if row.emp_id == "E2")

    assert badr.leave_days_in_month == 10
    assert badr.scheduled_days_in_month == 21
    assert badr.presence_factor == pytest.approx(21 / 31)
    assert sum(row.amount for row in rows) == 90_001


async def test_regeneration_requires_flag(world, manager, settings) -> None:
    db = world
    await TargetService.upsert_boutique_target(db, "B1", MONTH, 10_000, manager)
    await TargetService.generate_targets(db, "B1", MONTH, manager, settings)

    with pytest.raises(StateConflictError) as exc:
        await TargetService.generate_targets(db, "B1", MONTH, manager, settings)
    assert exc.value.code == "TARGETS_EXIST"

    await TargetService.upsert_boutique_target(db, "B1", MONTH, 12_000, manager)
    rows = await TargetService.generate_targets(db, "B1", MONTH, manager, settings, regenerate=True)
    assert sum(row.amount for row in rows) == 12_000

    stored = await TargetService.list_employee_targets(db, "B1", MONTH)
    assert len(stored) == 3
    actions = (await db.execute(select(AuditLog.action).where(AuditLog.module == "targets"))).scalars().all()
    assert "TARGETS_REGENERATED" in actions


async def test_generate_without_boutique_target(world, manager, settings) -> None:
    with pytest.raises(NotFoundError):
        await TargetService.generate_targets(world, "B1", MONTH, manager, settings)


async def test_reset_deletes_generated_rows(world, manager, settings) -> None:
    db = world
    await TargetService.upsert_boutique_target(db, "B1", MONTH, 10_000, manager)
    await TargetService.generate_targets(db, "B1", MONTH, manager, settings)

    assert await TargetService.reset_employee_targets(db, "B1", MONTH, manager) == 3
    assert await TargetService.list_employee_targets(db, "B1", MONTH) == []


async def test_role_weights_default_without_writing(world) -> None:
    weights = await TargetService.get_role_weights(world)
    assert weights[SalesTargetRole.HIGH_JEWELLERY_EXPERT] == 2.0
    assert (await world.execute(select(SalesTargetRoleWeight))).first() is None


async def test_admin_updates_role_weight(world, admin) -> None:
    await TargetService.set_role_weight(world, admin, SalesTargetRole.SALES_ADVISOR, 1.25)
    weights = await TargetService.get_role_weights(world)
    assert weights[SalesTargetRole.SALES_ADVISOR] == 1.25
    assert weights[SalesTargetRole.MANAGER] == 0.5

    with pytest.raises(ValidationError):
        await TargetService.set_role_weight(world, admin, SalesTargetRole.SALES_ADVISOR, -1)


async def test_manager_cannot_change_shared_role_weights(world, manager) -> None:
    with pytest.raises(ForbiddenError):
        await TargetService.set_role_weight(world, manager, SalesTargetRole.SALES_ADVISOR, 9.0)
    assert (await TargetService.get_role_weights(world))[SalesTargetRole.SALES_ADVISOR] == 1.0


def _sale(day: date, amount: int, source: SalesSource = SalesSource.LEDGER, user_id: str = "u-E2") -> SalesEntry:
    return SalesEntry(
        user_id=user_id,
        boutique_id="B1",
        date=day,
        date_key=day.isoformat(),
        month=f"{day.year:04d}-{day.month:02d}",
        amount=amount,
        source=source,
    )


def _employee_target(amount: int) -> EmployeeMonthlyTarget:
    return EmployeeMonthlyTarget(
        boutique_id="B1",
        user_id="u-E2",
        emp_id="E2",
        month=MONTH,
        amount=amount,
        role_at_generation=SalesTargetRole.SALES_ADVISOR,
        weight_at_generation=1.0,
        effective_weight_at_generation=1.0,
        scheduled_days_in_month=31,
        leave_days_in_month=0,
        presence_factor=1.0,
        generated_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
async def sales_world(world):
    db = world
    db.add_all([
        BoutiqueMonthlyTarget(boutique_id="B1", month=MONTH, amount=10_000),
        _employee_target(3_100),
        _sale(date(2026, 1, 21), 50),
        _sale(date(2026, 1, 18), 100, SalesSource.MANUAL),
        _sale(date(2026, 1, 5), 1_000, SalesSource.HISTORICAL),
        _sale(date(2026, 1, 2), 200, SalesSource.IMPORT),
        _sale(date(2026, 2, 1), 999),
    ])
    await db.flush()
    return db


async def test_target_metrics_in_halalas(sales_world) -> None:
    metrics = await MetricsService.get_target_metrics(sales_world, "B1", "u-E2", MONTH, today=date(2026, 1, 21))

    assert metrics.month_target == 310_000
    assert metrics.daily_target == 10_000
    assert metrics.week_target == 70_000
    assert metrics.mtd_sales == 35_000
    assert metrics.today_sales == 5_000
    assert metrics.week_sales == 15_000
    assert (metrics.pct_daily, metrics.pct_week, metrics.pct_month) == (50, 21, 11)
    assert metrics.remaining == 275_000
    assert metrics.boutique_target == 1_000_000
    assert metrics.week_range_label == "2026-01-17 – 2026-01-23"


async def test_target_metrics_for_past_month(sales_world) -> None:
    metrics = await MetricsService.get_target_metrics(sales_world, "B1", "u-E2", MONTH, today=date(2026, 2, 5))

    assert not metrics.today_in_selected_month
    assert metrics.daily_target == 0
    assert metrics.today_sales == 0
    # First week of the month is clipped to Jan 1-2
    assert metrics.week_target == 20_000
    assert metrics.week_sales == 20_000


async def test_sales_metrics_skip_historical_rows(sales_world) -> None:
    metrics = await MetricsService.get_sales_metrics(sales_world, "B1", date(2026, 1, 1), date(2026, 2, 1))
    assert metrics.net_sales_total == 35_000
    assert metrics.entries_count == 3
    assert metrics.by_date_key == {"2026-01-02": 20_000, "2026-01-18": 10_000, "2026-01-21": 5_000}


async def test_dashboard_metrics(sales_world) -> None:
    boutique = await MetricsService.get_dashboard_sales_metrics(sales_world, "B1", MONTH)
    assert boutique.current_month_target == 1_000_000
    assert boutique.current_month_actual == 35_000
    assert boutique.completion_pct == 4
    assert boutique.remaining_gap == 965_000

    mine = await MetricsService.get_dashboard_sales_metrics(
        sales_world, "B1", MONTH, user_id="u-E2", employee_only=True
    )
    assert mine.current_month_target == 310_000
    assert mine.by_user_id == {"u-E2": 35_000}
