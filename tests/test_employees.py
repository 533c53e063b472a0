"""Tests for employee listing, team changes and the deactivation cascade."""
import pytest
from conftest import EVEN_SUNDAY, FRIDAY, add_leave
from sqlalchemy import select

from retailops.core.exceptions import EmployeeOutOfScopeError, ForbiddenError, NotFoundError
from retailops.models import (
    UNASSIGNED_EMP_ID,
    AuditLog,
    Employee,
    InventoryDailyWaitingQueue,
    InventoryRotationMember,
    InventoryZone,
    InventoryZoneAssignment,
    LeaveRequest,
    ShiftOverride,
    ShiftType,
    Task,
    TaskPlan,
    TaskSchedule,
    TaskScheduleType,
    Team,
)
from retailops.services.employees import EmployeeService
from retailops.services.roster import RosterService


@pytest.fixture
async def busy_badr(world):
    """Badr (E2) holds task slots, overrides, a zone, rotation and queue rows"""
    db = world
    aisha, badr, salma = [await db.get(Employee, emp_id) for emp_id in ("E1", "E2", "E3")]
    db.add_all([
        Task(
            boutique_id="B1",
            name="Cash count",
            active=True,
            schedules=[TaskSchedule(type=TaskScheduleType.DAILY)],
            plan=TaskPlan(primary=badr, backup1=salma, backup2=None),
        ),
        Task(
            boutique_id="B1",
            name="Stock check",
            active=True,
            schedules=[TaskSchedule(type=TaskScheduleType.DAILY)],
            plan=TaskPlan(primary=aisha, backup1=badr, backup2=badr),
        ),
    ])
    zone = InventoryZone(boutique_id="B1", code="Z1", name="Front")
    db.add(zone)
    await db.flush()
    db.add_all([
        InventoryZoneAssignment(zone_id=zone.id, emp_id="E2", active=True),
        InventoryRotationMember(boutique_id="B1", emp_id="E2", position=1),
        InventoryDailyWaitingQueue(boutique_id="B1", emp_id="E2", date=EVEN_SUNDAY),
        ShiftOverride(boutique_id="B1", emp_id="E2", date=EVEN_SUNDAY, override_shift=ShiftType.EVENING),
        ShiftOverride(boutique_id="B1", emp_id="E2", date=FRIDAY, override_shift=ShiftType.NONE),
        ShiftOverride(boutique_id="B1", emp_id="E3", date=EVEN_SUNDAY, override_shift=ShiftType.MORNING),
    ])
    await add_leave(db, "E2", FRIDAY, FRIDAY)
    return db


async def test_deactivation_cascade(busy_badr, admin, scope) -> None:
    db = busy_badr
    outcome = await EmployeeService.deactivate_employee_cascade(db, "E2", admin, scope)

    assert outcome.task_plan_slots_reassigned == 3
    assert outcome.overrides_deleted == 2
    assert outcome.zone_assignments_deactivated == 1
    assert outcome.rotation_members_deleted == 1
    assert outcome.waiting_queue_deleted == 1

    assert (await db.get(Employee, "E2")).active is False
    placeholder = await db.get(Employee, UNASSIGNED_EMP_ID)
    assert placeholder.is_system_only and not placeholder.active

    plans = (
        await db.execute(
            select(TaskPlan.primary_emp_id, TaskPlan.backup1_emp_id, TaskPlan.backup2_emp_id).order_by(TaskPlan.id)
        )
    ).all()
    assert [tuple(row) for row in plans] == [
        (UNASSIGNED_EMP_ID, "E3", None),
        ("E1", UNASSIGNED_EMP_ID, UNASSIGNED_EMP_ID),
    ]

    remaining = (await db.execute(select(ShiftOverride.emp_id))).scalars().all()
    assert remaining == ["E3"]
    zone_flags = (await db.execute(select(InventoryZoneAssignment.active))).scalars().all()
    assert zone_flags == [False]
    assert (await db.execute(select(InventoryRotationMember))).first() is None
    assert (await db.execute(select(InventoryDailyWaitingQueue))).first() is None

    leaves = (await db.execute(select(LeaveRequest.emp_id))).scalars().all()
    assert leaves == ["E2"]

    audit = (await db.execute(select(AuditLog).where(AuditLog.action == "EMPLOYEE_DEACTIVATED"))).scalars().one()
    assert audit.entity_id == "E2"
    assert audit.after_json["overrides_deleted"] == 2


async def test_deactivated_employee_leaves_roster_and_listing(busy_badr, admin, scope, settings) -> None:
    db = busy_badr
    await EmployeeService.deactivate_employee_cascade(db, "E2", admin, scope)

    roster = await RosterService.roster_for_date(db, EVEN_SUNDAY, ["B1"], settings)
    assert "E2" not in [e.emp_id for e in roster.am + roster.pm + roster.off]

    active = await EmployeeService.list_employees(db, scope)
    assert [e.emp_id for e in active] == ["E1", "E3"]
    everyone = await EmployeeService.list_employees(db, scope, include_inactive=True)
    assert [e.emp_id for e in everyone] == ["E1", "E2", "E3"]


async def test_manager_cannot_deactivate(world, manager, scope) -> None:
    with pytest.raises(ForbiddenError):
        await EmployeeService.deactivate_employee_cascade(world, "E2", manager, scope)


async def test_out_of_scope_deactivation_is_blocked(world, admin, scope) -> None:
    with pytest.raises(EmployeeOutOfScopeError):
        await EmployeeService.deactivate_employee_cascade(world, "E9", admin, scope)
    assert (await world.get(Employee, "E9")).active is True


async def test_unknown_employee_without_scope(world, admin) -> None:
    with pytest.raises(NotFoundError):
        await EmployeeService.deactivate_employee_cascade(world, "NOPE", admin)


async def test_team_change_takes_effect_on_date(world, admin, manager, scope) -> None:
    db = world
    assignment = await EmployeeService.set_employee_team(db, admin, scope, "E3", Team.A, EVEN_SUNDAY)
    assert assignment.team == Team.A

    again = await EmployeeService.set_employee_team(db, admin, scope, "E3", Team.B, EVEN_SUNDAY)
    assert again.id == assignment.id

    await EmployeeService.set_employee_team(db, admin, scope, "E3", Team.A, FRIDAY)
    assert await RosterService.get_employee_team(db, "E3", EVEN_SUNDAY) == Team.B
    assert await RosterService.get_employee_team(db, "E3", FRIDAY) == Team.A

    with pytest.raises(ForbiddenError):
        await EmployeeService.set_employee_team(db, manager, scope, "E3", Team.A, FRIDAY)
