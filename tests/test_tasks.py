"""Tests for task run dates, primary/backup assignment and reminders."""
from datetime import date, timedelta

import pytest
from conftest import EVEN_SUNDAY, add_leave

from retailops.models import Employee, ShiftOverride, ShiftType, Task, TaskPlan, TaskSchedule, TaskScheduleType
from retailops.services.tasks import AssignmentReason, TaskService, tasks_runnable_on_date


def task_with(*schedules: TaskSchedule, active: bool = True) -> Task:
    return Task(boutique_id="B1", name="Window display", active=active, schedules=list(schedules))


def test_weekly_schedule_matches_weekday() -> None:
    task = task_with(TaskSchedule(type=TaskScheduleType.WEEKLY, weekly_days=[EVEN_SUNDAY.weekday()]))
    assert tasks_runnable_on_date(task, EVEN_SUNDAY)
    assert not tasks_runnable_on_date(task, EVEN_SUNDAY + timedelta(days=1))


def test_monthly_last_day_and_fixed_day() -> None:
    last = task_with(TaskSchedule(type=TaskScheduleType.MONTHLY, is_last_day=True))
    assert tasks_runnable_on_date(last, date(2026, 1, 31))
    assert tasks_runnable_on_date(last, date(2026, 2, 28))
    assert not tasks_runnable_on_date(last, date(2026, 1, 30))

    fixed = task_with(TaskSchedule(type=TaskScheduleType.MONTHLY, monthly_day=15))
    assert tasks_runnable_on_date(fixed, date(2026, 3, 15))
    assert not tasks_runnable_on_date(fixed, date(2026, 3, 16))


def test_inactive_or_unscheduled_tasks_never_run() -> None:
    assert not tasks_runnable_on_date(task_with(TaskSchedule(type=TaskScheduleType.DAILY), active=False), EVEN_SUNDAY)
    assert not tasks_runnable_on_date(task_with(), EVEN_SUNDAY)


@pytest.fixture
async def daily_task(world):
    db = world
    aisha, badr, salma = [await db.get(Employee, emp_id) for emp_id in ("E1", "E2", "E3")]
    task = Task(
        boutique_id="B1",
        name="Cash count",
        active=True,
        schedules=[TaskSchedule(type=TaskScheduleType.DAILY)],
        plan=TaskPlan(primary=badr, backup1=salma, backup2=aisha),
    )
    db.add(task)
    db.add(Task(
        boutique_id="B1",
        name="Monthly stocktake",
        active=True,
        schedules=[TaskSchedule(type=TaskScheduleType.MONTHLY, is_last_day=True)],
        plan=TaskPlan(primary=badr, backup1=None, backup2=None),
    ))
    await db.flush()
    return task


async def test_primary_assigned_when_working(world, daily_task, settings) -> None:
    listed = await TaskService.list_tasks_for_date(world, "B1", EVEN_SUNDAY, settings)

    assert [task.name for task, _ in listed] == ["Cash count"]
    assignment = listed[0][1]
    assert assignment.assigned_emp_id == "E2"
    assert assignment.reason == AssignmentReason.PRIMARY
    assert assignment.reason_notes == ["Primary"]


async def test_backup_used_when_primary_on_leave(world, daily_task, settings) -> None:
    await add_leave(world, "E2", EVEN_SUNDAY, EVEN_SUNDAY)
    [(_, assignment)] = await TaskService.list_tasks_for_date(world, "B1", EVEN_SUNDAY, settings)

    assert assignment.assigned_emp_id == "E3"
    assert assignment.assigned_name == "Salma"
    assert assignment.reason == AssignmentReason.BACKUP1


async def test_unassigned_lists_every_skip(world, daily_task, settings) -> None:
    db = world
    await add_leave(db, "E2", EVEN_SUNDAY, EVEN_SUNDAY)
    salma = await db.get(Employee, "E3")
    salma.weekly_off_day = EVEN_SUNDAY.weekday()
    db.add(ShiftOverride(
        boutique_id="B1", emp_id="E1", date=EVEN_SUNDAY, override_shift=ShiftType.NONE, is_active=True
    ))
    await db.flush()

    [(_, assignment)] = await TaskService.list_tasks_for_date(db, "B1", EVEN_SUNDAY, settings)

    assert assignment.assigned_emp_id is None
    assert assignment.reason == AssignmentReason.UNASSIGNED
    assert assignment.reason_notes == [
        "Badr (Primary): on leave",
        "Salma (Backup1): off",
        "Aisha (Backup2): not on shift",
    ]


async def test_guest_cover_elsewhere_is_skipped(world, daily_task, settings) -> None:
    db = world
    db.add(ShiftOverride(
        boutique_id="B2", emp_id="E2", date=EVEN_SUNDAY, override_shift=ShiftType.COVER_RASHID_AM, is_active=True
    ))
    await db.flush()

    [(_, assignment)] = await TaskService.list_tasks_for_date(db, "B1", EVEN_SUNDAY, settings)
    assert assignment.assigned_emp_id == "E3"


async def test_reminders_target_tomorrows_assignees(world, daily_task, outbox, settings) -> None:
    sent = await TaskService.emit_task_reminders(world, "B1", EVEN_SUNDAY - timedelta(days=1), outbox, settings)

    assert sent == 1
    [event] = outbox.pending
    assert event.event == "TASK_DUE_SOON"
    assert event.affected_user_ids == ["u-E2"]
    assert event.payload["due_date"] == EVEN_SUNDAY.isoformat()


async def test_last_day_reminder_includes_monthly_task(world, daily_task, outbox, settings) -> None:
    sent = await TaskService.emit_task_reminders(world, "B1", date(2026, 1, 30), outbox, settings)
    assert sent == 2
    assert {e.payload["task_title"] for e in outbox.pending} == {"Cash count", "Monthly stocktake"}
