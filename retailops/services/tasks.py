"""
Task rotation service
Decides whether a recurring task runs on a date and who does it: the
primary assignee when working, else backup 1, else backup 2.
"""
import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.core.config import Settings
from retailops.models.employee import UNASSIGNED_EMP_ID, Employee
from retailops.models.task import Task, TaskScheduleType
from retailops.models.user import User
from retailops.services.notifications import NotificationOutbox
from retailops.services.roster import RosterContext, RosterService

logger = logging.getLogger(__name__)


class AssignmentReason(str, Enum):
    PRIMARY = "Primary"
    BACKUP1 = "Backup1"
    BACKUP2 = "Backup2"
    UNASSIGNED = "UNASSIGNED"


@dataclass
class TaskAssignment:
    assigned_emp_id: Optional[str]
    assigned_name: Optional[str]
    reason: AssignmentReason
    reason_notes: list[str] = field(default_factory=list)


def tasks_runnable_on_date(task: Task, day: date) -> bool:
    """True when any of the task's schedules matches the date"""
    if not task.active:
        return False
    last_day = calendar.monthrange(day.year, day.month)[1]
    for schedule in task.schedules:
        if schedule.type == TaskScheduleType.DAILY:
            return True
        if schedule.type == TaskScheduleType.WEEKLY and day.weekday() in (schedule.weekly_days or []):
            return True
        if schedule.type == TaskScheduleType.MONTHLY:
            if schedule.is_last_day and day.day == last_day:
                return True
            if schedule.monthly_day is not None and schedule.monthly_day == day.day:
                return True
    return False


def _candidates(task: Task) -> list[tuple[AssignmentReason, Optional[str], Optional[Employee]]]:
    plan = task.plan
    return [
        (AssignmentReason.PRIMARY, plan.primary_emp_id, plan.primary),
        (AssignmentReason.BACKUP1, plan.backup1_emp_id, plan.backup1),
        (AssignmentReason.BACKUP2, plan.backup2_emp_id, plan.backup2),
    ]


def assign_task_on_date(task: Task, day: date, context: RosterContext) -> TaskAssignment:
    """
    Pick the assignee for a task on a date

    Candidates are skipped when they are the UNASSIGNED placeholder, inactive,
    on leave, off, away covering another boutique, or otherwise not on shift.
    Each skip adds a note such as "Sara (Primary): on leave".
    """
    if task.plan is None:
        return TaskAssignment(None, None, AssignmentReason.UNASSIGNED, ["No task plan"])

    notes: list[str] = []
    for reason, emp_id, employee in _candidates(task):
        if not emp_id:
            continue
        if emp_id == UNASSIGNED_EMP_ID or employee is None or employee.is_system_only:
            notes.append(f"{reason.value}: unassigned")
            continue
        label = f"{employee.name} ({reason.value})"
        if not employee.active:
            notes.append(f"{label}: inactive")
            continue
        if context.is_on_leave(emp_id, day):
            notes.append(f"{label}: on leave")
            continue
        if (emp_id, day) in context.away_overrides:
            notes.append(f"{label}: covering another boutique")
            continue
        if context.shift_for(employee, day) is None:
            override = context.home_overrides.get((emp_id, day))
            notes.append(f"{label}: off" if override is None else f"{label}: not on shift")
            continue
        return TaskAssignment(emp_id, employee.name, reason, [reason.value])

    return TaskAssignment(None, None, AssignmentReason.UNASSIGNED, notes)


class TaskService:
    """
    Service class for task listings and reminders
    """

    @staticmethod
    async def get_active_tasks(db: AsyncSession, boutique_id: str) -> list[Task]:
        result = await db.execute(
            select(Task)
            .where(Task.boutique_id == boutique_id, Task.active.is_(True))
            .order_by(Task.name, Task.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_tasks_for_date(
        db: AsyncSession, boutique_id: str, day: date, settings: Settings
    ) -> list[tuple[Task, TaskAssignment]]:
        """
        Runnable tasks with their assignee for a date

        Tasks not scheduled on the date are left out entirely.
        """
        tasks = [task for task in await TaskService.get_active_tasks(db, boutique_id) if tasks_runnable_on_date(task, day)]
        if not tasks:
            return []
        context = await RosterService.load_context(db, [boutique_id], day, day + timedelta(days=1), settings)
        return [(task, assign_task_on_date(task, day, context)) for task in tasks]

    @staticmethod
    async def emit_task_reminders(
        db: AsyncSession, boutique_id: str, today: date, outbox: NotificationOutbox, settings: Settings
    ) -> int:
        """
        Queue TASK_DUE_SOON for tasks due tomorrow to their assignee's user

        Returns:
            Number of reminders queued
        """
        tomorrow = today + timedelta(days=1)
        listed = await TaskService.list_tasks_for_date(db, boutique_id, tomorrow, settings)
        emp_ids = [assignment.assigned_emp_id for _, assignment in listed if assignment.assigned_emp_id]
        if not emp_ids:
            return 0
        result = await db.execute(
            select(User.emp_id, User.id).where(User.emp_id.in_(emp_ids), User.disabled.is_(False))
        )
        users = {emp_id: user_id for emp_id, user_id in result.all()}

        sent = 0
        for task, assignment in listed:
            user_id = users.get(assignment.assigned_emp_id)
            if user_id is None:
                continue
            outbox.add(
                "TASK_DUE_SOON",
                boutique_id=boutique_id,
                affected_user_ids=[user_id],
                payload={"task_id": task.id, "task_title": task.name, "due_date": tomorrow.isoformat()},
            )
            sent += 1
        logger.info(f"Task reminders for {boutique_id} on {tomorrow}: {sent} queued")
        return sent
