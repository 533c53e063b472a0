"""
Task rotation API routes
Who does each recurring task on a date, plus the due-soon reminder trigger
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser
from retailops.api.v1.schemas.operations import ReminderResponse, TaskAssignmentResponse
from retailops.core.config import Settings
from retailops.core.database import get_db
from retailops.core.dependencies import (
    get_app_settings,
    get_current_user,
    get_outbox,
    require_boutique,
    scope_dependency,
)
from retailops.core.exceptions import ForbiddenError
from retailops.core.permissions import can_edit_schedule
from retailops.core.timeutils import riyadh_today
from retailops.services.notifications import NotificationOutbox
from retailops.services.scope import ResolvedScope
from retailops.services.tasks import TaskService

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
)

read_scope = scope_dependency("tasks")


@router.get(
    "/day/{day}",
    response_model=List[TaskAssignmentResponse],
    summary="Tasks for a date",
    description="Runnable tasks with the assignee (primary, then backups) and skip notes",
)
async def tasks_for_day(
    day: date,
    scope: ResolvedScope = Depends(read_scope),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> List[TaskAssignmentResponse]:
    listed = await TaskService.list_tasks_for_date(db, require_boutique(scope), day, settings)
    return [
        TaskAssignmentResponse(
            task_id=task.id,
            task_name=task.name,
            assigned_emp_id=assignment.assigned_emp_id,
            assigned_name=assignment.assigned_name,
            reason=assignment.reason.value,
            reason_notes=assignment.reason_notes,
        )
        for task, assignment in listed
    ]


@router.post(
    "/reminders",
    response_model=ReminderResponse,
    summary="Emit due-soon reminders",
    description="Notifies assignees of tasks due tomorrow (Riyadh date)",
)
async def send_reminders(
    today: Optional[date] = Query(None, description="Defaults to the current Riyadh date"),
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(read_scope),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    outbox: NotificationOutbox = Depends(get_outbox),
) -> ReminderResponse:
    if not can_edit_schedule(current_user.role):
        raise ForbiddenError()
    sent = await TaskService.emit_task_reminders(
        db, require_boutique(scope), today or riyadh_today(), outbox, settings
    )
    return ReminderResponse(sent=sent)
