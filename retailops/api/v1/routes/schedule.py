"""
Schedule API routes
Day/week views, override edits, week grid saves, locks and week approval.
Every mutation goes through the lock guard in the service layer.
Reference: https://fastapi.tiangolo.com/tutorial/bigger-applications/
"""
from datetime import date

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser
from retailops.api.v1.schemas.schedule import (
    DayScheduleResponse,
    GridSaveRequest,
    GridSaveResponse,
    LockRequest,
    OverrideRequest,
    OverrideResponse,
    ScheduleLockResponse,
    WeekLockRequest,
    WeekScheduleResponse,
    WeekStatusResponse,
)
from retailops.core.config import Settings
from retailops.core.database import get_db
from retailops.core.dependencies import get_app_settings, get_current_user, require_boutique, scope_dependency
from retailops.services.schedule import ScheduleService
from retailops.services.schedule_lock import ScheduleLockService
from retailops.services.scope import ResolvedScope, ScopeIntent

router = APIRouter(
    prefix="/schedule",
    tags=["schedule"],
    responses={
        403: {"description": "Forbidden or schedule locked"},
    },
)

read_scope = scope_dependency("schedule")
write_scope = scope_dependency("schedule", ScopeIntent.WRITE)


@router.get(
    "/day/{day}",
    response_model=DayScheduleResponse,
    summary="Day schedule",
    description="Roster, coverage validation and suggested move for one date",
)
async def get_day(
    day: date,
    scope: ResolvedScope = Depends(read_scope),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> DayScheduleResponse:
    schedule = await ScheduleService.get_day_schedule(db, scope, day, settings)
    return DayScheduleResponse.model_validate(schedule)


@router.get(
    "/week/{week_start}",
    response_model=WeekScheduleResponse,
    summary="Week schedule",
    description="Seven days starting Saturday, with lock and approval state",
)
async def get_week(
    week_start: date,
    scope: ResolvedScope = Depends(read_scope),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> WeekScheduleResponse:
    schedule = await ScheduleService.get_week_schedule(db, scope, week_start, settings)
    return WeekScheduleResponse.model_validate(schedule)


@router.put(
    "/overrides",
    response_model=OverrideResponse,
    summary="Create or update override",
)
async def put_override(
    body: OverrideRequest,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> OverrideResponse:
    """
    Upsert the override for (boutique, employee, date)

    Friday AM shifts are refused outside Ramadan (FRIDAY_PM_ONLY).
    """
    override = await ScheduleService.apply_override_change(
        db, current_user, scope, body.emp_id, body.date, body.override_shift, body.reason, settings
    )
    return OverrideResponse.model_validate(override)


@router.delete(
    "/overrides/{emp_id}/{day}",
    response_model=OverrideResponse,
    summary="Remove override",
)
async def delete_override(
    emp_id: str,
    day: date,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> OverrideResponse:
    override = await ScheduleService.remove_override(db, current_user, scope, emp_id, day)
    return OverrideResponse.model_validate(override)


@router.post(
    "/grid",
    response_model=GridSaveResponse,
    summary="Save week grid",
    description="Apply a batch of edits; Friday AM items outside Ramadan are skipped and reported",
)
async def save_grid(
    body: GridSaveRequest,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> GridSaveResponse:
    changes = [(change.emp_id, change.date, change.shift) for change in body.changes]
    result = await ScheduleService.apply_grid_changes(db, current_user, scope, changes, body.reason, settings)
    return GridSaveResponse.model_validate(result)


@router.post(
    "/locks/day/{day}",
    response_model=ScheduleLockResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Lock day",
)
async def lock_day(
    day: date,
    body: LockRequest,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> ScheduleLockResponse:
    lock = await ScheduleLockService.lock_day(db, current_user, require_boutique(scope), day, body.reason)
    return ScheduleLockResponse.model_validate(lock)


@router.delete(
    "/locks/day/{day}",
    response_model=ScheduleLockResponse,
    summary="Unlock day",
)
async def unlock_day(
    day: date,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> ScheduleLockResponse:
    lock = await ScheduleLockService.unlock_day(db, current_user, require_boutique(scope), day)
    return ScheduleLockResponse.model_validate(lock)


@router.post(
    "/locks/week/{week_start}",
    response_model=ScheduleLockResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Lock week",
    description="Admin only. The week must be approved unless allow_draft is set.",
)
async def lock_week(
    week_start: date,
    body: WeekLockRequest,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> ScheduleLockResponse:
    lock = await ScheduleLockService.lock_week(
        db, current_user, require_boutique(scope), week_start, body.reason, allow_draft=body.allow_draft
    )
    return ScheduleLockResponse.model_validate(lock)


@router.delete(
    "/locks/week/{week_start}",
    response_model=ScheduleLockResponse,
    summary="Unlock week",
)
async def unlock_week(
    week_start: date,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> ScheduleLockResponse:
    lock = await ScheduleLockService.unlock_week(db, current_user, require_boutique(scope), week_start)
    return ScheduleLockResponse.model_validate(lock)


@router.post(
    "/weeks/{week_start}/approve",
    response_model=WeekStatusResponse,
    summary="Approve week",
)
async def approve_week(
    week_start: date,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> WeekStatusResponse:
    row = await ScheduleLockService.approve_week(db, current_user, require_boutique(scope), week_start)
    return WeekStatusResponse.model_validate(row)


@router.post(
    "/weeks/{week_start}/unapprove",
    response_model=WeekStatusResponse,
    summary="Return week to draft",
)
async def unapprove_week(
    week_start: date,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> WeekStatusResponse:
    row = await ScheduleLockService.unapprove_week(db, current_user, require_boutique(scope), week_start)
    return WeekStatusResponse.model_validate(row)
