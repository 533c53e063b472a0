"""
Leave request API routes
Draft, submit, cancel, approve, reject and escalate leave requests.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser
from retailops.api.v1.schemas.leaves import (
    LeaveCreate,
    LeaveDecision,
    LeaveEvaluationResponse,
    LeaveResponse,
)
from retailops.core.database import get_db
from retailops.core.dependencies import get_current_user, get_outbox, scope_dependency
from retailops.models.leave import LeaveStatus
from retailops.models.user import Role
from retailops.services.leaves import LeaveService
from retailops.services.notifications import NotificationOutbox
from retailops.services.scope import ResolvedScope, ScopeIntent

router = APIRouter(
    prefix="/leaves",
    tags=["leaves"],
    responses={
        404: {"description": "Leave request not found"},
        409: {"description": "Request already decided"},
    },
)

read_scope = scope_dependency("leaves")
write_scope = scope_dependency("leaves", ScopeIntent.WRITE)


@router.get(
    "",
    response_model=List[LeaveResponse],
    summary="List leave requests",
)
async def list_leaves(
    leave_status: Optional[LeaveStatus] = Query(None, alias="status"),
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(read_scope),
    db: AsyncSession = Depends(get_db),
) -> List[LeaveResponse]:
    leaves = await LeaveService.list_leaves(db, scope, leave_status)
    if current_user.role == Role.EMPLOYEE:
        leaves = [leave for leave in leaves if leave.emp_id == current_user.emp_id]
    return [LeaveResponse.model_validate(leave) for leave in leaves]


@router.post(
    "",
    response_model=LeaveResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create leave request",
)
async def create_leave(
    body: LeaveCreate,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> LeaveResponse:
    leave = await LeaveService.create_leave(
        db,
        current_user,
        scope,
        body.emp_id,
        body.start_date,
        body.end_date,
        leave_type=body.leave_type,
        notes=body.notes,
        submit=body.submit,
    )
    return LeaveResponse.model_validate(leave)


@router.post("/{leave_id}/submit", response_model=LeaveResponse, summary="Submit draft")
async def submit_leave(
    leave_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> LeaveResponse:
    leave = await LeaveService.submit_leave(db, current_user, scope, leave_id)
    return LeaveResponse.model_validate(leave)


@router.post("/{leave_id}/cancel", response_model=LeaveResponse, summary="Cancel own request")
async def cancel_leave(
    leave_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> LeaveResponse:
    leave = await LeaveService.cancel_leave(db, current_user, scope, leave_id)
    return LeaveResponse.model_validate(leave)


@router.get(
    "/{leave_id}/evaluation",
    response_model=LeaveEvaluationResponse,
    summary="Who may approve",
    description="Lists the reasons a request needs an admin decision",
)
async def evaluate_leave(
    leave_id: int,
    scope: ResolvedScope = Depends(read_scope),
    db: AsyncSession = Depends(get_db),
) -> LeaveEvaluationResponse:
    leave = await LeaveService.get_leave(db, scope, leave_id)
    evaluation = await LeaveService.evaluate_leave_approval(db, leave)
    return LeaveEvaluationResponse.model_validate(evaluation)


@router.post("/{leave_id}/approve", response_model=LeaveResponse, summary="Approve request")
async def approve_leave(
    leave_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> LeaveResponse:
    leave = await LeaveService.approve_leave(db, current_user, scope, leave_id)
    return LeaveResponse.model_validate(leave)


@router.post("/{leave_id}/reject", response_model=LeaveResponse, summary="Reject request")
async def reject_leave(
    leave_id: int,
    body: LeaveDecision,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> LeaveResponse:
    leave = await LeaveService.reject_leave(db, current_user, scope, leave_id, body.reason)
    return LeaveResponse.model_validate(leave)


@router.post(
    "/{leave_id}/escalate",
    response_model=LeaveEvaluationResponse,
    summary="Escalate to admin",
)
async def escalate_leave(
    leave_id: int,
    body: LeaveDecision,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
    outbox: NotificationOutbox = Depends(get_outbox),
) -> LeaveEvaluationResponse:
    evaluation = await LeaveService.escalate_leave(db, current_user, scope, leave_id, outbox, body.reason)
    return LeaveEvaluationResponse.model_validate(evaluation)
