"""
Employee API routes
Listing, effective-dated team changes and the deactivation cascade
"""
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser
from retailops.api.v1.schemas.operations import (
    DeactivationResponse,
    EmployeeResponse,
    TeamAssignmentResponse,
    TeamChangeRequest,
)
from retailops.core.database import get_db
from retailops.core.dependencies import get_current_user, scope_dependency
from retailops.services.employees import EmployeeService
from retailops.services.scope import ResolvedScope, ScopeIntent

router = APIRouter(
    prefix="/employees",
    tags=["employees"],
)

read_scope = scope_dependency("employees")
write_scope = scope_dependency("employees", ScopeIntent.WRITE)


@router.get(
    "",
    response_model=List[EmployeeResponse],
    summary="List employees in scope",
)
async def list_employees(
    include_inactive: bool = Query(False),
    scope: ResolvedScope = Depends(read_scope),
    db: AsyncSession = Depends(get_db),
) -> List[EmployeeResponse]:
    employees = await EmployeeService.list_employees(db, scope, include_inactive)
    return [EmployeeResponse.model_validate(employee) for employee in employees]


@router.put(
    "/{emp_id}/team",
    response_model=TeamAssignmentResponse,
    summary="Change team from a date",
)
async def change_team(
    emp_id: str,
    body: TeamChangeRequest,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> TeamAssignmentResponse:
    assignment = await EmployeeService.set_employee_team(
        db, current_user, scope, emp_id, body.team, body.effective_from
    )
    return TeamAssignmentResponse.model_validate(assignment)


@router.post(
    "/{emp_id}/deactivate",
    response_model=DeactivationResponse,
    summary="Deactivate employee",
    description=(
        "Marks the employee inactive and, in the same transaction, moves their task plan slots "
        "to UNASSIGNED, deletes their shift overrides, retires zone assignments and removes "
        "rotation and waiting-queue rows."
    ),
)
async def deactivate_employee(
    emp_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> DeactivationResponse:
    outcome = await EmployeeService.deactivate_employee_cascade(db, emp_id, current_user, scope)
    return DeactivationResponse.model_validate(outcome)
