"""
Sales target and KPI API routes
Reference: https://fastapi.tiangolo.com/tutorial/bigger-applications/
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser
from retailops.api.v1.schemas.targets import (
    BoutiqueTargetRequest,
    BoutiqueTargetResponse,
    DashboardSalesMetricsResponse,
    EmployeeTargetResponse,
    GenerateTargetsRequest,
    ResetTargetsResponse,
    RoleWeightRequest,
    RoleWeightResponse,
    SalesMetricsResponse,
    TargetMetricsResponse,
)
from retailops.core.config import Settings
from retailops.core.database import get_db
from retailops.core.dependencies import get_app_settings, get_current_user, require_boutique, scope_dependency
from retailops.core.exceptions import ForbiddenError, NotFoundError
from retailops.core.money import format_sar_from_halala
from retailops.core.permissions import can_manage_targets
from retailops.core.timeutils import month_key_for, normalize_month_key, riyadh_today
from retailops.models.user import Role
from retailops.services.metrics import MetricsService
from retailops.services.scope import ResolvedScope, ScopeIntent
from retailops.services.targets import TargetService

router = APIRouter(
    prefix="/targets",
    tags=["targets"],
)

read_scope = scope_dependency("targets")
write_scope = scope_dependency("targets", ScopeIntent.WRITE)


@router.get(
    "/boutique/{month}",
    response_model=BoutiqueTargetResponse,
    summary="Boutique target for a month",
    responses={404: {"description": "No target set"}},
)
async def get_boutique_target(
    month: str,
    scope: ResolvedScope = Depends(read_scope),
    db: AsyncSession = Depends(get_db),
) -> BoutiqueTargetResponse:
    target = await TargetService.get_boutique_target(db, require_boutique(scope), normalize_month_key(month))
    if target is None:
        raise NotFoundError("Boutique target not set")
    return BoutiqueTargetResponse.model_validate(target)


@router.put(
    "/boutique",
    response_model=BoutiqueTargetResponse,
    summary="Set boutique target",
)
async def put_boutique_target(
    body: BoutiqueTargetRequest,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> BoutiqueTargetResponse:
    target = await TargetService.upsert_boutique_target(
        db, require_boutique(scope), body.month, body.amount, current_user
    )
    return BoutiqueTargetResponse.model_validate(target)


@router.get(
    "/employees/{month}",
    response_model=List[EmployeeTargetResponse],
    summary="Employee targets for a month",
)
async def list_employee_targets(
    month: str,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(read_scope),
    db: AsyncSession = Depends(get_db),
) -> List[EmployeeTargetResponse]:
    rows = await TargetService.list_employee_targets(db, require_boutique(scope), normalize_month_key(month))
    if current_user.role == Role.EMPLOYEE:
        rows = [row for row in rows if row.user_id == current_user.user_id]
    return [EmployeeTargetResponse.model_validate(row) for row in rows]


@router.post(
    "/employees/generate",
    response_model=List[EmployeeTargetResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Generate employee targets",
    description="Split the boutique target by role weight and presence (largest remainder).",
    responses={409: {"description": "Targets already exist and regenerate was not set"}},
)
async def generate_targets(
    body: GenerateTargetsRequest,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> List[EmployeeTargetResponse]:
    rows = await TargetService.generate_targets(
        db, require_boutique(scope), body.month, current_user, settings, regenerate=body.regenerate
    )
    return [EmployeeTargetResponse.model_validate(row) for row in rows]


@router.delete(
    "/employees/{month}",
    response_model=ResetTargetsResponse,
    summary="Reset employee targets",
)
async def reset_targets(
    month: str,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> ResetTargetsResponse:
    deleted = await TargetService.reset_employee_targets(db, require_boutique(scope), month, current_user)
    return ResetTargetsResponse(deleted=deleted)


@router.get(
    "/role-weights",
    response_model=List[RoleWeightResponse],
    summary="Role weights",
)
async def get_role_weights(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[RoleWeightResponse]:
    if not can_manage_targets(current_user.role):
        raise ForbiddenError()
    weights = await TargetService.get_role_weights(db)
    return [RoleWeightResponse(role=role, weight=weight) for role, weight in weights.items()]


@router.put(
    "/role-weights",
    response_model=RoleWeightResponse,
    summary="Set role weight",
    description="Admins only; the weights apply to every boutique",
)
async def put_role_weight(
    body: RoleWeightRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> RoleWeightResponse:
    row = await TargetService.set_role_weight(db, current_user, body.role, body.weight)
    return RoleWeightResponse(role=row.role, weight=row.weight)


def _metrics_user_id(current_user: CurrentUser, user_id: Optional[str]) -> str:
    """Employees only ever see their own numbers"""
    if user_id and user_id != current_user.user_id:
        if not can_manage_targets(current_user.role):
            raise ForbiddenError()
        return user_id
    return current_user.user_id


@router.get(
    "/metrics/me",
    response_model=TargetMetricsResponse,
    summary="Target metrics",
    description="MTD, today and week sales against the monthly target (halalas)",
)
async def target_metrics(
    month: Optional[str] = Query(None, description="YYYY-MM; defaults to the current Riyadh month"),
    user_id: Optional[str] = Query(None, description="Another user (managers only)"),
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(read_scope),
    db: AsyncSession = Depends(get_db),
) -> TargetMetricsResponse:
    month_key = month or month_key_for(riyadh_today())
    metrics = await MetricsService.get_target_metrics(
        db, require_boutique(scope), _metrics_user_id(current_user, user_id), month_key
    )
    return TargetMetricsResponse.model_validate(metrics)


@router.get(
    "/metrics/sales",
    response_model=SalesMetricsResponse,
    summary="Sales totals for a date range",
)
async def sales_metrics(
    from_date: date = Query(..., description="First day (inclusive)"),
    to_date: date = Query(..., description="Last day (exclusive)"),
    user_id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(read_scope),
    db: AsyncSession = Depends(get_db),
) -> SalesMetricsResponse:
    if current_user.role == Role.EMPLOYEE:
        user_id = current_user.user_id
    metrics = await MetricsService.get_sales_metrics(db, require_boutique(scope), from_date, to_date, user_id)
    return SalesMetricsResponse.model_validate(metrics)


@router.get(
    "/metrics/dashboard",
    response_model=DashboardSalesMetricsResponse,
    summary="Dashboard sales metrics",
)
async def dashboard_metrics(
    month: Optional[str] = Query(None, description="YYYY-MM; defaults to the current Riyadh month"),
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(read_scope),
    db: AsyncSession = Depends(get_db),
) -> DashboardSalesMetricsResponse:
    month_key = month or month_key_for(riyadh_today())
    employee_only = current_user.role == Role.EMPLOYEE
    metrics = await MetricsService.get_dashboard_sales_metrics(
        db, require_boutique(scope), month_key, user_id=current_user.user_id, employee_only=employee_only
    )
    return DashboardSalesMetricsResponse(
        current_month_target=metrics.current_month_target,
        current_month_actual=metrics.current_month_actual,
        completion_pct=metrics.completion_pct,
        remaining_gap=metrics.remaining_gap,
        current_month_actual_display=format_sar_from_halala(metrics.current_month_actual),
        by_user_id=metrics.by_user_id,
    )
