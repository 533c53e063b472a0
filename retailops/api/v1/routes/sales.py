"""
Daily sales ledger API routes
Enter the boutique total and per-employee lines, reconcile, then lock.
"""
from datetime import date

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser
from retailops.api.v1.schemas.sales import (
    LineRequest,
    ReconcileResponse,
    SalesLineResponse,
    SalesSummaryResponse,
    SummaryRequest,
)
from retailops.core.database import get_db
from retailops.core.dependencies import get_current_user, require_boutique, scope_dependency
from retailops.core.exceptions import NotFoundError
from retailops.models.sales import BoutiqueSalesSummary
from retailops.services.sales_ledger import SalesLedgerService
from retailops.services.scope import ResolvedScope, ScopeIntent

router = APIRouter(
    prefix="/sales/ledger",
    tags=["sales"],
    responses={
        409: {"description": "Summary locked or not balanced"},
    },
)

read_scope = scope_dependency("sales")
write_scope = scope_dependency("sales", ScopeIntent.WRITE)


async def _summary_response(db: AsyncSession, summary: BoutiqueSalesSummary) -> SalesSummaryResponse:
    await db.refresh(summary, attribute_names=["lines"])
    return SalesSummaryResponse.model_validate(summary)


@router.get(
    "/{day}",
    response_model=SalesSummaryResponse,
    summary="Daily summary with lines",
    responses={404: {"description": "No summary for the date"}},
)
async def get_summary(
    day: date,
    scope: ResolvedScope = Depends(read_scope),
    db: AsyncSession = Depends(get_db),
) -> SalesSummaryResponse:
    summary = await SalesLedgerService.get_summary(db, require_boutique(scope), day)
    if summary is None:
        raise NotFoundError("No sales summary for this date")
    return await _summary_response(db, summary)


@router.put(
    "",
    response_model=SalesSummaryResponse,
    summary="Create or update daily total",
)
async def put_summary(
    body: SummaryRequest,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> SalesSummaryResponse:
    summary = await SalesLedgerService.upsert_summary(
        db, current_user, scope, require_boutique(scope), body.date, body.total_sar
    )
    return await _summary_response(db, summary)


@router.put(
    "/{summary_id}/lines",
    response_model=SalesLineResponse,
    summary="Set an employee line",
)
async def put_line(
    summary_id: int,
    body: LineRequest,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> SalesLineResponse:
    line = await SalesLedgerService.upsert_line(db, current_user, scope, summary_id, body.emp_id, body.amount_sar)
    return SalesLineResponse.model_validate(line)


@router.delete(
    "/{summary_id}/lines/{emp_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove an employee line",
)
async def delete_line(
    summary_id: int,
    emp_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> None:
    await SalesLedgerService.delete_line(db, current_user, scope, summary_id, emp_id)


@router.get(
    "/{summary_id}/reconcile",
    response_model=ReconcileResponse,
    summary="Compare summary total with lines",
)
async def reconcile(
    summary_id: int,
    scope: ResolvedScope = Depends(read_scope),
    db: AsyncSession = Depends(get_db),
) -> ReconcileResponse:
    result = await SalesLedgerService.reconcile_summary(db, scope, summary_id)
    return ReconcileResponse.model_validate(result)


@router.post(
    "/{summary_id}/lock",
    response_model=SalesSummaryResponse,
    summary="Lock a balanced summary",
    description="Requires lines total == summary total; lines are published as LEDGER sales entries.",
)
async def lock(
    summary_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> SalesSummaryResponse:
    summary = await SalesLedgerService.lock_summary(db, current_user, scope, summary_id)
    return await _summary_response(db, summary)
