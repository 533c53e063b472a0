"""
Coverage API routes
Coverage rule administration plus standalone validation and suggestion reads
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser
from retailops.api.v1.schemas.schedule import (
    CoverageRuleRequest,
    CoverageRuleResponse,
    SuggestionResultResponse,
    ValidationResultResponse,
)
from retailops.core.config import Settings
from retailops.core.database import get_db
from retailops.core.dependencies import get_app_settings, get_current_user, scope_dependency
from retailops.services.coverage import CoverageService
from retailops.services.coverage_suggestion import CoverageSuggestionService
from retailops.services.scope import ResolvedScope

router = APIRouter(
    prefix="/coverage",
    tags=["coverage"],
)

read_scope = scope_dependency("coverage")


@router.get(
    "/rules",
    response_model=List[CoverageRuleResponse],
    summary="List coverage rules",
)
async def list_rules(
    rule_boutique_id: Optional[str] = Query(None, description="Only rules of this boutique"),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[CoverageRuleResponse]:
    rules = await CoverageService.list_rules(db, rule_boutique_id)
    return [CoverageRuleResponse.model_validate(rule) for rule in rules]


@router.put(
    "/rules",
    response_model=CoverageRuleResponse,
    summary="Create or update coverage rule",
    description="Admin only. One rule per (boutique, day of week); omit boutique_id for the default.",
)
async def put_rule(
    body: CoverageRuleRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CoverageRuleResponse:
    rule = await CoverageService.upsert_rule(
        db, current_user, body.day_of_week, body.min_am, body.min_pm, body.enabled, body.boutique_id
    )
    return CoverageRuleResponse.model_validate(rule)


@router.get(
    "/validate/{day}",
    response_model=List[ValidationResultResponse],
    summary="Validate coverage for a date",
)
async def validate_day(
    day: date,
    scope: ResolvedScope = Depends(read_scope),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> List[ValidationResultResponse]:
    results = await CoverageService.validate_coverage(db, day, scope.boutique_ids, settings)
    return [ValidationResultResponse.model_validate(result) for result in results]


@router.get(
    "/suggestion/{day}",
    response_model=SuggestionResultResponse,
    summary="Suggest one coverage move",
)
async def suggestion(
    day: date,
    scope: ResolvedScope = Depends(read_scope),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> SuggestionResultResponse:
    result = await CoverageSuggestionService.get_coverage_suggestion(db, day, scope.boutique_ids, settings)
    return SuggestionResultResponse.model_validate(result)
