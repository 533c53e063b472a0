"""
Inventory zone API routes
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser
from retailops.api.v1.schemas.operations import ZoneAssignmentResponse, ZoneAssignRequest, ZoneResponse
from retailops.core.database import get_db
from retailops.core.dependencies import get_current_user, require_boutique, scope_dependency
from retailops.services.inventory import InventoryService
from retailops.services.scope import ResolvedScope, ScopeIntent

router = APIRouter(
    prefix="/inventory",
    tags=["inventory"],
)

read_scope = scope_dependency("inventory")
write_scope = scope_dependency("inventory", ScopeIntent.WRITE)


@router.get("/zones", response_model=List[ZoneResponse], summary="Active zones")
async def list_zones(
    scope: ResolvedScope = Depends(read_scope),
    db: AsyncSession = Depends(get_db),
) -> List[ZoneResponse]:
    zones = await InventoryService.list_zones(db, require_boutique(scope))
    return [ZoneResponse.model_validate(zone) for zone in zones]


@router.get(
    "/zones/assignments",
    response_model=List[ZoneAssignmentResponse],
    summary="Active zone assignments",
)
async def list_assignments(
    scope: ResolvedScope = Depends(read_scope),
    db: AsyncSession = Depends(get_db),
) -> List[ZoneAssignmentResponse]:
    assignments = await InventoryService.list_zone_assignments(db, require_boutique(scope))
    return [ZoneAssignmentResponse.model_validate(assignment) for assignment in assignments]


@router.put(
    "/zones/{zone_id}/assignment",
    response_model=ZoneAssignmentResponse,
    summary="Assign zone owner",
)
async def assign_zone(
    zone_id: int,
    body: ZoneAssignRequest,
    current_user: CurrentUser = Depends(get_current_user),
    scope: ResolvedScope = Depends(write_scope),
    db: AsyncSession = Depends(get_db),
) -> ZoneAssignmentResponse:
    assignment = await InventoryService.assign_zone(db, current_user, scope, zone_id, body.emp_id)
    return ZoneAssignmentResponse.model_validate(assignment)
