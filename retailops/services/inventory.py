"""
Inventory zone service
Zone ownership: one active employee per zone, always from the zone's own
boutique.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser
from retailops.core.exceptions import ForbiddenError, NotFoundError
from retailops.core.permissions import can_edit_schedule
from retailops.models.inventory import InventoryZone, InventoryZoneAssignment
from retailops.services.audit import AuditService
from retailops.services.scope import ResolvedScope, ScopeService

logger = logging.getLogger(__name__)


class InventoryService:
    """
    Service class for inventory zones
    """

    @staticmethod
    async def list_zones(db: AsyncSession, boutique_id: str) -> list[InventoryZone]:
        result = await db.execute(
            select(InventoryZone)
            .where(InventoryZone.boutique_id == boutique_id, InventoryZone.active.is_(True))
            .order_by(InventoryZone.code)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_zone_assignments(db: AsyncSession, boutique_id: str) -> list[InventoryZoneAssignment]:
        """Active assignments for the boutique's zones"""
        result = await db.execute(
            select(InventoryZoneAssignment)
            .join(InventoryZone, InventoryZone.id == InventoryZoneAssignment.zone_id)
            .where(InventoryZone.boutique_id == boutique_id, InventoryZoneAssignment.active.is_(True))
            .order_by(InventoryZone.code)
        )
        return list(result.scalars().all())

    @staticmethod
    async def assign_zone(
        db: AsyncSession, actor: CurrentUser, scope: ResolvedScope, zone_id: int, emp_id: str
    ) -> InventoryZoneAssignment:
        """
        Make emp_id the zone's owner, retiring any previous active assignment

        Raises:
            ForbiddenError: Role cannot assign, or zone outside scope
            NotFoundError: Unknown zone
            EmployeeOutOfScopeError: Employee outside the scope
        """
        if not can_edit_schedule(actor.role):
            raise ForbiddenError()
        zone = await db.get(InventoryZone, zone_id)
        if zone is None:
            raise NotFoundError("Zone not found")
        ScopeService.assert_boutique_in_scope(scope, zone.boutique_id)
        employee = await ScopeService.assert_employee_in_scope(db, scope, emp_id, actor, module="inventory")
        if employee.boutique_id != zone.boutique_id or not employee.active:
            raise ForbiddenError()

        result = await db.execute(
            select(InventoryZoneAssignment).where(
                InventoryZoneAssignment.zone_id == zone_id,
                InventoryZoneAssignment.active.is_(True),
            )
        )
        previous = None
        for current in result.scalars().all():
            if current.emp_id == emp_id:
                return current
            previous = current.emp_id
            current.active = False

        assignment = InventoryZoneAssignment(
            zone_id=zone_id,
            emp_id=emp_id,
            active=True,
            assigned_by_user_id=actor.user_id,
            assigned_at=datetime.now(timezone.utc),
        )
        db.add(assignment)
        await db.flush()

        await AuditService.log(
            db,
            actor.user_id,
            "ZONE_ASSIGNED",
            module="inventory",
            entity_type="inventory_zone",
            entity_id=str(zone_id),
            boutique_id=zone.boutique_id,
            before={"emp_id": previous} if previous else None,
            after={"emp_id": emp_id},
        )
        return assignment
