"""
Employee lifecycle service
Team changes (effective-dated) and deactivation. Deactivation is a single
named cascade so every dependent record it touches is visible in one place.
"""
import logging
from dataclasses import asdict, dataclass
from datetime import date
from typing import Optional

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser
from retailops.core.exceptions import ForbiddenError, InvariantViolationError, NotFoundError
from retailops.core.permissions import can_manage_employees
from retailops.models.employee import UNASSIGNED_EMP_ID, Employee, EmployeeTeamAssignment, Team
from retailops.models.inventory import (
    InventoryDailyWaitingQueue,
    InventoryRotationMember,
    InventoryZoneAssignment,
)
from retailops.models.schedule import ShiftOverride
from retailops.models.task import TaskPlan
from retailops.services.audit import AuditService
from retailops.services.coverage import clear_coverage_validation_cache
from retailops.services.scope import ResolvedScope, ScopeService

logger = logging.getLogger(__name__)


@dataclass
class DeactivationResult:
    emp_id: str
    task_plan_slots_reassigned: int
    overrides_deleted: int
    zone_assignments_deactivated: int
    rotation_members_deleted: int
    waiting_queue_deleted: int


class EmployeeService:
    """
    Service class for employee lifecycle operations
    """

    @staticmethod
    async def list_employees(
        db: AsyncSession, scope: ResolvedScope, include_inactive: bool = False
    ) -> list[Employee]:
        query = select(Employee).where(
            Employee.boutique_id.in_(scope.boutique_ids),
            Employee.is_system_only.is_(False),
        )
        if not include_inactive:
            query = query.where(Employee.active.is_(True))
        result = await db.execute(query.order_by(Employee.name, Employee.emp_id))
        return list(result.scalars().all())

    @staticmethod
    async def set_employee_team(
        db: AsyncSession,
        actor: CurrentUser,
        scope: ResolvedScope,
        emp_id: str,
        team: Team,
        effective_from: date,
    ) -> EmployeeTeamAssignment:
        """
        Record a team change taking effect on effective_from

        Earlier dates keep resolving to the previous team.
        """
        if not can_manage_employees(actor.role):
            raise ForbiddenError()
        await ScopeService.assert_employee_in_scope(db, scope, emp_id, actor, module="employees")

        result = await db.execute(
            select(EmployeeTeamAssignment).where(
                EmployeeTeamAssignment.emp_id == emp_id,
                EmployeeTeamAssignment.effective_from == effective_from,
            )
        )
        assignment = result.scalars().first()
        if assignment is None:
            assignment = EmployeeTeamAssignment(emp_id=emp_id, effective_from=effective_from)
            db.add(assignment)
        assignment.team = team
        assignment.created_by_user_id = actor.user_id
        await db.flush()

        await AuditService.log(
            db,
            actor.user_id,
            "TEAM_CHANGED",
            module="employees",
            entity_type="employee",
            entity_id=emp_id,
            after={"team": team.value, "effective_from": effective_from.isoformat()},
        )
        clear_coverage_validation_cache()
        return assignment

    @staticmethod
    async def ensure_unassigned_placeholder(db: AsyncSession, boutique_id: str) -> Employee:
        """The system-only UNASSIGNED employee that vacated task slots point to"""
        placeholder = await db.get(Employee, UNASSIGNED_EMP_ID)
        if placeholder is None:
            placeholder = Employee(
                emp_id=UNASSIGNED_EMP_ID,
                name="Unassigned",
                boutique_id=boutique_id,
                active=False,
                is_system_only=True,
            )
            db.add(placeholder)
            await db.flush()
            logger.info("Created UNASSIGNED placeholder employee")
        return placeholder

    @staticmethod
    async def deactivate_employee_cascade(
        db: AsyncSession,
        emp_id: str,
        actor: CurrentUser,
        scope: Optional[ResolvedScope] = None,
    ) -> DeactivationResult:
        """
        Deactivate an employee and detach them from operational assignments

        Runs inside the caller's transaction, so either every step applies
        or none does:
        - employee.active = False
        - TaskPlan primary/backup slots -> UNASSIGNED
        - ShiftOverride rows deleted
        - zone assignments kept with active = False
        - rotation membership and waiting-queue rows deleted
        Leave, sales and target history is left untouched.

        Raises:
            ForbiddenError: Role cannot manage employees
            NotFoundError: Unknown employee
            EmployeeOutOfScopeError: Employee outside the given scope
            InvariantViolationError: A TaskPlan slot still references the employee
        """
        if not can_manage_employees(actor.role):
            raise ForbiddenError()
        if scope is not None:
            employee = await ScopeService.assert_employee_in_scope(db, scope, emp_id, actor, module="employees")
        else:
            employee = await db.get(Employee, emp_id)
        if employee is None or employee.is_system_only:
            raise NotFoundError("Employee not found")

        employee.active = False
        await EmployeeService.ensure_unassigned_placeholder(db, employee.boutique_id)

        slots = 0
        for column in ("primary_emp_id", "backup1_emp_id", "backup2_emp_id"):
            result = await db.execute(
                update(TaskPlan)
                .where(getattr(TaskPlan, column) == emp_id)
                .values({column: UNASSIGNED_EMP_ID})
                .execution_options(synchronize_session="fetch")
            )
            slots += result.rowcount or 0

        overrides = await db.execute(delete(ShiftOverride).where(ShiftOverride.emp_id == emp_id))
        zones = await db.execute(
            update(InventoryZoneAssignment)
            .where(InventoryZoneAssignment.emp_id == emp_id, InventoryZoneAssignment.active.is_(True))
            .values(active=False)
            .execution_options(synchronize_session="fetch")
        )
        rotation = await db.execute(
            delete(InventoryRotationMember).where(InventoryRotationMember.emp_id == emp_id)
        )
        queue = await db.execute(
            delete(InventoryDailyWaitingQueue).where(InventoryDailyWaitingQueue.emp_id == emp_id)
        )
        await db.flush()

        remaining = await db.execute(
            select(TaskPlan.id).where(
                or_(
                    TaskPlan.primary_emp_id == emp_id,
                    TaskPlan.backup1_emp_id == emp_id,
                    TaskPlan.backup2_emp_id == emp_id,
                )
            )
        )
        if remaining.first() is not None:
            raise InvariantViolationError("Task plan still references a deactivated employee")

        outcome = DeactivationResult(
            emp_id=emp_id,
            task_plan_slots_reassigned=slots,
            overrides_deleted=overrides.rowcount or 0,
            zone_assignments_deactivated=zones.rowcount or 0,
            rotation_members_deleted=rotation.rowcount or 0,
            waiting_queue_deleted=queue.rowcount or 0,
        )
        await AuditService.log(
            db,
            actor.user_id,
            "EMPLOYEE_DEACTIVATED",
            module="employees",
            entity_type="employee",
            entity_id=emp_id,
            boutique_id=employee.boutique_id,
            after=asdict(outcome),
        )
        clear_coverage_validation_cache()
        logger.info(f"Deactivated employee {emp_id}: {outcome}")
        return outcome
