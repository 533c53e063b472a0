"""
Leave workflow service
DRAFT -> SUBMITTED -> APPROVED_MANAGER | APPROVED_ADMIN | REJECTED, with
cancellation of open requests by their owner. Approval rules decide when a
manager must hand the decision to an admin.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser
from retailops.core.exceptions import ForbiddenError, NotFoundError, StateConflictError, ValidationError
from retailops.core.permissions import can_manage_leaves, is_admin_role
from retailops.core.timeutils import get_week_start, riyadh_today
from retailops.models.leave import APPROVED_LEAVE_STATUSES, LeaveRequest, LeaveStatus
from retailops.models.schedule import CoverageRule, WeekStatus
from retailops.models.user import Role, User
from retailops.services.audit import AuditService
from retailops.services.coverage import clear_coverage_validation_cache
from retailops.services.notifications import NotificationOutbox
from retailops.services.schedule_lock import ScheduleLockService
from retailops.services.scope import ResolvedScope, ScopeService

logger = logging.getLogger(__name__)

MAX_MANAGER_DAYS = 7
MAX_LEAVES_LAST_60_DAYS = 5
OPEN_STATUSES = (LeaveStatus.DRAFT, LeaveStatus.SUBMITTED)


@dataclass
class LeaveEvaluation:
    requires_admin: bool
    reasons: list[str] = field(default_factory=list)

    @property
    def can_manager_approve(self) -> bool:
        return not self.requires_admin


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _snapshot(leave: LeaveRequest) -> dict:
    return {
        "status": leave.status.value,
        "start_date": leave.start_date.isoformat(),
        "end_date": leave.end_date.isoformat(),
    }


class LeaveService:
    """
    Service class for leave requests
    """

    @staticmethod
    async def get_leave(db: AsyncSession, scope: ResolvedScope, leave_id: int) -> LeaveRequest:
        leave = await db.get(LeaveRequest, leave_id)
        if leave is None:
            raise NotFoundError("Leave request not found")
        ScopeService.assert_boutique_in_scope(scope, leave.boutique_id)
        return leave

    @staticmethod
    def _is_owner(actor: CurrentUser, leave: LeaveRequest) -> bool:
        return actor.user_id in (leave.user_id, leave.created_by_user_id) or (
            actor.emp_id is not None and actor.emp_id == leave.emp_id
        )

    @staticmethod
    async def list_leaves(
        db: AsyncSession, scope: ResolvedScope, status: Optional[LeaveStatus] = None
    ) -> list[LeaveRequest]:
        query = select(LeaveRequest).where(LeaveRequest.boutique_id.in_(scope.boutique_ids))
        if status is not None:
            query = query.where(LeaveRequest.status == status)
        result = await db.execute(query.order_by(LeaveRequest.start_date, LeaveRequest.id))
        return list(result.scalars().all())

    @staticmethod
    async def create_leave(
        db: AsyncSession,
        actor: CurrentUser,
        scope: ResolvedScope,
        emp_id: str,
        start_date: date,
        end_date: date,
        leave_type: str = "ANNUAL",
        notes: Optional[str] = None,
        submit: bool = False,
    ) -> LeaveRequest:
        """
        Create a leave request (DRAFT, or SUBMITTED when submit is set)

        Employees may only request leave for themselves.
        """
        if end_date < start_date:
            raise ValidationError("end_date must be on or after start_date", field="end_date")
        if actor.role == Role.EMPLOYEE and actor.emp_id != emp_id:
            raise ForbiddenError()
        employee = await ScopeService.assert_employee_in_scope(db, scope, emp_id, actor, module="leaves")

        user_id = (await db.execute(select(User.id).where(User.emp_id == emp_id))).scalars().first()
        leave = LeaveRequest(
            user_id=user_id,
            emp_id=emp_id,
            boutique_id=employee.boutique_id,
            start_date=start_date,
            end_date=end_date,
            leave_type=(leave_type or "ANNUAL").upper(),
            notes=notes,
            status=LeaveStatus.SUBMITTED if submit else LeaveStatus.DRAFT,
            created_by_user_id=actor.user_id,
            submitted_at=_utcnow() if submit else None,
        )
        db.add(leave)
        await db.flush()

        await AuditService.log(
            db,
            actor.user_id,
            "LEAVE_CREATED",
            module="leaves",
            entity_type="leave_request",
            entity_id=str(leave.id),
            boutique_id=leave.boutique_id,
            after=_snapshot(leave),
        )
        return leave

    @staticmethod
    async def submit_leave(
        db: AsyncSession, actor: CurrentUser, scope: ResolvedScope, leave_id: int
    ) -> LeaveRequest:
        leave = await LeaveService.get_leave(db, scope, leave_id)
        if not (LeaveService._is_owner(actor, leave) or can_manage_leaves(actor.role)):
            raise ForbiddenError()
        if leave.status != LeaveStatus.DRAFT:
            raise StateConflictError("Only DRAFT requests can be submitted")
        leave.status = LeaveStatus.SUBMITTED
        leave.submitted_at = _utcnow()
        await db.flush()
        await AuditService.log(
            db,
            actor.user_id,
            "LEAVE_SUBMITTED",
            module="leaves",
            entity_type="leave_request",
            entity_id=str(leave.id),
            boutique_id=leave.boutique_id,
        )
        return leave

    @staticmethod
    async def cancel_leave(
        db: AsyncSession, actor: CurrentUser, scope: ResolvedScope, leave_id: int
    ) -> LeaveRequest:
        """Owner cancels an open (DRAFT or SUBMITTED) request"""
        leave = await LeaveService.get_leave(db, scope, leave_id)
        if not LeaveService._is_owner(actor, leave):
            raise ForbiddenError()
        if leave.status not in OPEN_STATUSES:
            raise StateConflictError("Only open requests can be cancelled")
        before = _snapshot(leave)
        leave.status = LeaveStatus.CANCELLED
        await db.flush()
        await AuditService.log(
            db,
            actor.user_id,
            "LEAVE_CANCELLED",
            module="leaves",
            entity_type="leave_request",
            entity_id=str(leave.id),
            boutique_id=leave.boutique_id,
            before=before,
            after=_snapshot(leave),
        )
        return leave

    @staticmethod
    async def evaluate_leave_approval(
        db: AsyncSession, leave: LeaveRequest, today: Optional[date] = None
    ) -> LeaveEvaluation:
        """
        Decide whether a manager may approve or an admin is needed

        Admin approval is required when the leave is longer than 7 days, starts
        in the past, overlaps an approved or locked schedule week, falls under
        enabled coverage rules, or the employee already has 5 or more leaves in
        the last 60 days.
        """
        today = today or riyadh_today()
        evaluation = LeaveEvaluation(requires_admin=False)

        def require(reason: str) -> None:
            evaluation.requires_admin = True
            evaluation.reasons.append(reason)

        duration = (leave.end_date - leave.start_date).days + 1
        if duration > MAX_MANAGER_DAYS:
            require(f"Leave duration ({duration} days) exceeds {MAX_MANAGER_DAYS} days")

        if leave.start_date < today:
            require("Leave start date is in the past")

        week_start = get_week_start(leave.start_date)
        while week_start <= leave.end_date:
            status_value = await ScheduleLockService.get_week_status(db, leave.boutique_id, week_start)
            if status_value == WeekStatus.APPROVED:
                require(f"Leave overlaps an approved schedule week ({week_start.isoformat()})")
                break
            if await ScheduleLockService.get_week_lock(db, leave.boutique_id, week_start) is not None:
                require(f"Leave overlaps a locked schedule week ({week_start.isoformat()})")
                break
            week_start += timedelta(days=7)

        rules = await db.execute(
            select(func.count(CoverageRule.id)).where(
                CoverageRule.enabled.is_(True),
                or_(CoverageRule.boutique_id == leave.boutique_id, CoverageRule.boutique_id.is_(None)),
            )
        )
        if rules.scalar_one() > 0:
            require("Coverage rules exist for this boutique; staffing check requires admin")

        recent = await db.execute(
            select(func.count(LeaveRequest.id)).where(
                LeaveRequest.emp_id == leave.emp_id,
                LeaveRequest.id != leave.id,
                LeaveRequest.status.in_(APPROVED_LEAVE_STATUSES + (LeaveStatus.SUBMITTED,)),
                LeaveRequest.end_date >= today - timedelta(days=60),
            )
        )
        count = recent.scalar_one()
        if count >= MAX_LEAVES_LAST_60_DAYS:
            require(f"Employee has {count} leave(s) in the last 60 days")

        return evaluation

    @staticmethod
    def _require_submitted(leave: LeaveRequest) -> None:
        if leave.status != LeaveStatus.SUBMITTED:
            raise StateConflictError("Leave request already decided", code="ALREADY_DECIDED")

    @staticmethod
    async def approve_leave(
        db: AsyncSession,
        actor: CurrentUser,
        scope: ResolvedScope,
        leave_id: int,
        today: Optional[date] = None,
    ) -> LeaveRequest:
        """
        Approve a SUBMITTED request

        Raises:
            ForbiddenError: Caller cannot manage leaves, or a manager approves
                a request that needs an admin
            StateConflictError: ALREADY_DECIDED when not SUBMITTED
        """
        if not can_manage_leaves(actor.role):
            raise ForbiddenError()
        leave = await LeaveService.get_leave(db, scope, leave_id)
        LeaveService._require_submitted(leave)

        admin = is_admin_role(actor.role)
        if not admin:
            evaluation = await LeaveService.evaluate_leave_approval(db, leave, today)
            if evaluation.requires_admin:
                raise ForbiddenError("Leave requires admin approval", code="ADMIN_APPROVAL_REQUIRED")

        before = _snapshot(leave)
        leave.status = LeaveStatus.APPROVED_ADMIN if admin else LeaveStatus.APPROVED_MANAGER
        leave.decided_by_user_id = actor.user_id
        leave.decided_at = _utcnow()
        await db.flush()

        await AuditService.log(
            db,
            actor.user_id,
            "LEAVE_APPROVED",
            module="leaves",
            entity_type="leave_request",
            entity_id=str(leave.id),
            boutique_id=leave.boutique_id,
            before=before,
            after=_snapshot(leave),
        )
        clear_coverage_validation_cache()
        return leave

    @staticmethod
    async def reject_leave(
        db: AsyncSession,
        actor: CurrentUser,
        scope: ResolvedScope,
        leave_id: int,
        reason: Optional[str] = None,
    ) -> LeaveRequest:
        if not can_manage_leaves(actor.role):
            raise ForbiddenError()
        leave = await LeaveService.get_leave(db, scope, leave_id)
        LeaveService._require_submitted(leave)

        before = _snapshot(leave)
        leave.status = LeaveStatus.REJECTED
        leave.rejection_reason = reason
        leave.decided_by_user_id = actor.user_id
        leave.decided_at = _utcnow()
        await db.flush()

        await AuditService.log(
            db,
            actor.user_id,
            "LEAVE_REJECTED",
            module="leaves",
            entity_type="leave_request",
            entity_id=str(leave.id),
            boutique_id=leave.boutique_id,
            before=before,
            after=_snapshot(leave),
            reason=reason,
        )
        clear_coverage_validation_cache()
        return leave

    @staticmethod
    async def escalate_leave(
        db: AsyncSession,
        actor: CurrentUser,
        scope: ResolvedScope,
        leave_id: int,
        outbox: NotificationOutbox,
        reason: Optional[str] = None,
        today: Optional[date] = None,
    ) -> LeaveEvaluation:
        """
        Flag a SUBMITTED request for admin decision and queue a notice to admins

        The status stays SUBMITTED. The notice is delivered after commit;
        delivery failure does not undo the flag.
        """
        if not can_manage_leaves(actor.role):
            raise ForbiddenError()
        leave = await LeaveService.get_leave(db, scope, leave_id)
        if leave.status != LeaveStatus.SUBMITTED:
            raise StateConflictError("Only SUBMITTED requests can be escalated")

        evaluation = await LeaveService.evaluate_leave_approval(db, leave, today)
        leave.escalated_at = _utcnow()
        leave.escalated_by_user_id = actor.user_id
        await db.flush()

        await AuditService.log(
            db,
            actor.user_id,
            "LEAVE_ESCALATED",
            module="leaves",
            entity_type="leave_request",
            entity_id=str(leave.id),
            boutique_id=leave.boutique_id,
            after={"requires_admin": evaluation.requires_admin, "reasons": evaluation.reasons},
            reason=reason,
        )

        result = await db.execute(
            select(User.id).where(User.role.in_((Role.ADMIN, Role.SUPER_ADMIN)), User.disabled.is_(False))
        )
        outbox.add(
            "LEAVE_ESCALATED",
            boutique_id=leave.boutique_id,
            affected_user_ids=list(result.scalars().all()),
            payload={"leave_id": leave.id, "emp_id": leave.emp_id, "reasons": evaluation.reasons},
        )
        return evaluation
