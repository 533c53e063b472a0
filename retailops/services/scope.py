"""
Scope resolution service
Computes the authoritative set of boutique IDs a caller may read or write.
Every operational endpoint resolves scope first; client-supplied boutique
filters only ever narrow access, never widen it.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser
from retailops.core.exceptions import (
    EmployeeOutOfScopeError,
    ForbiddenError,
    NoBoutiqueAssignedError,
    UnauthorizedError,
)
from retailops.models.boutique import Boutique, UserBoutiqueMembership
from retailops.models.employee import Employee
from retailops.models.user import Role
from retailops.services.audit import AuditService

logger = logging.getLogger(__name__)


class ScopeIntent(str, Enum):
    READ = "READ"
    WRITE = "WRITE"


@dataclass(frozen=True)
class ResolvedScope:
    """
    Result of scope resolution

    Attributes:
        boutique_ids: Boutiques the caller may touch for this request
        effective_boutique_id: The single working boutique (None when global)
        is_global: True only for an audited ADMIN global grant
        label: Human label for the scope
    """
    boutique_ids: list[str]
    effective_boutique_id: Optional[str]
    is_global: bool = False
    label: str = field(default="", compare=False)

    def contains(self, boutique_id: Optional[str]) -> bool:
        return boutique_id is not None and boutique_id in self.boutique_ids


BOUTIQUE_LOCAL_ROLES = (Role.EMPLOYEE, Role.ASSISTANT_MANAGER)


class ScopeService:
    """
    Service class for boutique scope resolution and scope assertions
    """

    @staticmethod
    async def get_allowed_boutique_ids(db: AsyncSession, user_id: str) -> list[str]:
        """Boutiques reachable through can_access memberships on active boutiques"""
        result = await db.execute(
            select(UserBoutiqueMembership.boutique_id)
            .join(Boutique, Boutique.id == UserBoutiqueMembership.boutique_id)
            .where(
                UserBoutiqueMembership.user_id == user_id,
                UserBoutiqueMembership.can_access.is_(True),
                Boutique.is_active.is_(True),
            )
            .order_by(UserBoutiqueMembership.boutique_id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_manageable_boutique_ids(db: AsyncSession, user_id: str) -> list[str]:
        """Boutiques where the membership grants writes (can_manage)"""
        result = await db.execute(
            select(UserBoutiqueMembership.boutique_id)
            .join(Boutique, Boutique.id == UserBoutiqueMembership.boutique_id)
            .where(
                UserBoutiqueMembership.user_id == user_id,
                UserBoutiqueMembership.can_manage.is_(True),
                Boutique.is_active.is_(True),
            )
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_active_boutique_ids(db: AsyncSession) -> list[str]:
        result = await db.execute(
            select(Boutique.id).where(Boutique.is_active.is_(True)).order_by(Boutique.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def _find_active_boutique_id(db: AsyncSession, id_or_code: str) -> Optional[str]:
        result = await db.execute(
            select(Boutique.id).where(
                or_(Boutique.id == id_or_code, Boutique.code == id_or_code),
                Boutique.is_active.is_(True),
            )
        )
        return result.scalars().first()

    @staticmethod
    async def _label(db: AsyncSession, boutique_ids: list[str]) -> str:
        if not boutique_ids:
            return "—"
        if len(boutique_ids) > 1:
            return f"{len(boutique_ids)} boutiques"
        boutique = await db.get(Boutique, boutique_ids[0])
        return f"{boutique.name} ({boutique.code})" if boutique else boutique_ids[0]

    @staticmethod
    async def resolve_scope(
        db: AsyncSession,
        user: Optional[CurrentUser],
        requested_boutique: Optional[str] = None,
        *,
        global_: bool = False,
        intent: ScopeIntent = ScopeIntent.READ,
        module: str = "general",
    ) -> ResolvedScope:
        """
        Resolve the caller's boutique scope

        Args:
            db: Database session
            user: Authenticated caller (None means no session)
            requested_boutique: Boutique id or code asked for by the client
            global_: ADMIN request for all active boutiques (audited)
            intent: READ or WRITE; SUPER_ADMIN writes need a managing membership
            module: Functional area recorded on audit rows

        Returns:
            ResolvedScope

        Raises:
            UnauthorizedError: No identity
            NoBoutiqueAssignedError: Caller has no boutique to work in
            ForbiddenError: Requested boutique or global access not allowed
        """
        if user is None:
            raise UnauthorizedError()

        role = user.role

        # Non-elevated roles are pinned to their home boutique; request input is ignored
        if role in BOUTIQUE_LOCAL_ROLES:
            if not user.boutique_id:
                raise NoBoutiqueAssignedError()
            ids = [user.boutique_id]
            return ResolvedScope(ids, user.boutique_id, False, await ScopeService._label(db, ids))

        if global_:
            if role not in (Role.ADMIN, Role.SUPER_ADMIN):
                raise ForbiddenError()
            # The grant is recorded before access is handed out; a failed write aborts it
            await AuditService.log(
                db,
                user.user_id,
                "GLOBAL_SCOPE_GRANTED",
                module=module,
                entity_type="scope",
                boutique_id=None,
            )
            ids = await ScopeService.get_active_boutique_ids(db)
            logger.info(f"Global scope granted to {user.user_id} for module {module}")
            return ResolvedScope(ids, None, True, "All boutiques")

        allowed = await ScopeService.get_allowed_boutique_ids(db, user.user_id)
        if user.boutique_id and user.boutique_id not in allowed:
            allowed.insert(0, user.boutique_id)
        if not allowed:
            raise NoBoutiqueAssignedError()

        target: Optional[str] = None
        if requested_boutique:
            target = await ScopeService._find_active_boutique_id(db, requested_boutique)
            if target is None or target not in allowed:
                raise ForbiddenError()
        else:
            target = user.boutique_id or allowed[0]

        if role == Role.SUPER_ADMIN:
            if intent == ScopeIntent.WRITE and target != user.boutique_id:
                manageable = await ScopeService.get_manageable_boutique_ids(db, user.user_id)
                if target not in manageable:
                    raise ForbiddenError()
            if target != user.boutique_id:
                await AuditService.log_best_effort(
                    db,
                    user.user_id,
                    "BOUTIQUE_CONTEXT_VIEW",
                    module=module,
                    entity_type="boutique",
                    entity_id=target,
                    boutique_id=target,
                )

        ids = [target]
        return ResolvedScope(ids, target, False, await ScopeService._label(db, ids))

    @staticmethod
    def assert_boutique_in_scope(scope: ResolvedScope, boutique_id: Optional[str]) -> None:
        if not scope.contains(boutique_id):
            raise ForbiddenError()

    @staticmethod
    async def assert_employees_in_scope(
        db: AsyncSession,
        scope: ResolvedScope,
        emp_ids: Iterable[str],
        actor: Optional[CurrentUser] = None,
        module: str = "general",
    ) -> dict[str, Employee]:
        """
        Load employees and verify every one is home-assigned inside the scope

        Unknown employees are reported exactly like out-of-scope ones so the
        response never reveals whether an id exists elsewhere.

        Raises:
            EmployeeOutOfScopeError: Listing the offending ids (for audit only)
        """
        wanted = list(dict.fromkeys(emp_ids))
        if not wanted:
            return {}
        result = await db.execute(select(Employee).where(Employee.emp_id.in_(wanted)))
        employees = {emp.emp_id: emp for emp in result.scalars().all()}
        invalid = [
            emp_id for emp_id in wanted
            if emp_id not in employees or not scope.contains(employees[emp_id].boutique_id)
        ]
        if invalid:
            error = EmployeeOutOfScopeError(
                emp_id=invalid[0],
                invalid_emp_ids=invalid,
                boutique_ids=scope.boutique_ids,
                actor_user_id=actor.user_id if actor else None,
                module=module,
            )
            await ScopeService.log_cross_boutique_blocked(db, error)
            raise error
        return employees

    @staticmethod
    async def assert_employee_in_scope(
        db: AsyncSession,
        scope: ResolvedScope,
        emp_id: str,
        actor: Optional[CurrentUser] = None,
        module: str = "general",
    ) -> Employee:
        employees = await ScopeService.assert_employees_in_scope(db, scope, [emp_id], actor, module)
        return employees[emp_id]

    @staticmethod
    async def log_cross_boutique_blocked(db: AsyncSession, error: EmployeeOutOfScopeError) -> None:
        """
        Record a blocked attempt in the current transaction

        The request transaction is rolled back when the error reaches the
        boundary; get_db then writes the same row again on its own.
        """
        logger.warning(
            f"Cross-boutique access blocked: actor={error.actor_user_id} "
            f"emp_ids={error.invalid_emp_ids} scope={error.boutique_ids}"
        )
        fields = error.audit_fields()
        await AuditService.log_best_effort(db, fields.pop("actor_user_id"), fields.pop("action"), **fields)
