"""
Sales target allocation service
Splits a boutique's monthly target across eligible employees by role weight
and presence, using the largest-remainder method so the parts always add up
to the boutique amount exactly.
Reference: https://en.wikipedia.org/wiki/Largest_remainder_method
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from fractions import Fraction
from typing import Hashable, Mapping, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser
from retailops.core.config import Settings
from retailops.core.exceptions import (
    ForbiddenError,
    InvariantViolationError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from retailops.core.permissions import can_manage_role_weights, can_manage_targets
from retailops.core.timeutils import get_days_in_month, get_month_dates, iter_dates, normalize_month_key
from retailops.models.employee import Employee, SalesTargetRole
from retailops.models.schedule import ShiftType
from retailops.models.target import (
    DISTRIBUTION_METHOD,
    BoutiqueMonthlyTarget,
    EmployeeMonthlyTarget,
    SalesTargetRoleWeight,
)
from retailops.models.user import User
from retailops.services.audit import AuditService
from retailops.services.roster import RosterContext, RosterService

logger = logging.getLogger(__name__)

DEFAULT_ROLE_WEIGHTS: dict[SalesTargetRole, float] = {
    SalesTargetRole.MANAGER: 0.5,
    SalesTargetRole.ASSISTANT_MANAGER: 0.75,
    SalesTargetRole.HIGH_JEWELLERY_EXPERT: 2.0,
    SalesTargetRole.SENIOR_SALES_ADVISOR: 1.5,
    SalesTargetRole.SALES_ADVISOR: 1.0,
}

if set(DEFAULT_ROLE_WEIGHTS) != set(SalesTargetRole):
    raise RuntimeError("Default role weights must cover every SalesTargetRole")

_POSITION_ROLES = {
    "BOUTIQUE_MANAGER": SalesTargetRole.MANAGER,
    "ASSISTANT_MANAGER": SalesTargetRole.ASSISTANT_MANAGER,
    "SENIOR_SALES": SalesTargetRole.SENIOR_SALES_ADVISOR,
    "SALES": SalesTargetRole.SALES_ADVISOR,
}

_NUMERIC_ID = re.compile(r"^\d+$")


def position_to_sales_target_role(position: Optional[str]) -> SalesTargetRole:
    """Map an employee position to its target role; unknown positions are sales advisors"""
    if not position:
        return SalesTargetRole.SALES_ADVISOR
    return _POSITION_ROLES.get(position.strip().upper(), SalesTargetRole.SALES_ADVISOR)


def effective_target_role(employee: Employee) -> SalesTargetRole:
    """An explicit sales_target_role wins over the position mapping"""
    if employee.sales_target_role is not None:
        return employee.sales_target_role
    return position_to_sales_target_role(employee.position)


def emp_id_sort_key(emp_id: str) -> tuple[int, int, str]:
    """Numeric ids order numerically and before non-numeric ids"""
    text = str(emp_id)
    if _NUMERIC_ID.match(text):
        return (0, int(text), text)
    return (1, 0, text)


def allocate_largest_remainder(total: int, weights: Mapping[Hashable, float]) -> dict[Hashable, int]:
    """
    Allocate an integer total proportionally to weights

    Every share is floored, then the leftover units go one each to the
    largest fractional remainders. Equal remainders are ordered by key
    (numeric-aware). Arithmetic is exact, so the result sums to total.

    Args:
        total: Non-negative integer to distribute
        weights: Non-negative weight per key; at least one must be positive

    Returns:
        Dict of key -> integer share

    Raises:
        ValidationError: Negative total, negative weight, or all-zero weights
    """
    if total < 0:
        raise ValidationError("Target amount must be >= 0", field="amount")
    if not weights:
        return {}
    exact = {key: Fraction(weight) for key, weight in weights.items()}
    if any(weight < 0 for weight in exact.values()):
        raise ValidationError("Weights must be >= 0", field="weights")
    weight_sum = sum(exact.values())
    if weight_sum <= 0:
        raise ValidationError("Sum of effective weights is zero", field="weights")

    shares: dict[Hashable, int] = {}
    remainders: list[tuple[Fraction, Hashable]] = []
    for key, weight in exact.items():
        raw = total * weight / weight_sum
        floor = raw.numerator // raw.denominator
        shares[key] = floor
        remainders.append((raw - floor, key))

    leftover = total - sum(shares.values())
    remainders.sort(key=lambda item: (-item[0], emp_id_sort_key(str(item[1]))))
    for _, key in remainders[:leftover]:
        shares[key] += 1
    return shares


def get_daily_target_for_day(month_target: int, days_in_month: int, day_of_month: int) -> int:
    """
    Daily slice of a monthly integer target

    base = month_target // days_in_month; days 1..remainder get base + 1.
    1000 over 3 days gives 334, 333, 333.
    """
    if days_in_month <= 0 or not 1 <= day_of_month <= days_in_month:
        return 0
    base, remainder = divmod(month_target, days_in_month)
    return base + 1 if day_of_month <= remainder else base


@dataclass(frozen=True)
class Presence:
    working_days: int
    leave_days: int
    days_in_month: int

    @property
    def scheduled_days(self) -> int:
        return max(0, self.working_days - self.leave_days)

    @property
    def presence_factor(self) -> float:
        if self.days_in_month <= 0:
            return 0.0
        return self.scheduled_days / self.days_in_month


def compute_presence(context: RosterContext, employee: Employee, month_key: str) -> Presence:
    """
    Working and approved-leave days for one employee in a month

    A day is a working day when the employee would work under the team
    pattern or an override (weekly off and NONE overrides are not). Leave
    days are working days covered by approved leave.
    """
    start, end = get_month_dates(month_key)
    working = 0
    leave = 0
    for day in iter_dates(start, end):
        override = context.home_overrides.get((employee.emp_id, day))
        if override is not None:
            works = override.override_shift != ShiftType.NONE
        else:
            works = employee.weekly_off_day is None or employee.weekly_off_day != day.weekday()
        if not works:
            continue
        working += 1
        if context.is_on_leave(employee.emp_id, day):
            leave += 1
    return Presence(working, leave, get_days_in_month(month_key))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TargetService:
    """
    Service class for boutique and employee sales targets
    """

    @staticmethod
    async def get_role_weights(db: AsyncSession) -> dict[SalesTargetRole, float]:
        """Weights from the table; roles without a row keep their default"""
        result = await db.execute(select(SalesTargetRoleWeight))
        rows = result.scalars().all()
        weights = dict(DEFAULT_ROLE_WEIGHTS)
        for row in rows:
            if row.weight is not None and row.weight >= 0:
                weights[row.role] = row.weight
        return weights

    @staticmethod
    async def set_role_weight(
        db: AsyncSession, actor: CurrentUser, role: SalesTargetRole, weight: float
    ) -> SalesTargetRoleWeight:
        if not can_manage_role_weights(actor.role):
            raise ForbiddenError()
        if weight < 0:
            raise ValidationError("weight must be >= 0", field="weight")
        row = await db.get(SalesTargetRoleWeight, role)
        before = {"weight": row.weight} if row else None
        if row is None:
            row = SalesTargetRoleWeight(role=role)
            db.add(row)
        row.weight = weight
        row.updated_by_user_id = actor.user_id
        await db.flush()
        await AuditService.log(
            db,
            actor.user_id,
            "ROLE_WEIGHT_UPDATED",
            module="targets",
            entity_type="sales_target_role_weight",
            entity_id=role.value,
            before=before,
            after={"weight": weight},
        )
        return row

    @staticmethod
    async def get_boutique_target(
        db: AsyncSession, boutique_id: str, month: str
    ) -> Optional[BoutiqueMonthlyTarget]:
        result = await db.execute(
            select(BoutiqueMonthlyTarget).where(
                BoutiqueMonthlyTarget.boutique_id == boutique_id,
                BoutiqueMonthlyTarget.month == month,
            )
        )
        return result.scalars().first()

    @staticmethod
    async def upsert_boutique_target(
        db: AsyncSession, boutique_id: str, month: str, amount: int, actor: CurrentUser
    ) -> BoutiqueMonthlyTarget:
        """
        Set the boutique target for a month (idempotent)

        Raises:
            ForbiddenError: Role cannot manage targets
            ValidationError: Bad month or negative amount
        """
        if not can_manage_targets(actor.role):
            raise ForbiddenError()
        month = normalize_month_key(month)
        get_month_dates(month)
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise ValidationError("amount must be a non-negative integer (SAR)", field="amount")

        target = await TargetService.get_boutique_target(db, boutique_id, month)
        before = {"amount": target.amount} if target else None
        if target is None:
            target = BoutiqueMonthlyTarget(boutique_id=boutique_id, month=month)
            db.add(target)
        target.amount = amount
        target.updated_by_user_id = actor.user_id
        await db.flush()

        await AuditService.log(
            db,
            actor.user_id,
            "BOUTIQUE_TARGET_SET",
            module="targets",
            entity_type="boutique_monthly_target",
            entity_id=f"{boutique_id}:{month}",
            boutique_id=boutique_id,
            before=before,
            after={"amount": amount},
        )
        return target

    @staticmethod
    async def list_employee_targets(db: AsyncSession, boutique_id: str, month: str) -> list[EmployeeMonthlyTarget]:
        result = await db.execute(
            select(EmployeeMonthlyTarget)
            .where(
                EmployeeMonthlyTarget.boutique_id == boutique_id,
                EmployeeMonthlyTarget.month == normalize_month_key(month),
            )
            .order_by(EmployeeMonthlyTarget.emp_id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def _eligible(db: AsyncSession, boutique_id: str) -> list[tuple[Employee, User]]:
        """Active, non-placeholder employees with an enabled user account"""
        result = await db.execute(
            select(Employee, User)
            .join(User, User.emp_id == Employee.emp_id)
            .where(
                Employee.boutique_id == boutique_id,
                Employee.active.is_(True),
                Employee.is_system_only.is_(False),
                User.disabled.is_(False),
            )
        )
        pairs = [(emp, user) for emp, user in result.all()]
        pairs.sort(key=lambda pair: emp_id_sort_key(pair[0].emp_id))
        return pairs

    @staticmethod
    async def generate_targets(
        db: AsyncSession,
        boutique_id: str,
        month: str,
        actor: CurrentUser,
        settings: Settings,
        regenerate: bool = False,
    ) -> list[EmployeeMonthlyTarget]:
        """
        Generate employee targets for a boutique month

        Args:
            db: Database session (all writes share the request transaction)
            boutique_id: Boutique whose target is split
            month: YYYY-MM
            actor: Caller
            settings: Ramadan window for roster inputs
            regenerate: Replace existing rows instead of refusing

        Returns:
            Generated EmployeeMonthlyTarget rows

        Raises:
            ForbiddenError: Role cannot manage targets
            NotFoundError: Boutique target not set
            StateConflictError: TARGETS_EXIST when rows exist and regenerate is False
            ValidationError: No eligible weight
            InvariantViolationError: Allocation does not sum to the boutique amount
        """
        if not can_manage_targets(actor.role):
            raise ForbiddenError()
        month = normalize_month_key(month)
        month_start, month_end = get_month_dates(month)

        boutique_target = await TargetService.get_boutique_target(db, boutique_id, month)
        if boutique_target is None:
            raise NotFoundError("Boutique monthly target must be set first")

        existing = await TargetService.list_employee_targets(db, boutique_id, month)
        if existing and not regenerate:
            raise StateConflictError("Targets already generated for this month", code="TARGETS_EXIST")

        eligible = await TargetService._eligible(db, boutique_id)
        if not eligible:
            raise ValidationError("No eligible employees for target generation", field="employees")

        role_weights = await TargetService.get_role_weights(db)
        context = await RosterService.load_context(db, [boutique_id], month_start, month_end, settings)

        snapshots = {}
        for employee, user in eligible:
            role = effective_target_role(employee)
            presence = compute_presence(context, employee, month)
            weight = role_weights[role]
            snapshots[employee.emp_id] = (employee, user, role, weight, presence, weight * presence.presence_factor)

        shares = allocate_largest_remainder(
            boutique_target.amount, {emp_id: snap[5] for emp_id, snap in snapshots.items()}
        )
        if sum(shares.values()) != boutique_target.amount:
            raise InvariantViolationError(
                f"Allocated {sum(shares.values())} but boutique target is {boutique_target.amount}"
            )

        if existing:
            await db.execute(
                delete(EmployeeMonthlyTarget).where(
                    EmployeeMonthlyTarget.boutique_id == boutique_id,
                    EmployeeMonthlyTarget.month == month,
                )
            )
        generated_at = _utcnow()
        rows = []
        for emp_id, (employee, user, role, weight, presence, effective_weight) in snapshots.items():
            row = EmployeeMonthlyTarget(
                boutique_id=boutique_id,
                user_id=user.id,
                emp_id=emp_id,
                month=month,
                amount=shares[emp_id],
                role_at_generation=role,
                weight_at_generation=weight,
                effective_weight_at_generation=effective_weight,
                scheduled_days_in_month=presence.scheduled_days,
                leave_days_in_month=presence.leave_days,
                presence_factor=presence.presence_factor,
                distribution_method=DISTRIBUTION_METHOD,
                generated_at=generated_at,
                generated_by_user_id=actor.user_id,
            )
            db.add(row)
            rows.append(row)
        await db.flush()

        await AuditService.log(
            db,
            actor.user_id,
            "TARGETS_REGENERATED" if existing else "TARGETS_GENERATED",
            module="targets",
            entity_type="boutique_monthly_target",
            entity_id=f"{boutique_id}:{month}",
            boutique_id=boutique_id,
            after={
                "boutique_amount": boutique_target.amount,
                "employee_count": len(rows),
                "role_weights": {role.value: weight for role, weight in role_weights.items()},
            },
        )
        logger.info(f"Generated {len(rows)} employee targets for {boutique_id} {month}")
        return rows

    @staticmethod
    async def reset_employee_targets(db: AsyncSession, boutique_id: str, month: str, actor: CurrentUser) -> int:
        """Delete generated rows (and their snapshots) for a boutique month"""
        if not can_manage_targets(actor.role):
            raise ForbiddenError()
        month = normalize_month_key(month)
        get_month_dates(month)
        result = await db.execute(
            delete(EmployeeMonthlyTarget).where(
                EmployeeMonthlyTarget.boutique_id == boutique_id,
                EmployeeMonthlyTarget.month == month,
            )
        )
        await AuditService.log(
            db,
            actor.user_id,
            "TARGETS_RESET",
            module="targets",
            entity_type="boutique_monthly_target",
            entity_id=f"{boutique_id}:{month}",
            boutique_id=boutique_id,
            after={"deleted": result.rowcount},
        )
        return result.rowcount or 0
