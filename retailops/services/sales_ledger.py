"""
Daily sales ledger service
A boutique's daily summary total is reconciled against per-employee lines.
All amounts at this layer are whole SAR; a summary locks only when the
difference is exactly zero, and locking publishes the lines as SalesEntry
facts in the same transaction.
"""
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser
from retailops.core.exceptions import (
    ForbiddenError,
    LedgerNotBalancedError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from retailops.core.permissions import can_manage_ledger
from retailops.core.timeutils import month_key_for
from retailops.models.sales import (
    BoutiqueSalesLine,
    BoutiqueSalesSummary,
    SalesEntry,
    SalesSource,
    SummaryStatus,
)
from retailops.models.user import User
from retailops.services.audit import AuditService
from retailops.services.scope import ResolvedScope, ScopeService

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"^\d+$")

AMOUNT_REQUIRED = "Amount is required"
AMOUNT_NOT_INTEGER = "Amount must be a non-negative integer (SAR)"


@dataclass(frozen=True)
class SarValidation:
    ok: bool
    value: Optional[int] = None
    error: Optional[str] = None


def validate_sar_integer(value: Any) -> SarValidation:
    """
    Accept a whole, non-negative SAR amount

    Ints, integral floats and digit-only strings pass. Fractions, decimal
    strings ("42.5"), negatives, booleans and None are rejected.
    """
    if value is None:
        return SarValidation(False, error=AMOUNT_REQUIRED)
    if isinstance(value, bool):
        return SarValidation(False, error=AMOUNT_NOT_INTEGER)
    if isinstance(value, int):
        if value < 0:
            return SarValidation(False, error=AMOUNT_NOT_INTEGER)
        return SarValidation(True, value=value)
    if isinstance(value, float):
        if not value.is_integer() or value < 0:
            return SarValidation(False, error=AMOUNT_NOT_INTEGER)
        return SarValidation(True, value=int(value))
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return SarValidation(False, error=AMOUNT_REQUIRED)
        if not _DIGITS.match(trimmed):
            return SarValidation(False, error=AMOUNT_NOT_INTEGER)
        return SarValidation(True, value=int(trimmed))
    return SarValidation(False, error="Amount must be a number")


def require_sar_integer(value: Any, field: str = "amount") -> int:
    checked = validate_sar_integer(value)
    if not checked.ok:
        raise ValidationError(checked.error, field=field)
    return checked.value


def compute_diff(summary_total: int, lines_total: int) -> int:
    """Positive when the summary exceeds the lines, negative when lines exceed it"""
    return summary_total - lines_total


def can_lock(diff: int, status: SummaryStatus) -> bool:
    return status == SummaryStatus.DRAFT and diff == 0


@dataclass(frozen=True)
class ReconcileResult:
    summary_id: int
    summary_total: int
    lines_total: int
    diff: int
    can_lock: bool
    status: SummaryStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SalesLedgerService:
    """
    Service class for the daily sales ledger
    """

    @staticmethod
    def _check_role(actor: CurrentUser) -> None:
        if not can_manage_ledger(actor.role):
            raise ForbiddenError()

    @staticmethod
    async def get_summary(db: AsyncSession, boutique_id: str, day: date) -> Optional[BoutiqueSalesSummary]:
        result = await db.execute(
            select(BoutiqueSalesSummary).where(
                BoutiqueSalesSummary.boutique_id == boutique_id,
                BoutiqueSalesSummary.date == day,
            )
        )
        return result.scalars().first()

    @staticmethod
    async def _get_summary_in_scope(db: AsyncSession, scope: ResolvedScope, summary_id: int) -> BoutiqueSalesSummary:
        summary = await db.get(BoutiqueSalesSummary, summary_id)
        if summary is None:
            raise NotFoundError("Summary not found")
        ScopeService.assert_boutique_in_scope(scope, summary.boutique_id)
        return summary

    @staticmethod
    def _require_draft(summary: BoutiqueSalesSummary) -> None:
        if summary.status != SummaryStatus.DRAFT:
            raise StateConflictError("Summary is locked", code="SUMMARY_LOCKED")

    @staticmethod
    async def upsert_summary(
        db: AsyncSession,
        actor: CurrentUser,
        scope: ResolvedScope,
        boutique_id: str,
        day: date,
        total_sar: Any,
    ) -> BoutiqueSalesSummary:
        """Create or update a DRAFT daily summary total"""
        SalesLedgerService._check_role(actor)
        ScopeService.assert_boutique_in_scope(scope, boutique_id)
        total = require_sar_integer(total_sar, field="total_sar")

        summary = await SalesLedgerService.get_summary(db, boutique_id, day)
        before = None
        if summary is None:
            summary = BoutiqueSalesSummary(boutique_id=boutique_id, date=day, status=SummaryStatus.DRAFT)
            db.add(summary)
        else:
            SalesLedgerService._require_draft(summary)
            before = {"total_sar": summary.total_sar}
        summary.total_sar = total
        await db.flush()

        await AuditService.log(
            db,
            actor.user_id,
            "LEDGER_SUMMARY_UPSERT",
            module="sales",
            entity_type="boutique_sales_summary",
            entity_id=str(summary.id),
            boutique_id=boutique_id,
            before=before,
            after={"date": day.isoformat(), "total_sar": total},
        )
        return summary

    @staticmethod
    async def upsert_line(
        db: AsyncSession,
        actor: CurrentUser,
        scope: ResolvedScope,
        summary_id: int,
        emp_id: str,
        amount_sar: Any,
    ) -> BoutiqueSalesLine:
        """
        Set one employee's amount on a DRAFT summary

        Raises:
            EmployeeOutOfScopeError: Employee not home-assigned inside the scope
            StateConflictError: Summary already locked
            ValidationError: Amount is not a whole non-negative SAR value
        """
        SalesLedgerService._check_role(actor)
        summary = await SalesLedgerService._get_summary_in_scope(db, scope, summary_id)
        SalesLedgerService._require_draft(summary)
        amount = require_sar_integer(amount_sar, field="amount_sar")
        await ScopeService.assert_employee_in_scope(db, scope, emp_id, actor, module="sales")

        result = await db.execute(
            select(BoutiqueSalesLine).where(
                BoutiqueSalesLine.summary_id == summary.id,
                BoutiqueSalesLine.employee_id == emp_id,
            )
        )
        line = result.scalars().first()
        if line is None:
            line = BoutiqueSalesLine(summary_id=summary.id, employee_id=emp_id, amount_sar=amount)
            db.add(line)
        else:
            line.amount_sar = amount
        await db.flush()
        return line

    @staticmethod
    async def delete_line(
        db: AsyncSession, actor: CurrentUser, scope: ResolvedScope, summary_id: int, emp_id: str
    ) -> None:
        SalesLedgerService._check_role(actor)
        summary = await SalesLedgerService._get_summary_in_scope(db, scope, summary_id)
        SalesLedgerService._require_draft(summary)
        result = await db.execute(
            select(BoutiqueSalesLine).where(
                BoutiqueSalesLine.summary_id == summary.id,
                BoutiqueSalesLine.employee_id == emp_id,
            )
        )
        line = result.scalars().first()
        if line is None:
            raise NotFoundError("Line not found")
        await db.delete(line)
        await db.flush()

    @staticmethod
    async def _lines_total(db: AsyncSession, summary_id: int) -> int:
        result = await db.execute(
            select(func.coalesce(func.sum(BoutiqueSalesLine.amount_sar), 0)).where(
                BoutiqueSalesLine.summary_id == summary_id
            )
        )
        return int(result.scalar_one())

    @staticmethod
    async def reconcile_summary(db: AsyncSession, scope: ResolvedScope, summary_id: int) -> ReconcileResult:
        summary = await SalesLedgerService._get_summary_in_scope(db, scope, summary_id)
        lines_total = await SalesLedgerService._lines_total(db, summary.id)
        diff = compute_diff(summary.total_sar, lines_total)
        return ReconcileResult(
            summary_id=summary.id,
            summary_total=summary.total_sar,
            lines_total=lines_total,
            diff=diff,
            can_lock=can_lock(diff, summary.status),
            status=summary.status,
        )

    @staticmethod
    async def lock_summary(
        db: AsyncSession, actor: CurrentUser, scope: ResolvedScope, summary_id: int
    ) -> BoutiqueSalesSummary:
        """
        Lock a balanced summary and publish its lines as LEDGER sales entries

        Raises:
            StateConflictError: Already locked
            LedgerNotBalancedError: diff is not exactly 0
        """
        SalesLedgerService._check_role(actor)
        summary = await SalesLedgerService._get_summary_in_scope(db, scope, summary_id)
        if summary.status == SummaryStatus.LOCKED:
            raise StateConflictError("Summary already locked", code="ALREADY_LOCKED")
        lines_total = await SalesLedgerService._lines_total(db, summary.id)
        diff = compute_diff(summary.total_sar, lines_total)
        if diff != 0:
            raise LedgerNotBalancedError(diff)

        summary.status = SummaryStatus.LOCKED
        summary.locked_by_user_id = actor.user_id
        summary.locked_at = _utcnow()
        await db.flush()

        synced, skipped = await SalesLedgerService._sync_sales_entries(db, summary, actor.user_id)
        await AuditService.log(
            db,
            actor.user_id,
            "LEDGER_LOCKED",
            module="sales",
            entity_type="boutique_sales_summary",
            entity_id=str(summary.id),
            boutique_id=summary.boutique_id,
            after={"total_sar": summary.total_sar, "synced": synced, "skipped": skipped},
        )
        logger.info(f"Ledger {summary.boutique_id} {summary.date} locked; {synced} entries synced")
        return summary

    @staticmethod
    async def _sync_sales_entries(
        db: AsyncSession, summary: BoutiqueSalesSummary, actor_user_id: str
    ) -> tuple[int, int]:
        """Upsert one SalesEntry per line keyed by (boutique, date_key, user)"""
        lines = (
            await db.execute(select(BoutiqueSalesLine).where(BoutiqueSalesLine.summary_id == summary.id))
        ).scalars().all()
        emp_ids = [line.employee_id for line in lines]
        users = {}
        if emp_ids:
            result = await db.execute(select(User.emp_id, User.id).where(User.emp_id.in_(emp_ids)))
            users = {emp_id: user_id for emp_id, user_id in result.all()}

        date_key = summary.date.isoformat()
        synced = skipped = 0
        for line in lines:
            user_id = users.get(line.employee_id)
            if user_id is None:
                logger.warning(f"Ledger line for {line.employee_id} has no user; not synced")
                skipped += 1
                continue
            result = await db.execute(
                select(SalesEntry).where(
                    SalesEntry.boutique_id == summary.boutique_id,
                    SalesEntry.date_key == date_key,
                    SalesEntry.user_id == user_id,
                )
            )
            entry = result.scalars().first()
            if entry is None:
                entry = SalesEntry(
                    boutique_id=summary.boutique_id,
                    user_id=user_id,
                    date=summary.date,
                    date_key=date_key,
                    month=month_key_for(summary.date),
                )
                db.add(entry)
            entry.amount = line.amount_sar
            entry.source = SalesSource.LEDGER
            entry.created_by_user_id = actor_user_id
            synced += 1
        await db.flush()
        return synced, skipped
