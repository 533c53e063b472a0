"""
Schedule lock service
Day and week locks, week approval, and the single guard every schedule
write calls before touching data.
"""
import logging
from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser
from retailops.core.exceptions import (
    ForbiddenError,
    NotFoundError,
    ScheduleLockedError,
    StateConflictError,
    ValidationError,
)
from retailops.core.permissions import can_approve_week, can_lock_day, can_lock_week, can_unlock_week
from retailops.core.timeutils import SATURDAY, get_week_start, week_dates
from retailops.models.schedule import LockScope, ScheduleLock, ScheduleWeekStatus, WeekStatus
from retailops.services.audit import AuditService

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def lock_info(lock: ScheduleLock) -> dict[str, Any]:
    """Lock metadata surfaced to callers (who locked it and when)"""
    return {
        "scope_type": lock.scope_type.value,
        "scope_value": lock.scope_value,
        "locked_by_user_id": lock.locked_by_user_id,
        "locked_at": lock.locked_at.isoformat() if lock.locked_at else None,
        "reason": lock.reason,
    }


def _require_saturday(week_start: date) -> None:
    if week_start.weekday() != SATURDAY:
        raise ValidationError("week_start must be a Saturday", field="week_start")


class ScheduleLockService:
    """
    Service class for schedule locks and week approval
    """

    @staticmethod
    async def _active_locks(
        db: AsyncSession, boutique_id: str, scope_type: LockScope, values: Iterable[str]
    ) -> dict[str, ScheduleLock]:
        values = list(values)
        if not values:
            return {}
        result = await db.execute(
            select(ScheduleLock).where(
                ScheduleLock.boutique_id == boutique_id,
                ScheduleLock.scope_type == scope_type,
                ScheduleLock.scope_value.in_(values),
                ScheduleLock.is_active.is_(True),
            )
        )
        return {lock.scope_value: lock for lock in result.scalars().all()}

    @staticmethod
    async def get_week_lock(db: AsyncSession, boutique_id: str, week_start: date) -> Optional[ScheduleLock]:
        locks = await ScheduleLockService._active_locks(
            db, boutique_id, LockScope.WEEK, [week_start.isoformat()]
        )
        return locks.get(week_start.isoformat())

    @staticmethod
    async def get_day_lock(db: AsyncSession, boutique_id: str, day: date) -> Optional[ScheduleLock]:
        locks = await ScheduleLockService._active_locks(db, boutique_id, LockScope.DAY, [day.isoformat()])
        return locks.get(day.isoformat())

    @staticmethod
    async def assert_schedule_editable(
        db: AsyncSession,
        boutique_id: str,
        dates: Optional[Iterable[date]] = None,
        week_start: Optional[date] = None,
    ) -> None:
        """
        Refuse schedule mutation on locked weeks or days

        With week_start only the week lock is checked. With dates, the weeks
        containing them are checked first, then the individual days.

        Raises:
            ScheduleLockedError: WEEK_LOCKED or DAY_LOCKED with lock metadata
        """
        if week_start is not None:
            lock = await ScheduleLockService.get_week_lock(db, boutique_id, week_start)
            if lock is not None:
                raise ScheduleLockedError("WEEK_LOCKED", "Schedule week is locked", lock_info(lock))
            return

        days = sorted(set(dates or ()))
        if not days:
            return

        week_keys = sorted({get_week_start(day).isoformat() for day in days})
        week_locks = await ScheduleLockService._active_locks(db, boutique_id, LockScope.WEEK, week_keys)
        for key in week_keys:
            if key in week_locks:
                raise ScheduleLockedError("WEEK_LOCKED", "Schedule week is locked", lock_info(week_locks[key]))

        day_keys = [day.isoformat() for day in days]
        day_locks = await ScheduleLockService._active_locks(db, boutique_id, LockScope.DAY, day_keys)
        for key in day_keys:
            if key in day_locks:
                raise ScheduleLockedError("DAY_LOCKED", "Schedule day is locked", lock_info(day_locks[key]))

    @staticmethod
    async def get_week_status(db: AsyncSession, boutique_id: str, week_start: date) -> WeekStatus:
        row = await ScheduleLockService._week_status_row(db, boutique_id, week_start)
        return row.status if row else WeekStatus.DRAFT

    @staticmethod
    async def _week_status_row(db: AsyncSession, boutique_id: str, week_start: date) -> Optional[ScheduleWeekStatus]:
        result = await db.execute(
            select(ScheduleWeekStatus).where(
                ScheduleWeekStatus.boutique_id == boutique_id,
                ScheduleWeekStatus.week_start == week_start,
            )
        )
        return result.scalars().first()

    @staticmethod
    async def _create_lock(
        db: AsyncSession,
        actor: CurrentUser,
        boutique_id: str,
        scope_type: LockScope,
        scope_value: str,
        reason: Optional[str],
    ) -> ScheduleLock:
        lock = ScheduleLock(
            boutique_id=boutique_id,
            scope_type=scope_type,
            scope_value=scope_value,
            locked_by_user_id=actor.user_id,
            locked_at=_utcnow(),
            reason=reason,
            is_active=True,
        )
        db.add(lock)
        await db.flush()
        await AuditService.log(
            db,
            actor.user_id,
            f"{scope_type.value}_LOCK",
            module="schedule",
            entity_type="schedule_lock",
            entity_id=scope_value,
            boutique_id=boutique_id,
            reason=reason,
        )
        logger.info(f"{scope_type.value} lock {scope_value} set for boutique {boutique_id} by {actor.user_id}")
        return lock

    @staticmethod
    async def _revoke_lock(db: AsyncSession, actor: CurrentUser, lock: ScheduleLock) -> ScheduleLock:
        lock.is_active = False
        lock.revoked_by_user_id = actor.user_id
        lock.revoked_at = _utcnow()
        await db.flush()
        await AuditService.log(
            db,
            actor.user_id,
            f"{lock.scope_type.value}_UNLOCK",
            module="schedule",
            entity_type="schedule_lock",
            entity_id=lock.scope_value,
            boutique_id=lock.boutique_id,
        )
        return lock

    @staticmethod
    async def lock_day(
        db: AsyncSession, actor: CurrentUser, boutique_id: str, day: date, reason: Optional[str] = None
    ) -> ScheduleLock:
        """Lock a single day (idempotent: an existing active lock is returned)"""
        if not can_lock_day(actor.role):
            raise ForbiddenError()
        existing = await ScheduleLockService.get_day_lock(db, boutique_id, day)
        if existing is not None:
            return existing
        return await ScheduleLockService._create_lock(
            db, actor, boutique_id, LockScope.DAY, day.isoformat(), reason
        )

    @staticmethod
    async def unlock_day(db: AsyncSession, actor: CurrentUser, boutique_id: str, day: date) -> ScheduleLock:
        if not can_lock_day(actor.role):
            raise ForbiddenError()
        lock = await ScheduleLockService.get_day_lock(db, boutique_id, day)
        if lock is None:
            raise NotFoundError("Day is not locked")
        return await ScheduleLockService._revoke_lock(db, actor, lock)

    @staticmethod
    async def lock_week(
        db: AsyncSession,
        actor: CurrentUser,
        boutique_id: str,
        week_start: date,
        reason: Optional[str] = None,
        allow_draft: bool = False,
    ) -> ScheduleLock:
        """
        Lock a week (Saturday start)

        Raises:
            ForbiddenError: Role cannot lock weeks
            StateConflictError: WEEK_NOT_APPROVED unless allow_draft
        """
        if not can_lock_week(actor.role):
            raise ForbiddenError()
        _require_saturday(week_start)
        existing = await ScheduleLockService.get_week_lock(db, boutique_id, week_start)
        if existing is not None:
            return existing
        if not allow_draft:
            status_value = await ScheduleLockService.get_week_status(db, boutique_id, week_start)
            if status_value != WeekStatus.APPROVED:
                raise StateConflictError("Week must be approved before locking", code="WEEK_NOT_APPROVED")
        return await ScheduleLockService._create_lock(
            db, actor, boutique_id, LockScope.WEEK, week_start.isoformat(), reason
        )

    @staticmethod
    async def unlock_week(db: AsyncSession, actor: CurrentUser, boutique_id: str, week_start: date) -> ScheduleLock:
        if not can_unlock_week(actor.role):
            raise ForbiddenError()
        lock = await ScheduleLockService.get_week_lock(db, boutique_id, week_start)
        if lock is None:
            raise NotFoundError("Week is not locked")
        return await ScheduleLockService._revoke_lock(db, actor, lock)

    @staticmethod
    async def approve_week(
        db: AsyncSession, actor: CurrentUser, boutique_id: str, week_start: date
    ) -> ScheduleWeekStatus:
        if not can_approve_week(actor.role):
            raise ForbiddenError()
        _require_saturday(week_start)
        row = await ScheduleLockService._week_status_row(db, boutique_id, week_start)
        if row is None:
            row = ScheduleWeekStatus(boutique_id=boutique_id, week_start=week_start)
            db.add(row)
        row.status = WeekStatus.APPROVED
        row.approved_by_user_id = actor.user_id
        row.approved_at = _utcnow()
        await db.flush()
        await AuditService.log(
            db,
            actor.user_id,
            "WEEK_APPROVED",
            module="schedule",
            entity_type="schedule_week",
            entity_id=week_start.isoformat(),
            boutique_id=boutique_id,
        )
        return row

    @staticmethod
    async def unapprove_week(
        db: AsyncSession, actor: CurrentUser, boutique_id: str, week_start: date
    ) -> ScheduleWeekStatus:
        """
        Return a week to DRAFT

        Raises:
            ScheduleLockedError: WEEK_LOCKED while the week is locked
        """
        if not can_approve_week(actor.role):
            raise ForbiddenError()
        lock = await ScheduleLockService.get_week_lock(db, boutique_id, week_start)
        if lock is not None:
            raise ScheduleLockedError("WEEK_LOCKED", "Schedule week is locked", lock_info(lock))
        row = await ScheduleLockService._week_status_row(db, boutique_id, week_start)
        if row is None:
            row = ScheduleWeekStatus(boutique_id=boutique_id, week_start=week_start)
            db.add(row)
        row.status = WeekStatus.DRAFT
        row.approved_by_user_id = None
        row.approved_at = None
        await db.flush()
        await AuditService.log(
            db,
            actor.user_id,
            "WEEK_UNAPPROVED",
            module="schedule",
            entity_type="schedule_week",
            entity_id=week_start.isoformat(),
            boutique_id=boutique_id,
        )
        return row

    @staticmethod
    async def get_week_lock_summary(db: AsyncSession, boutique_id: str, week_start: date) -> dict[str, Any]:
        """Week status, week lock and day locks for a week view"""
        days = [day.isoformat() for day in week_dates(week_start)]
        week_lock = await ScheduleLockService.get_week_lock(db, boutique_id, week_start)
        day_locks = await ScheduleLockService._active_locks(db, boutique_id, LockScope.DAY, days)
        return {
            "week_start": week_start.isoformat(),
            "status": (await ScheduleLockService.get_week_status(db, boutique_id, week_start)).value,
            "week_lock": lock_info(week_lock) if week_lock else None,
            "day_locks": {key: lock_info(lock) for key, lock in sorted(day_locks.items())},
        }
