"""
Schedule service
Override writes (always behind the lock guard) and day/week schedule reads
that bundle roster, coverage validation and the suggested move.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser
from retailops.core.config import Settings
from retailops.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from retailops.core.permissions import can_edit_schedule
from retailops.core.timeutils import is_friday, is_ramadan, month_key_for, week_dates
from retailops.models.employee import Employee
from retailops.models.schedule import ShiftOverride, ShiftType
from retailops.services.audit import AuditService
from retailops.services.coverage import (
    CoverageService,
    ValidationResult,
    clear_coverage_validation_cache,
    format_validation_summary,
)
from retailops.services.coverage_suggestion import CoverageSuggestionResult, CoverageSuggestionService
from retailops.services.roster import RosterForDate, RosterService
from retailops.services.schedule_lock import ScheduleLockService
from retailops.services.scope import ResolvedScope, ScopeService

logger = logging.getLogger(__name__)

GUEST_SHIFTS = (ShiftType.COVER_RASHID_AM, ShiftType.COVER_RASHID_PM)
AM_SHIFTS = (ShiftType.MORNING, ShiftType.COVER_RASHID_AM)


def parse_shift(raw: str) -> ShiftType:
    try:
        return ShiftType(str(raw).strip().upper())
    except ValueError:
        raise ValidationError("Invalid override shift", field="override_shift")


def is_am_shift_forbidden_on_date(day: date, shift: ShiftType, settings: Settings) -> bool:
    """AM shifts are refused on Fridays except during Ramadan"""
    return shift in AM_SHIFTS and is_friday(day) and not is_ramadan(day, settings)


@dataclass
class DaySchedule:
    date: date
    roster: RosterForDate
    validations: list[ValidationResult]
    suggestion: CoverageSuggestionResult

    @property
    def summary(self) -> str:
        return format_validation_summary(self.validations)


@dataclass
class WeekSchedule:
    week_start: date
    days: list[DaySchedule]
    locks: Optional[dict[str, Any]] = None


@dataclass
class GridSaveResult:
    applied: int
    total: int
    skipped: list[dict[str, str]] = field(default_factory=list)


class ScheduleService:
    """
    Service class for schedule mutations and views
    """

    @staticmethod
    def _host_boutique(scope: ResolvedScope) -> str:
        if scope.effective_boutique_id is None:
            # Global scope is read-only for schedules; writes need one boutique
            raise ForbiddenError()
        return scope.effective_boutique_id

    @staticmethod
    async def _resolve_override_employee(
        db: AsyncSession,
        actor: CurrentUser,
        scope: ResolvedScope,
        emp_id: str,
        shift: ShiftType,
    ) -> Employee:
        """
        Home employees must be inside the scope. A COVER_* shift may name an
        active employee of another boutique (guest coverage).
        """
        if shift in GUEST_SHIFTS:
            employee = await db.get(Employee, emp_id)
            if employee is not None and employee.active and not employee.is_system_only:
                return employee
        return await ScopeService.assert_employee_in_scope(db, scope, emp_id, actor, module="schedule")

    @staticmethod
    async def apply_override_change(
        db: AsyncSession,
        actor: CurrentUser,
        scope: ResolvedScope,
        emp_id: str,
        day: date,
        raw_shift: str,
        reason: Optional[str],
        settings: Settings,
    ) -> ShiftOverride:
        """
        Create or update the override for (boutique, employee, date)

        Args:
            db: Database session
            actor: Caller
            scope: Resolved scope; the override is hosted by its effective boutique
            emp_id: Employee to override
            day: Date of the override
            raw_shift: Shift name (case-insensitive)
            reason: Free-text reason recorded on the row and audit
            settings: Ramadan window

        Returns:
            The upserted ShiftOverride

        Raises:
            ForbiddenError: Role cannot edit schedules
            ScheduleLockedError: Day or week locked
            ValidationError: Unknown shift or FRIDAY_PM_ONLY
            EmployeeOutOfScopeError: Employee outside the scope
        """
        if not can_edit_schedule(actor.role):
            raise ForbiddenError()
        shift = parse_shift(raw_shift)
        host = ScheduleService._host_boutique(scope)

        await ScheduleLockService.assert_schedule_editable(db, host, dates=[day])

        if is_am_shift_forbidden_on_date(day, shift, settings):
            raise ValidationError("Friday is PM-only", field="override_shift", code="FRIDAY_PM_ONLY")

        employee = await ScheduleService._resolve_override_employee(db, actor, scope, emp_id, shift)

        result = await db.execute(
            select(ShiftOverride).where(
                ShiftOverride.boutique_id == host,
                ShiftOverride.emp_id == emp_id,
                ShiftOverride.date == day,
            )
        )
        override = result.scalars().first()
        before = None
        if override is None:
            override = ShiftOverride(boutique_id=host, emp_id=emp_id, date=day)
            db.add(override)
        else:
            before = {
                "override_shift": override.override_shift.value,
                "is_active": override.is_active,
                "reason": override.reason,
            }

        override.override_shift = shift
        override.reason = reason or None
        override.is_active = True
        override.created_by_user_id = actor.user_id
        override.source_boutique_id = employee.boutique_id if employee.boutique_id != host else None
        await db.flush()

        await AuditService.log(
            db,
            actor.user_id,
            "OVERRIDE_UPDATED" if before else "OVERRIDE_CREATED",
            module="schedule",
            entity_type="shift_override",
            entity_id=str(override.id),
            boutique_id=host,
            before=before,
            after={"emp_id": emp_id, "date": day.isoformat(), "override_shift": shift.value},
            reason=reason,
        )
        clear_coverage_validation_cache()
        return override

    @staticmethod
    async def remove_override(
        db: AsyncSession,
        actor: CurrentUser,
        scope: ResolvedScope,
        emp_id: str,
        day: date,
    ) -> ShiftOverride:
        """Deactivate the override so the default pattern applies again"""
        if not can_edit_schedule(actor.role):
            raise ForbiddenError()
        host = ScheduleService._host_boutique(scope)
        await ScheduleLockService.assert_schedule_editable(db, host, dates=[day])

        result = await db.execute(
            select(ShiftOverride).where(
                ShiftOverride.boutique_id == host,
                ShiftOverride.emp_id == emp_id,
                ShiftOverride.date == day,
                ShiftOverride.is_active.is_(True),
            )
        )
        override = result.scalars().first()
        if override is None:
            raise NotFoundError("Override not found")
        override.is_active = False
        await db.flush()

        await AuditService.log(
            db,
            actor.user_id,
            "OVERRIDE_REMOVED",
            module="schedule",
            entity_type="shift_override",
            entity_id=str(override.id),
            boutique_id=host,
        )
        clear_coverage_validation_cache()
        return override

    @staticmethod
    async def apply_grid_changes(
        db: AsyncSession,
        actor: CurrentUser,
        scope: ResolvedScope,
        changes: list[tuple[str, date, str]],
        reason: Optional[str],
        settings: Settings,
    ) -> GridSaveResult:
        """
        Apply a batch of (emp_id, date, shift) edits from the week grid

        All dates pass the lock guard before any write. Friday AM edits are
        skipped and reported instead of failing the batch.
        """
        if not can_edit_schedule(actor.role):
            raise ForbiddenError()
        host = ScheduleService._host_boutique(scope)
        if not changes:
            return GridSaveResult(applied=0, total=0)

        await ScheduleLockService.assert_schedule_editable(db, host, dates=[day for _, day, _ in changes])

        outcome = GridSaveResult(applied=0, total=len(changes))
        for emp_id, day, raw_shift in changes:
            shift = parse_shift(raw_shift)
            if is_am_shift_forbidden_on_date(day, shift, settings):
                outcome.skipped.append(
                    {"emp_id": emp_id, "date": day.isoformat(), "reason": "FRIDAY_AM_NOT_ALLOWED"}
                )
                continue
            await ScheduleService.apply_override_change(
                db, actor, scope, emp_id, day, shift.value, reason, settings
            )
            outcome.applied += 1

        logger.info(
            f"Grid save for boutique {host}: {outcome.applied}/{outcome.total} applied, "
            f"{len(outcome.skipped)} skipped"
        )
        return outcome

    @staticmethod
    async def get_day_schedule(
        db: AsyncSession, scope: ResolvedScope, day: date, settings: Settings
    ) -> DaySchedule:
        week = await ScheduleService._build_days(db, scope, [day], settings)
        return week[0]

    @staticmethod
    async def get_week_schedule(
        db: AsyncSession, scope: ResolvedScope, week_start: date, settings: Settings
    ) -> WeekSchedule:
        """
        Seven days of roster, validation and suggestion; roster inputs for the
        whole week are fetched once
        """
        days = await ScheduleService._build_days(db, scope, week_dates(week_start), settings)
        locks = None
        if scope.effective_boutique_id is not None:
            locks = await ScheduleLockService.get_week_lock_summary(db, scope.effective_boutique_id, week_start)
        return WeekSchedule(week_start=week_start, days=days, locks=locks)

    @staticmethod
    async def _build_days(
        db: AsyncSession, scope: ResolvedScope, days: list[date], settings: Settings
    ) -> list[DaySchedule]:
        boutique_ids = scope.boutique_ids
        context = await RosterService.load_context(
            db, boutique_ids, min(days), max(days) + timedelta(days=1), settings
        )
        counts_by_month: dict[str, dict[str, int]] = {}
        built: list[DaySchedule] = []
        for day in days:
            roster = context.roster_for(day)
            validations = await CoverageService.validate_coverage(db, day, boutique_ids, settings, roster=roster)
            month_key = month_key_for(day)
            if validations and month_key not in counts_by_month:
                counts_by_month[month_key] = await CoverageSuggestionService.get_override_counts(
                    db, boutique_ids, month_key
                )
            suggestion = await CoverageSuggestionService.get_coverage_suggestion(
                db,
                day,
                boutique_ids,
                settings,
                roster=roster,
                results=validations,
                override_counts=counts_by_month.get(month_key, {}),
            )
            built.append(DaySchedule(day, roster, validations, suggestion))
        return built
