"""
Coverage suggestion service
Proposes at most one AM<->PM move that fixes a day's binding coverage
problem. Advisory only: nothing here writes.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.core.config import Settings
from retailops.core.timeutils import get_month_dates, month_key_for
from retailops.models.schedule import ShiftOverride, ShiftType
from retailops.services.coverage import (
    CoverageService,
    ValidationResult,
    ValidationType,
)
from retailops.services.roster import RosterEmployee, RosterForDate, RosterService, ShiftBucket

logger = logging.getLogger(__name__)

# Binding constraint order: the first problem present is the one addressed
SUGGESTION_PRIORITY = (
    ValidationType.FRIDAY_AM_NOT_ALLOWED,
    ValidationType.MIN_AM,
    ValidationType.MIN_PM,
    ValidationType.AM_LT_PM,
)


@dataclass(frozen=True)
class SuggestionImpact:
    am_before: int
    pm_before: int
    am_after: int
    pm_after: int


@dataclass(frozen=True)
class CoverageSuggestion:
    date: date
    from_shift: ShiftType
    to_shift: ShiftType
    emp_id: str
    employee_name: str
    reason: str
    addresses: ValidationType
    impact: SuggestionImpact


@dataclass(frozen=True)
class CoverageSuggestionResult:
    suggestion: Optional[CoverageSuggestion] = None
    explanation: Optional[str] = None


def _pick(candidates: list[RosterEmployee], override_counts: dict[str, int]) -> RosterEmployee:
    """Fewest overrides this month first, then name, then emp_id"""
    return min(
        candidates,
        key=lambda emp: (override_counts.get(emp.emp_id, 0), emp.name.casefold(), emp.emp_id),
    )


def suggest_move(
    day: date,
    roster: RosterForDate,
    results: list[ValidationResult],
    override_counts: Optional[dict[str, int]] = None,
) -> CoverageSuggestionResult:
    """
    Choose one move for the highest-priority problem in results

    Guests and employees on leave are never candidates. When no move fits,
    the explanation states the shortfall in numbers.
    """
    override_counts = override_counts or {}
    present = {r.type: r for r in results}
    binding = next((kind for kind in SUGGESTION_PRIORITY if kind in present), None)
    if binding is None:
        return CoverageSuggestionResult()

    problem = present[binding]
    am, pm = roster.am_count, roster.pm_count
    min_am, min_pm = problem.min_am, problem.min_pm
    movable_am = [emp for emp in roster.am if not emp.is_guest]
    movable_pm = [emp for emp in roster.pm if not emp.is_guest]

    if binding == ValidationType.FRIDAY_AM_NOT_ALLOWED:
        if not movable_am:
            return CoverageSuggestionResult(
                explanation=f"need {am} fewer AM on Friday, 0 available to move (AM staff are guests)"
            )
        chosen = _pick(movable_am, override_counts)
        reason = f"Friday is PM-only. Moving {chosen.name} from AM to PM makes AM={am - 1}, PM={pm + 1}."
        return _result(day, chosen, ShiftBucket.AM, binding, reason, am, pm)

    if binding in (ValidationType.MIN_AM, ValidationType.AM_LT_PM):
        need = max(min_am - am, 1) if binding == ValidationType.MIN_AM else 1
        spare = max(0, pm - min_pm)
        available = min(len(movable_pm), spare)
        if available < need:
            return CoverageSuggestionResult(
                explanation=f"need {need} more AM, {available} available to move"
            )
        chosen = _pick(movable_pm, override_counts)
        if binding == ValidationType.MIN_AM:
            reason = (
                f"AM ({am}) is below minimum ({min_am}). Moving {chosen.name} from PM to AM "
                f"makes AM={am + 1}, PM={pm - 1} and keeps Min PM={min_pm}."
            )
        else:
            reason = f"AM ({am}) < PM ({pm}). Moving {chosen.name} from PM to AM makes AM={am + 1}, PM={pm - 1}."
        return _result(day, chosen, ShiftBucket.PM, binding, reason, am, pm)

    # MIN_PM
    need = max(min_pm - pm, 1)
    spare = max(0, am - min_am)
    available = min(len(movable_am), spare)
    if available < need:
        return CoverageSuggestionResult(
            explanation=f"need {need} more PM, {available} available to move"
        )
    chosen = _pick(movable_am, override_counts)
    reason = (
        f"PM ({pm}) is below minimum ({min_pm}). Moving {chosen.name} from AM to PM "
        f"makes AM={am - 1}, PM={pm + 1} and keeps Min AM={min_am}."
    )
    return _result(day, chosen, ShiftBucket.AM, binding, reason, am, pm)


def _result(
    day: date,
    chosen: RosterEmployee,
    from_bucket: ShiftBucket,
    binding: ValidationType,
    reason: str,
    am: int,
    pm: int,
) -> CoverageSuggestionResult:
    if from_bucket == ShiftBucket.AM:
        from_shift, to_shift = ShiftType.MORNING, ShiftType.EVENING
        impact = SuggestionImpact(am, pm, am - 1, pm + 1)
    else:
        from_shift, to_shift = ShiftType.EVENING, ShiftType.MORNING
        impact = SuggestionImpact(am, pm, am + 1, pm - 1)
    return CoverageSuggestionResult(
        suggestion=CoverageSuggestion(
            date=day,
            from_shift=from_shift,
            to_shift=to_shift,
            emp_id=chosen.emp_id,
            employee_name=chosen.name,
            reason=reason,
            addresses=binding,
            impact=impact,
        )
    )


class CoverageSuggestionService:
    """
    Service class wiring roster, validation and override counts into suggest_move
    """

    @staticmethod
    async def get_override_counts(db: AsyncSession, boutique_ids: list[str], month_key: str) -> dict[str, int]:
        """Active overrides per employee within the month"""
        start, end = get_month_dates(month_key)
        result = await db.execute(
            select(ShiftOverride.emp_id, func.count(ShiftOverride.id))
            .where(
                ShiftOverride.is_active.is_(True),
                ShiftOverride.boutique_id.in_(boutique_ids),
                ShiftOverride.date >= start,
                ShiftOverride.date < end,
            )
            .group_by(ShiftOverride.emp_id)
        )
        return {emp_id: count for emp_id, count in result.all()}

    @staticmethod
    async def get_coverage_suggestion(
        db: AsyncSession,
        day: date,
        boutique_ids: list[str],
        settings: Settings,
        roster: Optional[RosterForDate] = None,
        results: Optional[list[ValidationResult]] = None,
        override_counts: Optional[dict[str, int]] = None,
    ) -> CoverageSuggestionResult:
        """
        Suggest one move for a date

        Args:
            db: Database session
            day: Date to inspect
            boutique_ids: Resolved scope
            settings: Ramadan window and cache TTL
            roster / results / override_counts: Pre-fetched inputs (week views)

        Returns:
            CoverageSuggestionResult with a suggestion or an explanation
        """
        if roster is None:
            roster = await RosterService.roster_for_date(db, day, boutique_ids, settings)
        if results is None:
            results = await CoverageService.validate_coverage(db, day, boutique_ids, settings, roster=roster)
        if not results:
            return CoverageSuggestionResult()
        if override_counts is None:
            override_counts = await CoverageSuggestionService.get_override_counts(
                db, boutique_ids, month_key_for(day)
            )
        return suggest_move(day, roster, results, override_counts)
