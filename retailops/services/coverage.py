"""
Coverage validation service
Checks a day's roster against coverage rules and fixed business rules.
Results are advisory: they are returned next to schedule payloads and never
block writes (only the schedule lock guard does).
"""
import logging
import time
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser
from retailops.core.config import Settings
from retailops.core.exceptions import ForbiddenError, ValidationError
from retailops.core.permissions import can_edit_coverage_rules
from retailops.core.timeutils import is_friday, is_ramadan
from retailops.models.schedule import CoverageRule
from retailops.services.audit import AuditService
from retailops.services.roster import RosterForDate, RosterService

logger = logging.getLogger(__name__)


class ValidationType(str, Enum):
    FRIDAY_AM_NOT_ALLOWED = "FRIDAY_AM_NOT_ALLOWED"
    MIN_AM = "MIN_AM"
    MIN_PM = "MIN_PM"
    AM_LT_PM = "AM_LT_PM"


class Severity(str, Enum):
    VIOLATION = "VIOLATION"
    WARNING = "WARNING"


@dataclass(frozen=True)
class ValidationResult:
    type: ValidationType
    severity: Severity
    message: str
    am_count: int
    pm_count: int
    min_am: int
    min_pm: int
    emp_id: Optional[str] = None


@dataclass(frozen=True)
class RuleSnapshot:
    min_am: int
    min_pm: int
    enabled: bool = True

    @classmethod
    def from_rule(cls, rule: Optional[CoverageRule]) -> Optional["RuleSnapshot"]:
        if rule is None:
            return None
        return cls(rule.min_am, rule.min_pm, rule.enabled)


def evaluate_coverage(
    day: date,
    roster: RosterForDate,
    rule: Optional[RuleSnapshot],
    ramadan: bool,
) -> list[ValidationResult]:
    """
    Validate one day's roster

    - Friday outside Ramadan: every AM employee is a FRIDAY_AM_NOT_ALLOWED
      violation and AM headcount checks do not apply.
    - Enabled rule: AM/PM below minimum are violations.
    - AM below PM is a warning.
    """
    am_count = roster.am_count
    pm_count = roster.pm_count
    active_rule = rule if rule is not None and rule.enabled else None
    min_am = active_rule.min_am if active_rule else 0
    min_pm = active_rule.min_pm if active_rule else 0
    friday_pm_only = is_friday(day) and not ramadan

    def result(kind: ValidationType, severity: Severity, message: str, emp_id: Optional[str] = None):
        return ValidationResult(kind, severity, message, am_count, pm_count, min_am, min_pm, emp_id)

    results: list[ValidationResult] = []

    if friday_pm_only:
        for emp in roster.am:
            results.append(result(
                ValidationType.FRIDAY_AM_NOT_ALLOWED,
                Severity.VIOLATION,
                f"Friday is PM-only; {emp.name} ({emp.emp_id}) is scheduled AM",
                emp.emp_id,
            ))

    if active_rule:
        if not friday_pm_only and am_count < min_am:
            results.append(result(
                ValidationType.MIN_AM,
                Severity.VIOLATION,
                f"AM count ({am_count}) is below minimum ({min_am})",
            ))
        if pm_count < min_pm:
            results.append(result(
                ValidationType.MIN_PM,
                Severity.VIOLATION,
                f"PM count ({pm_count}) is below minimum ({min_pm})",
            ))

    if not friday_pm_only and am_count < pm_count:
        results.append(result(
            ValidationType.AM_LT_PM,
            Severity.WARNING,
            f"AM ({am_count}) < PM ({pm_count})",
        ))

    return results


def format_validation_summary(results: list[ValidationResult]) -> str:
    """Human-readable summary for tooltips"""
    return "; ".join(r.message for r in results)


# Validation cache: {(date, sorted boutique ids): (results, expiry_timestamp)}
# Advisory data only; never consulted for authorization
_validation_cache: dict[tuple[date, tuple[str, ...]], tuple[list[ValidationResult], float]] = {}


def clear_coverage_validation_cache() -> None:
    """Drop cached results; called whenever overrides, leaves, teams or rules change"""
    _validation_cache.clear()


def _cache_key(day: date, boutique_ids: list[str]) -> tuple[date, tuple[str, ...]]:
    return day, tuple(sorted(boutique_ids))


def _prune_expired(now: float) -> None:
    for key in [key for key, (_, expires_at) in _validation_cache.items() if expires_at <= now]:
        del _validation_cache[key]


class CoverageService:
    """
    Service class for coverage rules and validation
    """

    @staticmethod
    async def get_rule(db: AsyncSession, day_of_week: int, boutique_ids: list[str]) -> Optional[CoverageRule]:
        """
        Rule for a day of week: the boutique's own rule when the scope is a
        single boutique and one exists, else the global rule
        """
        if len(boutique_ids) == 1:
            result = await db.execute(
                select(CoverageRule).where(
                    CoverageRule.boutique_id == boutique_ids[0],
                    CoverageRule.day_of_week == day_of_week,
                )
            )
            rule = result.scalars().first()
            if rule is not None:
                return rule
        result = await db.execute(
            select(CoverageRule).where(
                CoverageRule.boutique_id.is_(None),
                CoverageRule.day_of_week == day_of_week,
            )
        )
        return result.scalars().first()

    @staticmethod
    async def validate_coverage(
        db: AsyncSession,
        day: date,
        boutique_ids: list[str],
        settings: Settings,
        roster: Optional[RosterForDate] = None,
    ) -> list[ValidationResult]:
        """
        Validate coverage for a date across the scope's boutiques

        Args:
            db: Database session
            day: Date to validate
            boutique_ids: Resolved scope
            settings: Ramadan window and cache TTL
            roster: Pre-built roster (week views build rosters in one batch)

        Returns:
            List of ValidationResult (empty when coverage is fine)
        """
        ttl = settings.COVERAGE_CACHE_TTL_SECONDS
        key = _cache_key(day, boutique_ids)
        now = time.monotonic()
        cached = _validation_cache.get(key)
        if cached is not None:
            if now < cached[1]:
                return cached[0]
            del _validation_cache[key]

        if roster is None:
            roster = await RosterService.roster_for_date(db, day, boutique_ids, settings)
        rule = await CoverageService.get_rule(db, day.weekday(), boutique_ids)
        results = evaluate_coverage(day, roster, RuleSnapshot.from_rule(rule), is_ramadan(day, settings))

        if ttl > 0:
            _prune_expired(now)
            _validation_cache[key] = (results, now + ttl)
        return results

    @staticmethod
    async def list_rules(db: AsyncSession, boutique_id: Optional[str] = None) -> list[CoverageRule]:
        query = select(CoverageRule)
        if boutique_id is None:
            query = query.where(CoverageRule.boutique_id.is_(None))
        else:
            query = query.where(CoverageRule.boutique_id == boutique_id)
        result = await db.execute(query.order_by(CoverageRule.day_of_week))
        return list(result.scalars().all())

    @staticmethod
    async def upsert_rule(
        db: AsyncSession,
        actor: CurrentUser,
        day_of_week: int,
        min_am: int,
        min_pm: int,
        enabled: bool = True,
        boutique_id: Optional[str] = None,
    ) -> CoverageRule:
        """
        Create or update the rule for (boutique, day of week)

        Raises:
            ForbiddenError: Caller is not an admin
            ValidationError: Out-of-range values
        """
        if not can_edit_coverage_rules(actor.role):
            raise ForbiddenError()
        if not 0 <= day_of_week <= 6:
            raise ValidationError("day_of_week must be 0..6", field="day_of_week")
        if min_am < 0:
            raise ValidationError("min_am must be >= 0", field="min_am")
        if min_pm < 0:
            raise ValidationError("min_pm must be >= 0", field="min_pm")

        query = select(CoverageRule).where(CoverageRule.day_of_week == day_of_week)
        if boutique_id is None:
            query = query.where(CoverageRule.boutique_id.is_(None))
        else:
            query = query.where(CoverageRule.boutique_id == boutique_id)
        rule = (await db.execute(query)).scalars().first()

        before = None
        if rule is None:
            rule = CoverageRule(boutique_id=boutique_id, day_of_week=day_of_week)
            db.add(rule)
        else:
            before = {"min_am": rule.min_am, "min_pm": rule.min_pm, "enabled": rule.enabled}
        rule.min_am = min_am
        rule.min_pm = min_pm
        rule.enabled = enabled
        await db.flush()

        await AuditService.log(
            db,
            actor.user_id,
            "COVERAGE_RULE_UPSERT",
            module="schedule",
            entity_type="coverage_rule",
            entity_id=str(rule.id),
            boutique_id=boutique_id,
            before=before,
            after={"day_of_week": day_of_week, "min_am": min_am, "min_pm": min_pm, "enabled": enabled},
        )
        clear_coverage_validation_cache()
        return rule
