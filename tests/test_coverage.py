"""Tests for coverage validation and the suggested move."""
from datetime import date

import pytest
from conftest import EVEN_SUNDAY, FRIDAY, RAMADAN_FRIDAY

from retailops.models.schedule import CoverageRule, ShiftType
from retailops.services import coverage
from retailops.services.coverage import (
    CoverageService,
    RuleSnapshot,
    Severity,
    ValidationType,
    evaluate_coverage,
)
from retailops.services.coverage_suggestion import CoverageSuggestionService, suggest_move
from retailops.services.roster import RosterEmployee, RosterForDate
from retailops.services.schedule import ScheduleService


def emp(emp_id: str, name: str, guest: bool = False) -> RosterEmployee:
    return RosterEmployee(emp_id, name, "B2" if guest else "B1", is_guest=guest, host_boutique_id="B1" if guest else None)


def roster(day: date, am: list, pm: list) -> RosterForDate:
    return RosterForDate(date=day, am=am, pm=pm)


def types(results) -> list[ValidationType]:
    return [r.type for r in results]


def test_friday_am_outside_ramadan_is_violation() -> None:
    day_roster = roster(FRIDAY, [emp("E1", "Aisha")], [emp("E2", "Badr"), emp("E3", "Salma")])
    results = evaluate_coverage(FRIDAY, day_roster, RuleSnapshot(2, 2), ramadan=False)

    assert types(results) == [ValidationType.FRIDAY_AM_NOT_ALLOWED]
    assert results[0].severity == Severity.VIOLATION
    assert results[0].emp_id == "E1"


def test_friday_in_ramadan_uses_normal_rules() -> None:
    day_roster = roster(RAMADAN_FRIDAY, [emp("E1", "Aisha")], [emp("E2", "Badr"), emp("E3", "Salma")])
    results = evaluate_coverage(RAMADAN_FRIDAY, day_roster, RuleSnapshot(2, 2), ramadan=True)

    assert types(results) == [ValidationType.MIN_AM, ValidationType.AM_LT_PM]
    assert results[1].severity == Severity.WARNING


def test_min_pm_violation() -> None:
    day_roster = roster(EVEN_SUNDAY, [emp("E1", "Aisha"), emp("E2", "Badr")], [emp("E3", "Salma")])
    results = evaluate_coverage(EVEN_SUNDAY, day_roster, RuleSnapshot(1, 2), ramadan=False)
    assert types(results) == [ValidationType.MIN_PM]
    assert "PM count (1) is below minimum (2)" in results[0].message


def test_disabled_rule_skips_minimums() -> None:
    day_roster = roster(EVEN_SUNDAY, [], [])
    assert evaluate_coverage(EVEN_SUNDAY, day_roster, RuleSnapshot(3, 3, enabled=False), ramadan=False) == []


def test_suggestion_prefers_fewest_overrides_then_name() -> None:
    day_roster = roster(
        EVEN_SUNDAY,
        [emp("E1", "Aisha")],
        [emp("E2", "Badr"), emp("E4", "Carla"), emp("E5", "Dana")],
    )
    results = evaluate_coverage(EVEN_SUNDAY, day_roster, RuleSnapshot(2, 2), ramadan=False)
    outcome = suggest_move(EVEN_SUNDAY, day_roster, results, {"E2": 2})

    suggestion = outcome.suggestion
    assert suggestion.addresses == ValidationType.MIN_AM
    assert suggestion.emp_id == "E4"
    assert suggestion.from_shift == ShiftType.EVENING
    assert suggestion.to_shift == ShiftType.MORNING
    assert (suggestion.impact.am_after, suggestion.impact.pm_after) == (2, 2)


def test_friday_suggestion_moves_am_to_pm() -> None:
    day_roster = roster(FRIDAY, [emp("E2", "Badr"), emp("E1", "Aisha")], [emp("E3", "Salma")])
    results = evaluate_coverage(FRIDAY, day_roster, None, ramadan=False)
    suggestion = suggest_move(FRIDAY, day_roster, results).suggestion

    assert suggestion.addresses == ValidationType.FRIDAY_AM_NOT_ALLOWED
    assert suggestion.emp_id == "E1"
    assert suggestion.to_shift == ShiftType.EVENING


def test_guests_are_never_moved() -> None:
    day_roster = roster(FRIDAY, [emp("E9", "Omar", guest=True)], [])
    results = evaluate_coverage(FRIDAY, day_roster, None, ramadan=False)
    outcome = suggest_move(FRIDAY, day_roster, results)

    assert outcome.suggestion is None
    assert "0 available to move" in outcome.explanation


def test_unsatisfiable_min_pm_explains_shortfall() -> None:
    day_roster = roster(EVEN_SUNDAY, [emp("E1", "Aisha")], [])
    results = evaluate_coverage(EVEN_SUNDAY, day_roster, RuleSnapshot(1, 1), ramadan=False)
    outcome = suggest_move(EVEN_SUNDAY, day_roster, results)

    assert outcome.suggestion is None
    assert outcome.explanation == "need 1 more PM, 0 available to move"


def test_no_problems_no_suggestion() -> None:
    outcome = suggest_move(EVEN_SUNDAY, roster(EVEN_SUNDAY, [], []), [])
    assert outcome.suggestion is None
    assert outcome.explanation is None


async def test_boutique_rule_overrides_global_rule(world, settings) -> None:
    db = world
    db.add_all([
        CoverageRule(boutique_id=None, day_of_week=EVEN_SUNDAY.weekday(), min_am=1, min_pm=1),
        CoverageRule(boutique_id="B1", day_of_week=EVEN_SUNDAY.weekday(), min_am=1, min_pm=3),
    ])
    await db.flush()

    results = await CoverageService.validate_coverage(db, EVEN_SUNDAY, ["B1"], settings)

    # Team A (Aisha, Badr) works mornings this week, team B (Salma) evenings
    assert types(results) == [ValidationType.MIN_PM]
    assert results[0].min_pm == 3


async def test_suggestion_service_builds_inputs(world, settings) -> None:
    db = world
    db.add(CoverageRule(boutique_id="B1", day_of_week=EVEN_SUNDAY.weekday(), min_am=1, min_pm=2))
    await db.flush()

    outcome = await CoverageSuggestionService.get_coverage_suggestion(db, EVEN_SUNDAY, ["B1"], settings)

    assert outcome.suggestion.addresses == ValidationType.MIN_PM
    assert outcome.suggestion.emp_id == "E1"


@pytest.fixture
def cached_settings(settings):
    return settings.model_copy(update={"COVERAGE_CACHE_TTL_SECONDS": 300})


async def test_zero_ttl_caches_nothing(world, settings) -> None:
    for offset in range(5):
        await CoverageService.validate_coverage(world, date(2026, 1, 10 + offset), ["B1"], settings)
    assert coverage._validation_cache == {}


async def test_expired_entries_are_dropped(world, cached_settings) -> None:
    stale_key = (date(2026, 1, 1), ("B1",))
    coverage._validation_cache[stale_key] = ([], 0.0)

    await CoverageService.validate_coverage(world, EVEN_SUNDAY, ["B1"], cached_settings)

    assert list(coverage._validation_cache) == [(EVEN_SUNDAY, ("B1",))]


async def test_cached_result_replaced_after_rule_upsert(world, admin, cached_settings) -> None:
    db = world
    rule = CoverageRule(boutique_id=None, day_of_week=EVEN_SUNDAY.weekday(), min_am=1, min_pm=3)
    db.add(rule)
    await db.flush()
    assert types(await CoverageService.validate_coverage(db, EVEN_SUNDAY, ["B1"], cached_settings)) == [
        ValidationType.MIN_PM
    ]

    # A direct write bypasses invalidation, so the cached answer is still served
    rule.min_pm = 1
    await db.flush()
    assert types(await CoverageService.validate_coverage(db, EVEN_SUNDAY, ["B1"], cached_settings)) == [
        ValidationType.MIN_PM
    ]

    await CoverageService.upsert_rule(db, admin, EVEN_SUNDAY.weekday(), 1, 1)
    assert await CoverageService.validate_coverage(db, EVEN_SUNDAY, ["B1"], cached_settings) == []


async def test_cached_result_replaced_after_override_change(world, manager, scope, cached_settings) -> None:
    db = world
    db.add(CoverageRule(boutique_id=None, day_of_week=EVEN_SUNDAY.weekday(), min_am=1, min_pm=2))
    await db.flush()
    before = await CoverageService.validate_coverage(db, EVEN_SUNDAY, ["B1"], cached_settings)
    assert types(before) == [ValidationType.MIN_PM]

    await ScheduleService.apply_override_change(
        db, manager, scope, "E2", EVEN_SUNDAY, "EVENING", "cover evening", cached_settings
    )

    after = await CoverageService.validate_coverage(db, EVEN_SUNDAY, ["B1"], cached_settings)
    assert ValidationType.MIN_PM not in types(after)
    assert after[0].pm_count == 2
