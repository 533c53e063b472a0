"""Tests for the leave workflow and its approval rules."""
from datetime import date, timedelta

import pytest
from conftest import EVEN_SUNDAY, WEEK_START, add_leave, make_user

from retailops.core.exceptions import EmployeeOutOfScopeError, ForbiddenError, StateConflictError, ValidationError
from retailops.models import CoverageRule, LeaveStatus, Role
from retailops.services.leaves import LeaveService
from retailops.services.roster import RosterService
from retailops.services.schedule_lock import ScheduleLockService

TODAY = date(2026, 1, 10)
BADR = make_user(Role.EMPLOYEE, user_id="u-E2", emp_id="E2")


async def submitted(db, scope, start=EVEN_SUNDAY, end=EVEN_SUNDAY + timedelta(days=2)):
    return await LeaveService.create_leave(db, BADR, scope, "E2", start, end, "annual", submit=True)


async def test_employee_creates_and_submits_own_leave(world, scope) -> None:
    draft = await LeaveService.create_leave(world, BADR, scope, "E2", EVEN_SUNDAY, EVEN_SUNDAY)
    assert draft.status == LeaveStatus.DRAFT
    assert draft.user_id == "u-E2"
    assert draft.leave_type == "ANNUAL"

    sent = await LeaveService.submit_leave(world, BADR, scope, draft.id)
    assert sent.status == LeaveStatus.SUBMITTED
    assert sent.submitted_at is not None

    with pytest.raises(StateConflictError):
        await LeaveService.submit_leave(world, BADR, scope, draft.id)


async def test_employee_cannot_request_for_someone_else(world, scope) -> None:
    with pytest.raises(ForbiddenError):
        await LeaveService.create_leave(world, BADR, scope, "E3", EVEN_SUNDAY, EVEN_SUNDAY)


async def test_inverted_range_is_rejected(world, manager, scope) -> None:
    with pytest.raises(ValidationError):
        await LeaveService.create_leave(world, manager, scope, "E2", EVEN_SUNDAY, EVEN_SUNDAY - timedelta(days=1))


async def test_manager_cannot_file_leave_for_other_boutique(world, manager, scope) -> None:
    with pytest.raises(EmployeeOutOfScopeError):
        await LeaveService.create_leave(world, manager, scope, "E9", EVEN_SUNDAY, EVEN_SUNDAY)


async def test_manager_approves_short_future_leave(world, manager, scope, settings) -> None:
    leave = await submitted(world, scope)

    approved = await LeaveService.approve_leave(world, manager, scope, leave.id, today=TODAY)
    assert approved.status == LeaveStatus.APPROVED_MANAGER
    assert approved.decided_by_user_id == "u-E1"

    roster = await RosterService.roster_for_date(world, EVEN_SUNDAY, ["B1"], settings)
    assert [e.emp_id for e in roster.leave] == ["E2"]

    with pytest.raises(StateConflictError) as exc:
        await LeaveService.reject_leave(world, manager, scope, leave.id, "too late")
    assert exc.value.code == "ALREADY_DECIDED"


async def test_long_leave_needs_admin(world, manager, admin, scope) -> None:
    leave = await submitted(world, scope, EVEN_SUNDAY, EVEN_SUNDAY + timedelta(days=7))

    evaluation = await LeaveService.evaluate_leave_approval(world, leave, TODAY)
    assert evaluation.requires_admin
    assert evaluation.reasons == ["Leave duration (8 days) exceeds 7 days"]

    with pytest.raises(ForbiddenError) as exc:
        await LeaveService.approve_leave(world, manager, scope, leave.id, today=TODAY)
    assert exc.value.code == "ADMIN_APPROVAL_REQUIRED"

    approved = await LeaveService.approve_leave(world, admin, scope, leave.id, today=TODAY)
    assert approved.status == LeaveStatus.APPROVED_ADMIN


async def test_each_admin_rule_triggers(world, manager, scope) -> None:
    db = world
    leave = await submitted(db, scope)

    assert not (await LeaveService.evaluate_leave_approval(db, leave, TODAY)).requires_admin
    past = await LeaveService.evaluate_leave_approval(db, leave, EVEN_SUNDAY + timedelta(days=1))
    assert past.reasons == ["Leave start date is in the past"]

    await ScheduleLockService.approve_week(db, manager, "B1", WEEK_START)
    week = await LeaveService.evaluate_leave_approval(db, leave, TODAY)
    assert week.reasons == ["Leave overlaps an approved schedule week (2026-01-17)"]
    await ScheduleLockService.unapprove_week(db, manager, "B1", WEEK_START)

    db.add(CoverageRule(boutique_id=None, day_of_week=0, min_am=1, min_pm=1))
    await db.flush()
    rules = await LeaveService.evaluate_leave_approval(db, leave, TODAY)
    assert rules.reasons == ["Coverage rules exist for this boutique; staffing check requires admin"]


async def test_frequent_leave_needs_admin(world, scope) -> None:
    db = world
    for offset in range(5):
        day = date(2025, 12, 1) + timedelta(days=offset * 3)
        await add_leave(db, "E2", day, day)
    leave = await submitted(db, scope)

    evaluation = await LeaveService.evaluate_leave_approval(db, leave, TODAY)
    assert evaluation.reasons == ["Employee has 5 leave(s) in the last 60 days"]


async def test_reject_records_reason(world, manager, scope) -> None:
    leave = await submitted(world, scope)
    rejected = await LeaveService.reject_leave(world, manager, scope, leave.id, "peak season")
    assert rejected.status == LeaveStatus.REJECTED
    assert rejected.rejection_reason == "peak season"


async def test_cancel_is_owner_only_and_open_only(world, manager, scope) -> None:
    leave = await submitted(world, scope)
    with pytest.raises(ForbiddenError):
        await LeaveService.cancel_leave(world, manager, scope, leave.id)

    cancelled = await LeaveService.cancel_leave(world, BADR, scope, leave.id)
    assert cancelled.status == LeaveStatus.CANCELLED
    with pytest.raises(StateConflictError):
        await LeaveService.cancel_leave(world, BADR, scope, leave.id)


async def test_employee_cannot_approve(world, scope) -> None:
    leave = await submitted(world, scope)
    with pytest.raises(ForbiddenError):
        await LeaveService.approve_leave(world, BADR, scope, leave.id, today=TODAY)


async def test_escalation_queues_notice_for_admins(world, manager, scope, outbox, notifier) -> None:
    leave = await submitted(world, scope, EVEN_SUNDAY, EVEN_SUNDAY + timedelta(days=9))

    evaluation = await LeaveService.escalate_leave(
        world, manager, scope, leave.id, outbox, reason="long trip", today=TODAY
    )

    assert evaluation.requires_admin
    assert leave.status == LeaveStatus.SUBMITTED
    assert leave.escalated_by_user_id == "u-E1"
    assert notifier.events == []

    assert await outbox.deliver(notifier) == 1
    assert outbox.pending == []
    [event] = notifier.events
    assert event["event"] == "LEAVE_ESCALATED"
    assert event["affected_user_ids"] == ["u-admin"]
    assert event["payload"]["leave_id"] == leave.id


async def test_listing_filters_by_status(world, manager, scope) -> None:
    first = await submitted(world, scope)
    await LeaveService.create_leave(world, BADR, scope, "E2", date(2026, 2, 1), date(2026, 2, 1))
    await LeaveService.approve_leave(world, manager, scope, first.id, today=TODAY)

    assert [lv.id for lv in await LeaveService.list_leaves(world, scope, LeaveStatus.APPROVED_MANAGER)] == [first.id]
    assert len(await LeaveService.list_leaves(world, scope)) == 2
