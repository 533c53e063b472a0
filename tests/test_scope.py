"""Tests for boutique scope resolution and employee scope assertions."""
import pytest
from conftest import b1_scope, make_user
from sqlalchemy import select

from retailops.core.exceptions import (
    EmployeeOutOfScopeError,
    ForbiddenError,
    NoBoutiqueAssignedError,
    UnauthorizedError,
)
from retailops.models import AuditLog, Role, UserBoutiqueMembership
from retailops.services.scope import ScopeIntent, ScopeService


async def actions(db) -> list[str]:
    result = await db.execute(select(AuditLog.action).order_by(AuditLog.id))
    return list(result.scalars().all())


async def test_no_identity_is_unauthorized(world) -> None:
    with pytest.raises(UnauthorizedError):
        await ScopeService.resolve_scope(world, None)


async def test_employee_is_pinned_to_home_boutique(world) -> None:
    user = make_user(Role.EMPLOYEE, user_id="u-E2", emp_id="E2")
    scope = await ScopeService.resolve_scope(world, user, "JED")
    assert scope.boutique_ids == ["B1"]
    assert scope.effective_boutique_id == "B1"
    assert scope.label == "Riyadh Park (RYD)"


async def test_employee_without_boutique(world) -> None:
    user = make_user(Role.EMPLOYEE, boutique_id=None)
    with pytest.raises(NoBoutiqueAssignedError) as exc:
        await ScopeService.resolve_scope(world, user)
    assert exc.value.code == "NO_BOUTIQUE"


async def test_manager_switches_by_code_through_membership(world) -> None:
    world.add(UserBoutiqueMembership(user_id="u-E1", boutique_id="B2", can_access=True))
    await world.flush()
    user = make_user(Role.MANAGER, user_id="u-E1", emp_id="E1")

    scope = await ScopeService.resolve_scope(world, user, "JED")
    assert scope.boutique_ids == ["B2"]


async def test_manager_cannot_reach_unlisted_boutique(world) -> None:
    user = make_user(Role.MANAGER, user_id="u-E1", emp_id="E1")
    with pytest.raises(ForbiddenError):
        await ScopeService.resolve_scope(world, user, "B2")
    with pytest.raises(ForbiddenError):
        await ScopeService.resolve_scope(world, user, "OLD")


async def test_manager_cannot_go_global(world) -> None:
    user = make_user(Role.MANAGER, user_id="u-E1")
    with pytest.raises(ForbiddenError):
        await ScopeService.resolve_scope(world, user, global_=True)


async def test_admin_global_scope_is_audited(world) -> None:
    user = make_user(Role.ADMIN, user_id="u-admin")
    scope = await ScopeService.resolve_scope(world, user, global_=True, module="targets")

    assert scope.is_global
    assert scope.effective_boutique_id is None
    assert scope.boutique_ids == ["B1", "B2"]
    assert await actions(world) == ["GLOBAL_SCOPE_GRANTED"]


async def test_super_admin_write_needs_manage_membership(world) -> None:
    world.add(UserBoutiqueMembership(user_id="u-root", boutique_id="B2", can_access=True, can_manage=False))
    await world.flush()
    user = make_user(Role.SUPER_ADMIN, user_id="u-root")

    read = await ScopeService.resolve_scope(world, user, "B2")
    assert read.boutique_ids == ["B2"]
    assert await actions(world) == ["BOUTIQUE_CONTEXT_VIEW"]

    with pytest.raises(ForbiddenError):
        await ScopeService.resolve_scope(world, user, "B2", intent=ScopeIntent.WRITE)


async def test_out_of_scope_and_unknown_employees_look_the_same(world) -> None:
    actor = make_user(Role.MANAGER, user_id="u-E1")
    with pytest.raises(EmployeeOutOfScopeError) as exc:
        await ScopeService.assert_employees_in_scope(world, b1_scope(), ["E1", "E9", "NOPE"], actor, "sales")

    error = exc.value
    assert error.invalid_emp_ids == ["E9", "NOPE"]
    assert error.status_code == 403
    assert error.to_response() == {"error": "Forbidden", "code": "CROSS_BOUTIQUE_BLOCKED"}

    row = (await world.execute(select(AuditLog))).scalars().one()
    assert row.action == "CROSS_BOUTIQUE_BLOCKED"
    assert row.module == "sales"
    assert row.after_json == {"invalidEmpIds": ["E9", "NOPE"], "boutiqueIds": ["B1"]}


async def test_in_scope_employees_are_returned(world) -> None:
    employees = await ScopeService.assert_employees_in_scope(world, b1_scope(), ["E1", "E3", "E1"])
    assert sorted(employees) == ["E1", "E3"]
