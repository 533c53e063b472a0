"""Tests for inventory zone ownership."""
import pytest
from conftest import make_user
from sqlalchemy import select

from retailops.core.exceptions import EmployeeOutOfScopeError, ForbiddenError, NotFoundError
from retailops.models import Employee, InventoryZone, InventoryZoneAssignment, Role
from retailops.services.inventory import InventoryService


@pytest.fixture
async def zones(world):
    db = world
    front = InventoryZone(boutique_id="B1", code="Z1", name="Front")
    vault = InventoryZone(boutique_id="B1", code="Z2", name="Vault")
    jeddah = InventoryZone(boutique_id="B2", code="Z1", name="Jeddah front")
    retired = InventoryZone(boutique_id="B1", code="Z9", name="Old", active=False)
    db.add_all([front, vault, jeddah, retired])
    await db.flush()
    return front, vault, jeddah


async def test_list_zones_skips_inactive(world, zones) -> None:
    assert [z.code for z in await InventoryService.list_zones(world, "B1")] == ["Z1", "Z2"]


async def test_reassignment_retires_previous_owner(world, manager, scope, zones) -> None:
    db = world
    front, vault, _ = zones
    first = await InventoryService.assign_zone(db, manager, scope, front.id, "E2")
    same = await InventoryService.assign_zone(db, manager, scope, front.id, "E2")
    assert same.id == first.id

    await InventoryService.assign_zone(db, manager, scope, front.id, "E3")
    await InventoryService.assign_zone(db, manager, scope, vault.id, "E1")

    active = await InventoryService.list_zone_assignments(db, "B1")
    assert sorted((a.zone_id, a.emp_id) for a in active) == [(front.id, "E3"), (vault.id, "E1")]
    history = (
        await db.execute(select(InventoryZoneAssignment.emp_id, InventoryZoneAssignment.active)
                         .where(InventoryZoneAssignment.zone_id == front.id)
                         .order_by(InventoryZoneAssignment.id))
    ).all()
    assert [tuple(row) for row in history] == [("E2", False), ("E3", True)]


async def test_zone_outside_scope_is_forbidden(world, manager, scope, zones) -> None:
    _, _, jeddah = zones
    with pytest.raises(ForbiddenError):
        await InventoryService.assign_zone(world, manager, scope, jeddah.id, "E2")


async def test_employee_outside_scope_is_blocked(world, manager, scope, zones) -> None:
    front, _, _ = zones
    with pytest.raises(EmployeeOutOfScopeError):
        await InventoryService.assign_zone(world, manager, scope, front.id, "E9")


async def test_inactive_employee_cannot_own_zone(world, manager, scope, zones) -> None:
    front, _, _ = zones
    (await world.get(Employee, "E2")).active = False
    await world.flush()
    with pytest.raises(ForbiddenError):
        await InventoryService.assign_zone(world, manager, scope, front.id, "E2")


async def test_unknown_zone_and_employee_role(world, manager, scope, zones) -> None:
    with pytest.raises(NotFoundError):
        await InventoryService.assign_zone(world, manager, scope, 9999, "E2")
    front, _, _ = zones
    with pytest.raises(ForbiddenError):
        await InventoryService.assign_zone(world, make_user(Role.EMPLOYEE, emp_id="E2"), scope, front.id, "E2")
