"""HTTP-level tests: routing, dependency wiring and error mapping."""
import httpx
import pytest
from conftest import EVEN_SUNDAY, FRIDAY, add_leave, make_user
from sqlalchemy import select

from retailops.core import database
from retailops.core.dependencies import get_app_notifier, get_app_settings, get_current_user
from retailops.main import app
from retailops.models import AuditLog, LeaveRequest, LeaveStatus, Role
from retailops.services.notifications import drain_deliveries


@pytest.fixture
def identity() -> dict:
    """Signed-in caller; tests swap the user to act as someone else"""
    return {"user": make_user(Role.MANAGER, user_id="u-E1", emp_id="E1")}


@pytest.fixture
async def client(world, session_maker, settings, identity, notifier, monkeypatch):
    """AsyncClient against the app on the test database, with identity and settings overridden"""
    monkeypatch.setattr(database, "async_session_maker", session_maker)
    app.dependency_overrides[get_current_user] = lambda: identity["user"]
    app.dependency_overrides[get_app_settings] = lambda: settings
    app.dependency_overrides[get_app_notifier] = lambda: notifier
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


async def test_health(client) -> None:
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_day_schedule(client) -> None:
    response = await client.get(f"/api/v1/schedule/day/{EVEN_SUNDAY.isoformat()}")

    assert response.status_code == 200
    body = response.json()
    assert [e["emp_id"] for e in body["roster"]["am"]] == ["E1", "E2"]
    assert body["roster"]["pm_count"] == 1


async def test_friday_morning_override_is_refused(client) -> None:
    response = await client.put(
        "/api/v1/schedule/overrides",
        json={"emp_id": "E2", "date": FRIDAY.isoformat(), "override_shift": "MORNING"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "FRIDAY_PM_ONLY"


async def test_override_is_committed(client) -> None:
    response = await client.put(
        "/api/v1/schedule/overrides",
        json={"emp_id": "E3", "date": EVEN_SUNDAY.isoformat(), "override_shift": "morning", "reason": "cover"},
    )
    assert response.status_code == 200
    assert response.json()["override_shift"] == "MORNING"

    day = (await client.get(f"/api/v1/schedule/day/{EVEN_SUNDAY.isoformat()}")).json()
    assert [e["emp_id"] for e in day["roster"]["am"]] == ["E1", "E2", "E3"]


async def test_cross_boutique_edit_is_plain_forbidden(client) -> None:
    response = await client.put(
        "/api/v1/schedule/overrides",
        json={"emp_id": "E9", "date": EVEN_SUNDAY.isoformat(), "override_shift": "EVENING"},
    )
    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden", "code": "CROSS_BOUTIQUE_BLOCKED"}


async def test_employee_cannot_lock_days(client, identity) -> None:
    identity["user"] = make_user(Role.EMPLOYEE, user_id="u-E2", emp_id="E2")
    response = await client.post(f"/api/v1/schedule/locks/day/{EVEN_SUNDAY.isoformat()}", json={})
    assert response.status_code == 403


async def test_global_scope_for_admin_is_audited(client, identity, session_maker) -> None:
    identity["user"] = make_user(Role.ADMIN, user_id="u-admin")
    response = await client.get(f"/api/v1/schedule/day/{EVEN_SUNDAY.isoformat()}", params={"global": "true"})
    assert response.status_code == 200

    async with session_maker() as session:
        actions = (await session.execute(select(AuditLog.action))).scalars().all()
    assert "GLOBAL_SCOPE_GRANTED" in actions


async def test_unknown_boutique_is_forbidden(client) -> None:
    response = await client.get(f"/api/v1/schedule/day/{EVEN_SUNDAY.isoformat()}", params={"boutique_id": "JED"})
    assert response.status_code == 403


async def test_escalation_notice_is_sent_after_commit(client, world, session_maker, notifier) -> None:
    leave = await add_leave(world, "E2", EVEN_SUNDAY, EVEN_SUNDAY, status=LeaveStatus.SUBMITTED)
    await world.commit()

    response = await client.post(f"/api/v1/leaves/{leave.id}/escalate", json={"reason": "peak week"})
    assert response.status_code == 200
    await drain_deliveries()

    async with session_maker() as session:
        stored = await session.get(LeaveRequest, leave.id)
    assert stored.escalated_by_user_id == "u-E1"
    [event] = notifier.events
    assert event["event"] == "LEAVE_ESCALATED"
    assert event["payload"]["leave_id"] == leave.id


async def test_failed_request_sends_nothing(client, world, notifier) -> None:
    leave = await add_leave(world, "E2", EVEN_SUNDAY, EVEN_SUNDAY, status=LeaveStatus.APPROVED_MANAGER)
    await world.commit()

    response = await client.post(f"/api/v1/leaves/{leave.id}/escalate", json={})
    assert response.status_code == 409
    await drain_deliveries()
    assert notifier.events == []


async def test_role_weights_hidden_from_employees(client, identity) -> None:
    assert (await client.get("/api/v1/targets/role-weights")).status_code == 200

    identity["user"] = make_user(Role.EMPLOYEE, user_id="u-E2", emp_id="E2")
    response = await client.get("/api/v1/targets/role-weights")
    assert response.status_code == 403
