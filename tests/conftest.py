"""
Shared fixtures: an in-memory SQLite database per test and a small seeded
two-boutique world.

Dates used across the suite (2026, first Saturday is Jan 3):
- 2026-01-17 .. 2026-01-23 is an even rotation week (team A mornings)
- 2026-01-23 is a Friday outside Ramadan
- 2026-02-20 is a Friday inside Ramadan (2026-02-18 .. 2026-03-19)
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import retailops.models  # noqa: E402,F401
from retailops.api.v1.schemas.auth import CurrentUser  # noqa: E402
from retailops.core.config import Settings  # noqa: E402
from retailops.core.database import Base  # noqa: E402
from retailops.models import (  # noqa: E402
    Boutique,
    Employee,
    LeaveRequest,
    LeaveStatus,
    Role,
    Team,
    User,
    UserBoutiqueMembership,
)
from retailops.services.coverage import clear_coverage_validation_cache  # noqa: E402
from retailops.services.notifications import NotificationOutbox, Notifier  # noqa: E402
from retailops.services.scope import ResolvedScope  # noqa: E402

EVEN_SUNDAY = date(2026, 1, 18)
WEEK_START = date(2026, 1, 17)
FRIDAY = date(2026, 1, 23)
RAMADAN_FRIDAY = date(2026, 2, 20)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        DATABASE_URL="sqlite+aiosqlite://",
        RAMADAN_START="2026-02-18",
        RAMADAN_END="2026-03-19",
        COVERAGE_CACHE_TTL_SECONDS=0,
    )


@pytest.fixture(autouse=True)
def _clear_caches():
    clear_coverage_validation_cache()
    yield
    clear_coverage_validation_cache()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def world(db):
    """
    Boutique B1 (RYD) with Aisha, Badr (team A) and Salma (team B);
    boutique B2 (JED) with Omar; inactive boutique B3.
    Every employee has a user with the same id suffix.
    """
    db.add_all([
        Boutique(id="B1", code="RYD", name="Riyadh Park"),
        Boutique(id="B2", code="JED", name="Jeddah Mall"),
        Boutique(id="B3", code="OLD", name="Closed Store", is_active=False),
    ])
    db.add_all([
        Employee(emp_id="E1", name="Aisha", boutique_id="B1", team=Team.A, position="BOUTIQUE_MANAGER"),
        Employee(emp_id="E2", name="Badr", boutique_id="B1", team=Team.A, position="SALES"),
        Employee(emp_id="E3", name="Salma", boutique_id="B1", team=Team.B, position="SENIOR_SALES"),
        Employee(emp_id="E9", name="Omar", boutique_id="B2", team=Team.B, position="SALES"),
    ])
    await db.flush()
    db.add_all([
        User(id="u-E1", email="aisha@example.com", role=Role.MANAGER, boutique_id="B1", emp_id="E1"),
        User(id="u-E2", email="badr@example.com", role=Role.EMPLOYEE, boutique_id="B1", emp_id="E2"),
        User(id="u-E3", email="salma@example.com", role=Role.EMPLOYEE, boutique_id="B1", emp_id="E3"),
        User(id="u-E9", email="omar@example.com", role=Role.EMPLOYEE, boutique_id="B2", emp_id="E9"),
        User(id="u-admin", email="admin@example.com", role=Role.ADMIN, boutique_id="B1"),
    ])
    await db.flush()
    db.add(UserBoutiqueMembership(user_id="u-E1", boutique_id="B1", can_access=True, can_manage=True))
    await db.commit()
    return db


def make_user(role: Role, user_id: str = "u-actor", boutique_id: str = "B1", emp_id=None) -> CurrentUser:
    return CurrentUser(user_id=user_id, role=role, boutique_id=boutique_id, emp_id=emp_id)


def b1_scope() -> ResolvedScope:
    return ResolvedScope(["B1"], "B1", False, "Riyadh Park (RYD)")


@pytest.fixture
def manager() -> CurrentUser:
    return make_user(Role.MANAGER, user_id="u-E1", emp_id="E1")


@pytest.fixture
def admin() -> CurrentUser:
    return make_user(Role.ADMIN, user_id="u-admin")


@pytest.fixture
def scope() -> ResolvedScope:
    return b1_scope()


async def add_leave(db, emp_id: str, start: date, end: date,
                    status: LeaveStatus = LeaveStatus.APPROVED_MANAGER, boutique_id: str = "B1") -> LeaveRequest:
    leave = LeaveRequest(
        user_id=f"u-{emp_id}",
        emp_id=emp_id,
        boutique_id=boutique_id,
        start_date=start,
        end_date=end,
        status=status,
    )
    db.add(leave)
    await db.flush()
    return leave


class RecordingNotifier(Notifier):
    """Keeps emitted events in memory instead of posting them"""

    def __init__(self):
        super().__init__(None)
        self.events = []

    async def emit(self, event, *, boutique_id=None, affected_user_ids=None, payload=None) -> bool:
        self.events.append({
            "event": event,
            "boutique_id": boutique_id,
            "affected_user_ids": affected_user_ids or [],
            "payload": payload or {},
        })
        return True


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def outbox() -> NotificationOutbox:
    return NotificationOutbox()
