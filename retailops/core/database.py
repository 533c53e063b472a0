"""
Database connection and session management
Uses SQLAlchemy async engine (asyncpg in production)
Reference: https://docs.sqlalchemy.org/en/20/orm/extensions/asyncio.html
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from retailops.core.config import settings
from retailops.core.exceptions import EmployeeOutOfScopeError
from retailops.services.notifications import release_outbox

logger = logging.getLogger(__name__)


# Validate DATABASE_URL is set
if not settings.DATABASE_URL:
    raise ValueError(
        "DATABASE_URL environment variable is not set. "
        "Please set it in your .env file or the deployment environment."
    )


def _connect_args(database_url: str) -> dict:
    """asyncpg-specific connection arguments; other drivers get none."""
    if database_url.startswith("postgresql+asyncpg://"):
        # Reference: https://magicstack.github.io/asyncpg/current/api/index.html#connection
        return {
            "command_timeout": 60,
            "server_settings": {
                "application_name": "retailops",
            },
        }
    return {}


# Using NullPool - each request gets a fresh connection
# Reference: https://docs.sqlalchemy.org/en/20/core/pooling.html#switching-pool-implementations
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    poolclass=NullPool,
    connect_args=_connect_args(settings.DATABASE_URL),
)


# Reference: https://docs.sqlalchemy.org/en/20/orm/extensions/asyncio.html#session-basics
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,  # Keep objects accessible after commit
    autocommit=False,
    autoflush=False,
)


# Base class for all database models
# Reference: https://docs.sqlalchemy.org/en/20/orm/declarative_styles.html
class Base(DeclarativeBase):
    """Base class for SQLAlchemy declarative models"""
    pass


async def get_db() -> AsyncSession:
    """
    Dependency function that provides a database session

    One request is one transaction:
    - Commits on success
    - Rolls back on error
    - Always closes the session

    Services flush but never commit, so multi-row writes (target generation,
    deactivation cascade, ledger lock) land together or not at all.
    Notifications queued on the session's outbox go out only after the
    commit, and delivery is not awaited.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
            release_outbox(session, committed=True)
        except EmployeeOutOfScopeError as e:
            await session.rollback()
            release_outbox(session, committed=False)
            await record_blocked_access(session, e)
            raise
        except Exception:
            await session.rollback()
            release_outbox(session, committed=False)
            raise
        finally:
            await session.close()


async def record_blocked_access(session: AsyncSession, error: EmployeeOutOfScopeError) -> None:
    """Persist the CROSS_BOUTIQUE_BLOCKED audit row after the request rolled back"""
    from retailops.models.audit import AuditLog

    try:
        session.add(AuditLog(**error.audit_fields()))
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.warning(f"Could not record blocked access: {e}")
