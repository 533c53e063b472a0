"""
Authentication dependencies for protecting endpoints
Reference: https://fastapi.tiangolo.com/tutorial/dependencies/
"""
import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser
from retailops.core.config import Settings, get_settings
from retailops.core.database import get_db
from retailops.core.exceptions import ForbiddenError
from retailops.services.auth import AuthService
from retailops.services.notifications import NotificationOutbox, Notifier, get_notifier, session_outbox
from retailops.services.scope import ResolvedScope, ScopeIntent, ScopeService

logger = logging.getLogger(__name__)

# HTTPBearer automatically extracts Bearer token from Authorization header
# Reference: https://fastapi.tiangolo.com/reference/security/#fastapi.security.HTTPBearer
security = HTTPBearer()


@lru_cache()
def get_auth_service() -> AuthService:
    """
    Get a singleton AuthService instance.

    Keeps the JWKS cache at application level rather than request level.
    Reference: https://docs.python.org/3/library/functools.html#functools.lru_cache
    """
    return AuthService(get_settings())


def get_app_settings() -> Settings:
    return get_settings()


def get_app_notifier() -> Notifier:
    return get_notifier()


def get_outbox(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_app_notifier),
) -> NotificationOutbox:
    """
    Per-request notification outbox

    Bound to the request session: get_db dispatches it after commit and
    drops it on rollback.
    """
    return session_outbox(db, notifier)


def _unauthorized(description: str) -> HTTPException:
    # RFC6750 error response
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=description,
        headers={
            "WWW-Authenticate": f'Bearer realm="api", error="invalid_token", error_description="{description}"'
        },
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """
    Dependency to get the current authenticated user.

    Validates the JWT access token, then loads role, boutique and employee
    link from the users table. Boutique binding always comes from here,
    never from request input.

    Raises:
        HTTPException: 401 if token is invalid or the user is unknown or disabled
    """
    auth_service = get_auth_service()
    try:
        claims = await auth_service.verify_token(credentials.credentials)
    except ValueError as e:
        msg = str(e)
        description = "The access token expired" if "expired" in msg.lower() else (msg or "The access token is invalid")
        raise _unauthorized(description) from e
    except Exception as e:
        logger.error(f"Unexpected authentication error: {type(e).__name__}: {e}", exc_info=True)
        raise _unauthorized("Authentication failed") from e

    user = await AuthService.load_current_user(db, claims.sub)
    if user is None:
        logger.warning(f"Token subject {claims.sub} has no active user")
        raise _unauthorized("User not found or disabled")
    return user


def require_boutique(scope: ResolvedScope) -> str:
    """The single working boutique of a scope; global scopes cannot write"""
    if scope.effective_boutique_id is None:
        raise ForbiddenError()
    return scope.effective_boutique_id


def scope_dependency(module: str, intent: ScopeIntent = ScopeIntent.READ):
    """
    Build a dependency resolving the caller's boutique scope for a module

    Clients may name a boutique (?boutique_id=) or ask for all boutiques
    (?global=true); both are checked against the caller's role.
    """

    async def resolve(
        boutique_id: Optional[str] = Query(None, description="Requested boutique"),
        global_: bool = Query(False, alias="global", description="All boutiques (admins only, audited)"),
        current_user: CurrentUser = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> ResolvedScope:
        return await ScopeService.resolve_scope(
            db, current_user, boutique_id, global_=global_, intent=intent, module=module
        )

    return resolve
