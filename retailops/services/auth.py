"""
Access token verification
Bearer tokens are JWTs issued by the identity provider; signatures are
checked against its JWKS document, which is cached for an hour.
Reference: https://docs.authlib.org/en/latest/jose/jwt.html
"""
import logging
import time
from typing import Optional

import httpx
from authlib.jose import JsonWebKey, jwt
from authlib.jose.errors import (
    BadSignatureError,
    DecodeError,
    ExpiredTokenError,
    InvalidClaimError,
    JoseError,
)
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.api.v1.schemas.auth import CurrentUser, TokenClaims
from retailops.core.config import Settings
from retailops.models.user import User

logger = logging.getLogger(__name__)

JWKS_CACHE_SECONDS = 3600


class AuthService:
    def __init__(self, settings: Settings):
        self.jwks_url = settings.AUTH_JWKS_URL
        self.issuer = settings.AUTH_ISSUER
        self.audience = settings.AUTH_AUDIENCE
        # Cache JWKS to avoid repeated fetches (cache for 1 hour)
        self._jwks_cache: Optional[dict] = None
        self._jwks_cache_expiry: Optional[float] = None

    async def _get_jwks(self) -> dict:
        current_time = time.time()
        if self._jwks_cache and self._jwks_cache_expiry and current_time <= self._jwks_cache_expiry:
            return self._jwks_cache
        if not self.jwks_url:
            raise ValueError("Token verification is not configured")
        async with httpx.AsyncClient() as client:
            response = await client.get(self.jwks_url, timeout=10.0)
            response.raise_for_status()
            self._jwks_cache = response.json()
            self._jwks_cache_expiry = current_time + JWKS_CACHE_SECONDS
        logger.debug(f"JWKS fetched and cached. Keys: {len(self._jwks_cache.get('keys', []))}")
        return self._jwks_cache

    def _claims_options(self) -> dict:
        options = {"exp": {"essential": True}, "iat": {"essential": True}, "sub": {"essential": True}}
        if self.issuer:
            options["iss"] = {"essential": True, "value": self.issuer}
        if self.audience:
            options["aud"] = {"essential": True, "value": self.audience}
        return options

    async def verify_token(self, access_token: str) -> TokenClaims:
        """
        Verify signature and claims of an access token

        Args:
            access_token: JWT from the Authorization header

        Returns:
            TokenClaims

        Raises:
            ValueError: If token is invalid, expired, or signature verification fails
        """
        jwk_set = JsonWebKey.import_key_set(await self._get_jwks())
        try:
            claims = jwt.decode(access_token, jwk_set, claims_options=self._claims_options())
            claims.validate()
        except ExpiredTokenError as e:
            raise ValueError("Token has expired") from e
        except (BadSignatureError, DecodeError) as e:
            raise ValueError("Invalid token signature") from e
        except InvalidClaimError as e:
            raise ValueError(f"Invalid token claim: {e}") from e
        except JoseError as e:
            raise ValueError(f"Invalid token: {e}") from e
        return TokenClaims(sub=str(claims["sub"]), exp=claims.get("exp"), iat=claims.get("iat"))

    @staticmethod
    async def load_current_user(db: AsyncSession, user_id: str) -> Optional[CurrentUser]:
        """Session identity from the users table; disabled users get None"""
        user = await db.get(User, user_id)
        if user is None or user.disabled:
            return None
        return CurrentUser(user_id=user.id, role=user.role, boutique_id=user.boutique_id, emp_id=user.emp_id)
