"""
Identity schemas
The authenticated caller as seen by the service layer
"""
from typing import Optional

from pydantic import BaseModel, Field

from retailops.models.user import Role


class CurrentUser(BaseModel):
    """
    Authenticated caller resolved from the access token and the users table

    boutique_id is the session-bound home boutique; it is never taken from
    request input.
    """
    user_id: str = Field(..., description="User ID (token subject)")
    role: Role = Field(..., description="Role driving permissions and scope")
    boutique_id: Optional[str] = Field(None, description="Home boutique")
    emp_id: Optional[str] = Field(None, description="Linked employee id")


class TokenClaims(BaseModel):
    """Subset of verified JWT claims the API relies on"""
    sub: str = Field(..., description="Subject (user id)")
    exp: Optional[int] = Field(None, description="Expiry (epoch seconds)")
    iat: Optional[int] = Field(None, description="Issued at (epoch seconds)")
