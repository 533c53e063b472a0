"""
Pydantic schemas for API request/response models
"""

from retailops.api.v1.schemas.auth import CurrentUser, TokenClaims

__all__ = ["CurrentUser", "TokenClaims"]
