"""
Boutique model and user membership join table.

A boutique is the tenancy boundary for operational data. Memberships grant
elevated users (MANAGER, ADMIN, SUPER_ADMIN) access to boutiques beyond their
home assignment.

Reference: https://docs.sqlalchemy.org/en/20/orm/basic_relationships.html
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from retailops.core.database import Base


class Boutique(Base):
    """
    Boutique (store) entity

    Attributes:
        id: Primary key (stable boutique identifier)
        code: Short human code, unique (used for context switching by code)
        name: Display name
        is_active: Inactive boutiques are invisible to scope resolution
        region_id: Optional region grouping
    """

    __tablename__ = "boutiques"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    region_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Boutique(id={self.id}, code='{self.code}')>"


class UserBoutiqueMembership(Base):
    """
    Grants a user access to a boutique

    can_access allows reads in that boutique's context; can_manage allows
    writes for SUPER_ADMIN context switching.
    """

    __tablename__ = "user_boutique_memberships"
    __table_args__ = (
        UniqueConstraint("user_id", "boutique_id", name="uq_membership_user_boutique"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    boutique_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("boutiques.id", ondelete="CASCADE"), nullable=False, index=True
    )
    can_access: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    can_manage: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
