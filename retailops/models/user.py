from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from retailops.core.database import Base


class Role(str, Enum):
    """Closed set of user roles."""

    EMPLOYEE = "EMPLOYEE"
    ASSISTANT_MANAGER = "ASSISTANT_MANAGER"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


role_enum = SAEnum(Role, name="role_enum", native_enum=False)


class User(Base):
    """
    Authentication identity bound to an employee

    Attributes:
        id: Primary key (subject claim of the access token)
        email: Login email
        role: Role driving permissions and scope resolution
        boutique_id: Home boutique; the tenancy anchor, changed only by admins
        emp_id: Linked employee (1:1)
        disabled: Disabled users cannot authenticate and are not target-eligible
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    role: Mapped[Role] = mapped_column(role_enum, default=Role.EMPLOYEE, nullable=False)
    boutique_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("boutiques.id"), nullable=True, index=True
    )
    emp_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("employees.emp_id"), unique=True, nullable=True
    )
    disabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation of User"""
        return f"<User(id={self.id}, role={self.role})>"
