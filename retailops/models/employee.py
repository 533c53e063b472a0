"""
Employee models
Schedulable people and their effective-dated team assignments
Reference: https://docs.sqlalchemy.org/en/20/orm/declarative_styles.html
"""
import datetime as dt
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from retailops.core.database import Base

UNASSIGNED_EMP_ID = "UNASSIGNED"


class Team(str, Enum):
    """Rotation team. Teams alternate morning/evening by week parity."""

    A = "A"
    B = "B"


team_enum = SAEnum(Team, name="team_enum", native_enum=False)


class SalesTargetRole(str, Enum):
    """Role used to weight sales-target allocation."""

    MANAGER = "MANAGER"
    ASSISTANT_MANAGER = "ASSISTANT_MANAGER"
    HIGH_JEWELLERY_EXPERT = "HIGH_JEWELLERY_EXPERT"
    SENIOR_SALES_ADVISOR = "SENIOR_SALES_ADVISOR"
    SALES_ADVISOR = "SALES_ADVISOR"


sales_target_role_enum = SAEnum(SalesTargetRole, name="sales_target_role_enum", native_enum=False)


class Employee(Base):
    """
    Schedulable employee

    Attributes:
        emp_id: Stable external id (primary key)
        name: Display name, used for deterministic roster ordering
        boutique_id: Home boutique (exactly one at a time)
        team: Fallback team when no effective-dated assignment applies
        position: Job title (BOUTIQUE_MANAGER, ASSISTANT_MANAGER, SENIOR_SALES, SALES)
        sales_target_role: Explicit target role, overrides the position mapping
        weekly_off_day: Python weekday (Monday=0 .. Sunday=6) or None
        active: Inactive employees are excluded from rosters
        is_system_only: Placeholder rows such as UNASSIGNED
    """
    __tablename__ = "employees"

    emp_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    boutique_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("boutiques.id"), nullable=False, index=True
    )
    team: Mapped[Team] = mapped_column(team_enum, default=Team.A, nullable=False)
    position: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    sales_target_role: Mapped[Optional[SalesTargetRole]] = mapped_column(
        sales_target_role_enum, nullable=True
    )
    weekly_off_day: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_system_only: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Employee(emp_id={self.emp_id}, boutique_id={self.boutique_id}, active={self.active})>"


class EmployeeTeamAssignment(Base):
    """
    Effective-dated team membership. The team on a date is the row with the
    latest effective_from <= that date.
    """
    __tablename__ = "employee_team_assignments"
    __table_args__ = (
        UniqueConstraint("emp_id", "effective_from", name="uq_team_assignment_emp_from"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    emp_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("employees.emp_id", ondelete="CASCADE"), nullable=False, index=True
    )
    team: Mapped[Team] = mapped_column(team_enum, nullable=False)
    effective_from: Mapped[dt.date] = mapped_column(Date, nullable=False)
    created_by_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
