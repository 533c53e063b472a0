"""
Schedule models
Shift overrides, coverage rules, and day/week lock records
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


class ShiftType(str, Enum):
    """
    Override shift values. COVER_* variants mean the employee covers a shift
    at the override's (host) boutique while staying home-assigned elsewhere.
    """

    MORNING = "MORNING"
    EVENING = "EVENING"
    NONE = "NONE"
    COVER_RASHID_AM = "COVER_RASHID_AM"
    COVER_RASHID_PM = "COVER_RASHID_PM"


shift_type_enum = SAEnum(ShiftType, name="shift_type_enum", native_enum=False)


class LockScope(str, Enum):
    DAY = "DAY"
    WEEK = "WEEK"


lock_scope_enum = SAEnum(LockScope, name="lock_scope_enum", native_enum=False)


class WeekStatus(str, Enum):
    DRAFT = "DRAFT"
    APPROVED = "APPROVED"


week_status_enum = SAEnum(WeekStatus, name="week_status_enum", native_enum=False)


class ShiftOverride(Base):
    """
    Per-date exception layered over the default team pattern.
    At most one row per (boutique_id, emp_id, date).
    """
    __tablename__ = "shift_overrides"
    __table_args__ = (
        UniqueConstraint("boutique_id", "emp_id", "date", name="uq_shift_override_boutique_emp_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    boutique_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("boutiques.id"), nullable=False, index=True
    )
    emp_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("employees.emp_id"), nullable=False, index=True
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    override_shift: Mapped[ShiftType] = mapped_column(shift_type_enum, nullable=False)
    source_boutique_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_by_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    def __repr__(self) -> str:
        return f"<ShiftOverride(emp_id={self.emp_id}, date={self.date}, shift={self.override_shift})>"


class CoverageRule(Base):
    """
    Minimum AM/PM headcount for one day of week.
    boutique_id NULL is the global rule; a boutique rule takes precedence.

    day_of_week uses Python weekday numbering (Monday=0 .. Sunday=6).
    """
    __tablename__ = "coverage_rules"
    __table_args__ = (
        UniqueConstraint("boutique_id", "day_of_week", name="uq_coverage_rule_boutique_dow"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    boutique_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("boutiques.id"), nullable=True, index=True
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    min_am: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    min_pm: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class ScheduleLock(Base):
    """
    Day or week lock. scope_value is the date (DAY) or the Saturday the week
    starts on (WEEK), formatted YYYY-MM-DD. Revoked locks stay for history.
    """
    __tablename__ = "schedule_locks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    boutique_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("boutiques.id"), nullable=False, index=True
    )
    scope_type: Mapped[LockScope] = mapped_column(lock_scope_enum, nullable=False)
    scope_value: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    locked_by_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    locked_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    revoked_by_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    revoked_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class ScheduleWeekStatus(Base):
    """Approval status of a boutique's week (a week must be APPROVED before locking)"""
    __tablename__ = "schedule_week_statuses"
    __table_args__ = (
        UniqueConstraint("boutique_id", "week_start", name="uq_week_status_boutique_week"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    boutique_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("boutiques.id"), nullable=False, index=True
    )
    week_start: Mapped[dt.date] = mapped_column(Date, nullable=False)
    status: Mapped[WeekStatus] = mapped_column(week_status_enum, default=WeekStatus.DRAFT, nullable=False)
    approved_by_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    approved_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
