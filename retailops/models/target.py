"""
Sales target models
Boutique monthly targets, generated employee targets, and role weights.
Amounts are whole SAR; readers convert to halalas.
Reference: https://docs.sqlalchemy.org/en/20/orm/declarative_styles.html
"""
import datetime as dt
from typing import Optional

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from retailops.core.database import Base
from retailops.models.employee import SalesTargetRole, sales_target_role_enum

DISTRIBUTION_METHOD = "ROLE_WEIGHTED_LEAVE_ADJUSTED_V1"


class BoutiqueMonthlyTarget(Base):
    """One target per (boutique, month); generated employee targets sum to it exactly"""
    __tablename__ = "boutique_monthly_targets"
    __table_args__ = (
        UniqueConstraint("boutique_id", "month", name="uq_boutique_target_month"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    boutique_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("boutiques.id"), nullable=False, index=True
    )
    month: Mapped[str] = mapped_column(String(7), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_by_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)


class EmployeeMonthlyTarget(Base):
    """
    Generated target for one user and month

    The *_at_generation fields and presence inputs are snapshots taken when
    the row was generated. They are never recomputed; RESET deletes rows.
    """
    __tablename__ = "employee_monthly_targets"
    __table_args__ = (
        UniqueConstraint("user_id", "month", name="uq_employee_target_user_month"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    boutique_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("boutiques.id"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    emp_id: Mapped[str] = mapped_column(String(64), nullable=False)
    month: Mapped[str] = mapped_column(String(7), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)

    role_at_generation: Mapped[SalesTargetRole] = mapped_column(sales_target_role_enum, nullable=False)
    weight_at_generation: Mapped[float] = mapped_column(Float, nullable=False)
    effective_weight_at_generation: Mapped[float] = mapped_column(Float, nullable=False)
    scheduled_days_in_month: Mapped[int] = mapped_column(Integer, nullable=False)
    leave_days_in_month: Mapped[int] = mapped_column(Integer, nullable=False)
    presence_factor: Mapped[float] = mapped_column(Float, nullable=False)
    distribution_method: Mapped[str] = mapped_column(String(64), default=DISTRIBUTION_METHOD, nullable=False)
    generated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    generated_by_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)


class SalesTargetRoleWeight(Base):
    """Configurable allocation weight per sales-target role"""
    __tablename__ = "sales_target_role_weights"

    role: Mapped[SalesTargetRole] = mapped_column(sales_target_role_enum, primary_key=True)
    weight: Mapped[float] = mapped_column(Float, nullable=False)
    updated_by_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
