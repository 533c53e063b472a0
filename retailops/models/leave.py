"""
Leave request model
Reference: https://docs.sqlalchemy.org/en/20/orm/declarative_styles.html
"""
import datetime as dt
from enum import Enum
from typing import Optional

from sqlalchemy import Date, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from retailops.core.database import Base


class LeaveStatus(str, Enum):
    """
    DRAFT -> SUBMITTED -> APPROVED_MANAGER | APPROVED_ADMIN | REJECTED
    DRAFT | SUBMITTED -> CANCELLED (by the requester)
    """

    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED_MANAGER = "APPROVED_MANAGER"
    APPROVED_ADMIN = "APPROVED_ADMIN"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


APPROVED_LEAVE_STATUSES = (LeaveStatus.APPROVED_MANAGER, LeaveStatus.APPROVED_ADMIN)

leave_status_enum = SAEnum(LeaveStatus, name="leave_status_enum", native_enum=False)


class LeaveRequest(Base):
    """
    Leave request for an employee; start_date and end_date are inclusive
    Riyadh calendar days.
    """
    __tablename__ = "leave_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("users.id"), nullable=True, index=True
    )
    emp_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("employees.emp_id"), nullable=False, index=True
    )
    boutique_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("boutiques.id"), nullable=False, index=True
    )
    start_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    end_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    leave_type: Mapped[str] = mapped_column(String(32), default="ANNUAL", nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    status: Mapped[LeaveStatus] = mapped_column(
        leave_status_enum, default=LeaveStatus.DRAFT, nullable=False, index=True
    )
    created_by_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    submitted_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    escalated_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    escalated_by_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    decided_by_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    decided_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    @property
    def is_approved(self) -> bool:
        return self.status in APPROVED_LEAVE_STATUSES

    def __repr__(self) -> str:
        return f"<LeaveRequest(id={self.id}, emp_id={self.emp_id}, status={self.status})>"
