"""
Task database models
Recurring duties, the rules deciding which dates they run, and the
primary/backup assignee plan
Reference: https://docs.sqlalchemy.org/en/20/orm/declarative_styles.html
"""
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from retailops.core.database import Base

if TYPE_CHECKING:
    from retailops.models.employee import Employee


class TaskScheduleType(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


task_schedule_type_enum = SAEnum(TaskScheduleType, name="task_schedule_type_enum", native_enum=False)


class Task(Base):
    """
    Task model representing a recurring boutique duty

    Attributes:
        id: Primary key
        boutique_id: Owning boutique
        name: Task title
        active: Inactive tasks never run
        schedules: Rules deciding run dates (any matching rule runs the task)
        plan: Primary/backup assignees
    """
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    boutique_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("boutiques.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    schedules: Mapped[list["TaskSchedule"]] = relationship(
        "TaskSchedule", back_populates="task", cascade="all, delete-orphan", lazy="selectin"
    )
    plan: Mapped[Optional["TaskPlan"]] = relationship(
        "TaskPlan", back_populates="task", uselist=False, cascade="all, delete-orphan", lazy="selectin"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation of Task"""
        return f"<Task(id={self.id}, name='{self.name}', active={self.active})>"


class TaskSchedule(Base):
    """
    When a task runs

    weekly_days holds Python weekdays (Monday=0 .. Sunday=6) for WEEKLY rules;
    MONTHLY rules use monthly_day or is_last_day.
    """
    __tablename__ = "task_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    task_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[TaskScheduleType] = mapped_column(task_schedule_type_enum, nullable=False)
    weekly_days: Mapped[Optional[list[int]]] = mapped_column(JSON, nullable=True)
    monthly_day: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_last_day: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    task: Mapped["Task"] = relationship("Task", back_populates="schedules")


class TaskPlan(Base):
    """Primary and backup assignees for a task"""
    __tablename__ = "task_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    task_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tasks.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    primary_emp_id: Mapped[str] = mapped_column(String(64), ForeignKey("employees.emp_id"), nullable=False)
    backup1_emp_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("employees.emp_id"), nullable=True
    )
    backup2_emp_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("employees.emp_id"), nullable=True
    )

    task: Mapped["Task"] = relationship("Task", back_populates="plan")
    primary: Mapped["Employee"] = relationship("Employee", foreign_keys=[primary_emp_id], lazy="selectin")
    backup1: Mapped[Optional["Employee"]] = relationship(
        "Employee", foreign_keys=[backup1_emp_id], lazy="selectin"
    )
    backup2: Mapped[Optional["Employee"]] = relationship(
        "Employee", foreign_keys=[backup2_emp_id], lazy="selectin"
    )
