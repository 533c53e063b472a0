"""
Inventory zone models
Zones, zone owners, daily-count rotation members and the waiting queue
Reference: https://docs.sqlalchemy.org/en/20/orm/declarative_styles.html
"""
import datetime as dt
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from retailops.core.database import Base


class InventoryZone(Base):
    __tablename__ = "inventory_zones"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    boutique_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("boutiques.id"), nullable=False, index=True
    )
    code: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class InventoryZoneAssignment(Base):
    """Employee responsible for a zone. Deactivation flips active instead of deleting."""
    __tablename__ = "inventory_zone_assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    zone_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("inventory_zones.id", ondelete="CASCADE"), nullable=False, index=True
    )
    emp_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("employees.emp_id"), nullable=False, index=True
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    assigned_by_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    assigned_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class InventoryRotationMember(Base):
    """Ordered membership in a boutique's daily inventory rotation"""
    __tablename__ = "inventory_rotation_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    boutique_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("boutiques.id"), nullable=False, index=True
    )
    emp_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("employees.emp_id"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class InventoryDailyWaitingQueue(Base):
    """Employees skipped on a date who are owed the next daily count"""
    __tablename__ = "inventory_daily_waiting_queue"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    boutique_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("boutiques.id"), nullable=False, index=True
    )
    emp_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("employees.emp_id"), nullable=False, index=True
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
