"""
Sales models
Daily ledger (summary + per-employee lines) and the SalesEntry facts that
dashboards read. Ledger amounts are whole SAR.
Reference: https://docs.sqlalchemy.org/en/20/orm/basic_relationships.html#one-to-many
"""
import datetime as dt
from enum import Enum
from typing import Optional

from sqlalchemy import Date, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from retailops.core.database import Base


class SalesSource(str, Enum):
    LEDGER = "LEDGER"
    IMPORT = "IMPORT"
    MANUAL = "MANUAL"
    HISTORICAL = "HISTORICAL"


# Sources counted by metrics; HISTORICAL rows are reference data only
COUNTED_SALES_SOURCES = (SalesSource.LEDGER, SalesSource.IMPORT, SalesSource.MANUAL)

sales_source_enum = SAEnum(SalesSource, name="sales_source_enum", native_enum=False)


class SummaryStatus(str, Enum):
    DRAFT = "DRAFT"
    LOCKED = "LOCKED"


summary_status_enum = SAEnum(SummaryStatus, name="summary_status_enum", native_enum=False)


class SalesEntry(Base):
    """Per-user daily sales fact (amount in SAR)"""
    __tablename__ = "sales_entries"
    __table_args__ = (
        UniqueConstraint("boutique_id", "date_key", "user_id", name="uq_sales_entry_boutique_day_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    boutique_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("boutiques.id"), nullable=False, index=True
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    date_key: Mapped[str] = mapped_column(String(10), nullable=False)
    month: Mapped[str] = mapped_column(String(7), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[SalesSource] = mapped_column(sales_source_enum, nullable=False)
    created_by_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)


class BoutiqueSalesSummary(Base):
    """Daily boutique total; lockable only when its lines add up exactly"""
    __tablename__ = "boutique_sales_summaries"
    __table_args__ = (
        UniqueConstraint("boutique_id", "date", name="uq_sales_summary_boutique_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    boutique_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("boutiques.id"), nullable=False, index=True
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    total_sar: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[SummaryStatus] = mapped_column(
        summary_status_enum, default=SummaryStatus.DRAFT, nullable=False
    )
    locked_by_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    locked_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    lines: Mapped[list["BoutiqueSalesLine"]] = relationship(
        "BoutiqueSalesLine",
        back_populates="summary",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class BoutiqueSalesLine(Base):
    """One employee's share of a daily summary"""
    __tablename__ = "boutique_sales_lines"
    __table_args__ = (
        UniqueConstraint("summary_id", "employee_id", name="uq_sales_line_summary_employee"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    summary_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("boutique_sales_summaries.id", ondelete="CASCADE"), nullable=False, index=True
    )
    employee_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount_sar: Mapped[int] = mapped_column(Integer, nullable=False)

    summary: Mapped["BoutiqueSalesSummary"] = relationship("BoutiqueSalesSummary", back_populates="lines")
