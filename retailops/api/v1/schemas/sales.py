"""
Sales ledger Pydantic schemas
Amounts are whole SAR. Raw values are validated by the service so that
"12.5", "" and booleans produce the same messages for every client.
"""
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from retailops.models.sales import SummaryStatus


class SummaryRequest(BaseModel):
    date: date
    total_sar: Any = Field(..., description="Whole SAR, integer or digit string")


class LineRequest(BaseModel):
    emp_id: str = Field(..., min_length=1)
    amount_sar: Any = Field(..., description="Whole SAR, integer or digit string")


class SalesLineResponse(BaseModel):
    id: int
    employee_id: str
    amount_sar: int

    class Config:
        from_attributes = True


class SalesSummaryResponse(BaseModel):
    id: int
    boutique_id: str
    date: date
    total_sar: int
    status: SummaryStatus
    locked_by_user_id: Optional[str] = None
    locked_at: Optional[datetime] = None
    lines: list[SalesLineResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ReconcileResponse(BaseModel):
    summary_id: int
    summary_total: int
    lines_total: int
    diff: int
    can_lock: bool
    status: SummaryStatus

    class Config:
        from_attributes = True
