"""
Target and metrics Pydantic schemas
Amounts in target responses are integer halalas unless the field says SAR
"""
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from retailops.models.employee import SalesTargetRole


class BoutiqueTargetRequest(BaseModel):
    month: str = Field(..., description="YYYY-MM (Arabic digits accepted)")
    amount: int = Field(..., ge=0, description="Boutique target for the month")


class BoutiqueTargetResponse(BaseModel):
    id: int
    boutique_id: str
    month: str
    amount: int
    updated_by_user_id: Optional[str] = None

    class Config:
        from_attributes = True


class GenerateTargetsRequest(BaseModel):
    month: str = Field(..., description="YYYY-MM")
    regenerate: bool = Field(False, description="Replace existing employee targets")


class EmployeeTargetResponse(BaseModel):
    id: int
    boutique_id: str
    user_id: str
    emp_id: str
    month: str
    amount: int
    role_at_generation: SalesTargetRole
    weight_at_generation: float
    effective_weight_at_generation: float
    scheduled_days_in_month: int
    leave_days_in_month: int
    presence_factor: float
    distribution_method: str
    generated_at: datetime
    generated_by_user_id: Optional[str] = None

    class Config:
        from_attributes = True


class ResetTargetsResponse(BaseModel):
    deleted: int


class RoleWeightRequest(BaseModel):
    role: SalesTargetRole
    weight: float = Field(..., ge=0)


class RoleWeightResponse(BaseModel):
    role: SalesTargetRole
    weight: float


class TargetMetricsResponse(BaseModel):
    month_key: str
    month_target: int
    boutique_target: Optional[int] = None
    mtd_sales: int
    today_sales: int
    week_sales: int
    daily_target: int
    week_target: int
    remaining: int
    pct_daily: int
    pct_week: int
    pct_month: int
    today: date
    today_in_selected_month: bool
    week_range_label: str
    days_in_month: int
    leave_days_in_month: Optional[int] = None
    presence_factor: Optional[float] = None
    scheduled_days_in_month: Optional[int] = None

    class Config:
        from_attributes = True


class SalesMetricsResponse(BaseModel):
    net_sales_total: int
    entries_count: int
    by_date_key: dict[str, int] = Field(default_factory=dict)

    class Config:
        from_attributes = True


class DashboardSalesMetricsResponse(BaseModel):
    current_month_target: int
    current_month_actual: int
    completion_pct: int
    remaining_gap: int
    current_month_actual_display: str
    by_user_id: dict[str, int] = Field(default_factory=dict)
