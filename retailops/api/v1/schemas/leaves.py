"""
Leave request Pydantic schemas
"""
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from retailops.models.leave import LeaveStatus


class LeaveCreate(BaseModel):
    emp_id: str = Field(..., min_length=1)
    start_date: date
    end_date: date
    leave_type: str = Field("ANNUAL", max_length=32)
    notes: Optional[str] = Field(None, max_length=1000)
    submit: bool = Field(False, description="Submit immediately instead of saving a draft")


class LeaveDecision(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class LeaveResponse(BaseModel):
    id: int
    user_id: Optional[str] = None
    emp_id: str
    boutique_id: str
    start_date: date
    end_date: date
    leave_type: str
    notes: Optional[str] = None
    status: LeaveStatus
    submitted_at: Optional[datetime] = None
    escalated_at: Optional[datetime] = None
    decided_by_user_id: Optional[str] = None
    decided_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    class Config:
        from_attributes = True


class LeaveEvaluationResponse(BaseModel):
    requires_admin: bool
    can_manager_approve: bool
    reasons: list[str] = Field(default_factory=list)

    class Config:
        from_attributes = True
