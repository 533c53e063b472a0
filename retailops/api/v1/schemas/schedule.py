"""
Schedule Pydantic schemas
Request and response models for schedule, lock and coverage endpoints
Reference: https://fastapi.tiangolo.com/tutorial/body/
"""
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from retailops.models.employee import Team
from retailops.models.schedule import LockScope, ShiftType, WeekStatus
from retailops.services.coverage import Severity, ValidationType


class OverrideRequest(BaseModel):
    """
    Schema for creating or updating a shift override
    override_shift is case-insensitive (MORNING, EVENING, NONE, COVER_RASHID_AM, COVER_RASHID_PM)
    """
    emp_id: str = Field(..., min_length=1, description="Employee ID")
    date: date
    override_shift: str = Field(..., description="Shift to apply")
    reason: Optional[str] = Field(None, max_length=500)


class OverrideResponse(BaseModel):
    id: int
    boutique_id: str
    emp_id: str
    date: date
    override_shift: ShiftType
    source_boutique_id: Optional[str] = None
    reason: Optional[str] = None
    is_active: bool

    class Config:
        from_attributes = True


class GridChange(BaseModel):
    emp_id: str
    date: date
    shift: str


class GridSaveRequest(BaseModel):
    """Batch of week-grid edits applied in one transaction"""
    changes: list[GridChange] = Field(default_factory=list)
    reason: Optional[str] = Field(None, max_length=500)


class GridSaveResponse(BaseModel):
    applied: int
    total: int
    skipped: list[dict[str, str]] = Field(default_factory=list)

    class Config:
        from_attributes = True


class RosterEmployeeResponse(BaseModel):
    emp_id: str
    name: str
    boutique_id: str
    team: Optional[Team] = None
    is_guest: bool = False
    host_boutique_id: Optional[str] = None

    class Config:
        from_attributes = True


class RosterResponse(BaseModel):
    date: date
    am: list[RosterEmployeeResponse]
    pm: list[RosterEmployeeResponse]
    off: list[RosterEmployeeResponse]
    leave: list[RosterEmployeeResponse]
    away: list[RosterEmployeeResponse]
    am_count: int
    pm_count: int

    class Config:
        from_attributes = True


class ValidationResultResponse(BaseModel):
    type: ValidationType
    severity: Severity
    message: str
    am_count: int
    pm_count: int
    min_am: int
    min_pm: int
    emp_id: Optional[str] = None

    class Config:
        from_attributes = True


class SuggestionImpactResponse(BaseModel):
    am_before: int
    pm_before: int
    am_after: int
    pm_after: int

    class Config:
        from_attributes = True


class CoverageSuggestionResponse(BaseModel):
    date: date
    from_shift: ShiftType
    to_shift: ShiftType
    emp_id: str
    employee_name: str
    reason: str
    addresses: ValidationType
    impact: SuggestionImpactResponse

    class Config:
        from_attributes = True


class SuggestionResultResponse(BaseModel):
    suggestion: Optional[CoverageSuggestionResponse] = None
    explanation: Optional[str] = None

    class Config:
        from_attributes = True


class DayScheduleResponse(BaseModel):
    date: date
    roster: RosterResponse
    validations: list[ValidationResultResponse]
    summary: str
    suggestion: SuggestionResultResponse

    class Config:
        from_attributes = True


class WeekScheduleResponse(BaseModel):
    week_start: date
    days: list[DayScheduleResponse]
    locks: Optional[dict[str, Any]] = None

    class Config:
        from_attributes = True


class LockRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class WeekLockRequest(LockRequest):
    allow_draft: bool = Field(False, description="Lock a week that is not yet approved")


class ScheduleLockResponse(BaseModel):
    id: int
    boutique_id: str
    scope_type: LockScope
    scope_value: str
    locked_by_user_id: str
    locked_at: datetime
    reason: Optional[str] = None
    is_active: bool
    revoked_by_user_id: Optional[str] = None
    revoked_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class WeekStatusResponse(BaseModel):
    boutique_id: str
    week_start: date
    status: WeekStatus
    approved_by_user_id: Optional[str] = None
    approved_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CoverageRuleRequest(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="Python weekday: Monday=0 ... Sunday=6")
    min_am: int = Field(0, ge=0)
    min_pm: int = Field(0, ge=0)
    enabled: bool = True
    boutique_id: Optional[str] = Field(None, description="Omit for the all-boutiques default")


class CoverageRuleResponse(BaseModel):
    id: int
    boutique_id: Optional[str] = None
    day_of_week: int
    min_am: int
    min_pm: int
    enabled: bool

    class Config:
        from_attributes = True
