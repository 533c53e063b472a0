"""
Employee, task and inventory Pydantic schemas
"""
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from retailops.models.employee import SalesTargetRole, Team


class EmployeeResponse(BaseModel):
    emp_id: str
    name: str
    boutique_id: str
    team: Team
    position: Optional[str] = None
    sales_target_role: Optional[SalesTargetRole] = None
    weekly_off_day: Optional[int] = None
    active: bool

    class Config:
        from_attributes = True


class TeamChangeRequest(BaseModel):
    team: Team
    effective_from: date = Field(..., description="First date the new team applies")


class TeamAssignmentResponse(BaseModel):
    emp_id: str
    team: Team
    effective_from: date

    class Config:
        from_attributes = True


class DeactivationResponse(BaseModel):
    emp_id: str
    task_plan_slots_reassigned: int
    overrides_deleted: int
    zone_assignments_deactivated: int
    rotation_members_deleted: int
    waiting_queue_deleted: int

    class Config:
        from_attributes = True


class TaskAssignmentResponse(BaseModel):
    task_id: int
    task_name: str
    assigned_emp_id: Optional[str] = None
    assigned_name: Optional[str] = None
    reason: str
    reason_notes: list[str] = Field(default_factory=list)


class ReminderResponse(BaseModel):
    sent: int


class ZoneResponse(BaseModel):
    id: int
    boutique_id: str
    code: str
    name: Optional[str] = None
    active: bool

    class Config:
        from_attributes = True


class ZoneAssignRequest(BaseModel):
    emp_id: str = Field(..., min_length=1)


class ZoneAssignmentResponse(BaseModel):
    id: int
    zone_id: int
    emp_id: str
    active: bool
    assigned_by_user_id: Optional[str] = None
    assigned_at: Optional[datetime] = None

    class Config:
        from_attributes = True
