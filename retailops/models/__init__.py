"""
Database models
All SQLAlchemy models should be defined here or imported here
"""

# Import Base for models to inherit from
from retailops.core.database import Base
from retailops.models.audit import AuditLog
from retailops.models.boutique import Boutique, UserBoutiqueMembership
from retailops.models.employee import (
    UNASSIGNED_EMP_ID,
    Employee,
    EmployeeTeamAssignment,
    SalesTargetRole,
    Team,
)
from retailops.models.inventory import (
    InventoryDailyWaitingQueue,
    InventoryRotationMember,
    InventoryZone,
    InventoryZoneAssignment,
)
from retailops.models.leave import APPROVED_LEAVE_STATUSES, LeaveRequest, LeaveStatus
from retailops.models.sales import (
    COUNTED_SALES_SOURCES,
    BoutiqueSalesLine,
    BoutiqueSalesSummary,
    SalesEntry,
    SalesSource,
    SummaryStatus,
)
from retailops.models.schedule import (
    CoverageRule,
    LockScope,
    ScheduleLock,
    ScheduleWeekStatus,
    ShiftOverride,
    ShiftType,
    WeekStatus,
)
from retailops.models.target import (
    BoutiqueMonthlyTarget,
    EmployeeMonthlyTarget,
    SalesTargetRoleWeight,
)
from retailops.models.task import Task, TaskPlan, TaskSchedule, TaskScheduleType
from retailops.models.user import Role, User

# Export all models for easy imports
__all__ = [
    "APPROVED_LEAVE_STATUSES",
    "AuditLog",
    "Base",
    "Boutique",
    "BoutiqueMonthlyTarget",
    "BoutiqueSalesLine",
    "BoutiqueSalesSummary",
    "COUNTED_SALES_SOURCES",
    "CoverageRule",
    "Employee",
    "EmployeeMonthlyTarget",
    "EmployeeTeamAssignment",
    "InventoryDailyWaitingQueue",
    "InventoryRotationMember",
    "InventoryZone",
    "InventoryZoneAssignment",
    "LeaveRequest",
    "LeaveStatus",
    "LockScope",
    "Role",
    "SalesEntry",
    "SalesSource",
    "SalesTargetRole",
    "SalesTargetRoleWeight",
    "ScheduleLock",
    "ScheduleWeekStatus",
    "ShiftOverride",
    "ShiftType",
    "SummaryStatus",
    "Task",
    "TaskPlan",
    "TaskSchedule",
    "TaskScheduleType",
    "Team",
    "UNASSIGNED_EMP_ID",
    "User",
    "UserBoutiqueMembership",
    "WeekStatus",
]
