"""
Database models
"""
from app.models.team import Team
from app.models.user import User, Role
from app.models.audit_log import AuditLog
from app.models.holiday import CompanyHoliday, HolidayRecurrence
from app.models.leave import (
    LeaveRequest,
    LeaveApproval,
    SemiAnnualBalance,
    LeaveType,
    LeaveStatus,
    LeaveCategory,
    ApprovalTier,
    ApprovalAction,
    HalfYear,
)

__all__ = [
    "Team",
    "User",
    "Role",
    "AuditLog",
    "CompanyHoliday",
    "HolidayRecurrence",
    "LeaveRequest",
    "LeaveApproval",
    "SemiAnnualBalance",
    "LeaveType",
    "LeaveStatus",
    "LeaveCategory",
    "ApprovalTier",
    "ApprovalAction",
    "HalfYear",
]
