"""
Leave schemas
"""
from datetime import date, date as date_type, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_serializer, field_validator
from pydantic import ConfigDict

from app.core.exceptions import LeaveRuleError
from app.core.leave_policy import LeavePolicy
from app.models.leave import (
    ApprovalTier,
    HalfYear,
    LeaveCategory,
    LeaveStatus,
    LeaveType,
    SemiAnnualBalance,
)
from app.services.allocation_service import SemiAnnualPeriod
from app.services.leave_validator import ValidationResult
from app.utils.datetime_utils import iso_utc


class LeaveDraftIn(BaseModel):
    """Schema for validating, submitting or drafting a leave request"""
    leave_type: LeaveType = Field(..., description="Type of leave")
    start_date: date = Field(..., description="First day of leave")
    end_date: date = Field(..., description="Last day of leave (inclusive)")
    reason: Optional[str] = Field(None, max_length=2000, description="Reason for leave")


class LeaveDraftUpdate(BaseModel):
    """Schema for editing a draft; omitted fields keep their value"""
    leave_type: Optional[LeaveType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = Field(None, max_length=2000)


class DecisionRequest(BaseModel):
    """Schema for approve/reject/cancel actions"""
    notes: Optional[str] = Field(None, max_length=2000, description="Decision notes")


class ViolationOut(BaseModel):
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_error(cls, error: LeaveRuleError) -> "ViolationOut":
        return cls(code=error.code.value, message=error.message, details=error.details)


class ValidationOut(BaseModel):
    """Admissibility verdict for a leave request"""
    admissible: bool
    violations: List[ViolationOut] = Field(default_factory=list)
    violation_codes: List[str] = Field(default_factory=list)
    category: Optional[LeaveCategory] = None
    approval_tier: Optional[ApprovalTier] = None
    requires_admin_approval: bool = True
    requires_management_approval: bool = False
    business_days: int = 0
    semi_annual_period: Optional[str] = None
    is_weekend_leave: bool = False
    conflict_dates: List[date] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: ValidationResult) -> "ValidationOut":
        return cls(
            admissible=result.admissible,
            violations=[ViolationOut.from_error(v) for v in result.violations],
            violation_codes=result.violation_codes,
            category=result.category,
            approval_tier=result.approval_tier,
            requires_management_approval=result.requires_management_approval,
            business_days=result.business_days,
            semi_annual_period=result.semi_annual_period,
            is_weekend_leave=result.is_weekend_leave,
            conflict_dates=result.conflict_dates,
        )


class LeaveOut(BaseModel):
    """Schema for leave output"""
    id: int
    user_id: int
    team_id: Optional[int] = None
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: Optional[str] = None
    status: LeaveStatus
    category: Optional[LeaveCategory] = None
    approval_tier: Optional[ApprovalTier] = None
    requires_management_approval: bool
    semi_annual_period: str
    business_days: int
    is_weekend_leave: bool
    admin_notes: Optional[str] = None
    reviewed_by_id: Optional[int] = Field(None, description="ID of the admin/management reviewer")
    reviewed_at: Optional[datetime] = None
    cancelled_by_id: Optional[int] = None
    cancelled_at: Optional[datetime] = None
    committed_vacation_days: int = 0
    committed_weekend_leaves: int = 0
    submitted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer(
        "reviewed_at", "cancelled_at", "submitted_at", "created_at", "updated_at",
        when_used="always",
    )
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_utc(dt)


class DraftUpdateOut(BaseModel):
    leave: LeaveOut
    validation: ValidationOut


class DecisionOut(BaseModel):
    status: LeaveStatus
    leave: LeaveOut
    conflict_dates: List[date] = Field(default_factory=list)


class BalanceOut(BaseModel):
    """Semi-annual usage with the remaining allowance under the current policy"""
    user_id: int
    year: int
    period: HalfYear
    period_label: str
    vacation_days_used: int
    vacation_days_remaining: int
    weekend_leaves_used: int
    weekend_leaves_remaining: int
    period_start: date
    period_end: date

    @classmethod
    def from_balance(cls, balance: SemiAnnualBalance, policy: LeavePolicy) -> "BalanceOut":
        period = SemiAnnualPeriod(balance.year, HalfYear(balance.period))
        return cls(
            user_id=balance.user_id,
            year=balance.year,
            period=period.half,
            period_label=period.label,
            vacation_days_used=balance.vacation_days_used,
            vacation_days_remaining=max(0, policy.vacation_days_per_period - balance.vacation_days_used),
            weekend_leaves_used=balance.weekend_leaves_used,
            weekend_leaves_remaining=max(0, policy.weekend_leaves_per_period - balance.weekend_leaves_used),
            period_start=period.start_date,
            period_end=period.end_date,
        )


class BalanceResetRequest(BaseModel):
    """Force-reset of one period's counters (one user, or everyone when user_id is omitted)"""
    period: str = Field(..., description='Semi-annual period label, e.g. "2025-H1"')
    user_id: Optional[int] = None

    @field_validator("period")
    @classmethod
    def validate_period(cls, v: str) -> str:
        return SemiAnnualPeriod.from_label(v).label


class BalanceResetOut(BaseModel):
    period: str
    user_id: Optional[int] = None
    rows_reset: int


class TeamCapacityDayOut(BaseModel):
    date: date_type
    on_leave: int
    team_size: int
    max_allowed: int
    ratio: Decimal
    at_capacity: bool

    @field_serializer("ratio")
    def _ser_ratio(self, v: Decimal) -> float:
        return float(v)


class TeamCapacityOut(BaseModel):
    team_id: int
    start_date: date
    end_date: date
    capacity_ratio: float
    days: List[TeamCapacityDayOut]


class AnalyticsTotals(BaseModel):
    total_requests: int
    approved_requests: int
    days_taken: int


class MonthlyAnalyticsOut(AnalyticsTotals):
    month: int


class LeaveTypeAnalyticsOut(AnalyticsTotals):
    leave_type: LeaveType


class TeamAnalyticsOut(AnalyticsTotals):
    team_id: int
    team_name: str
    team_members: int


class LeaveAnalyticsOut(BaseModel):
    """Yearly leave totals; days_taken counts business days of approved requests"""
    year: int
    by_month: List[MonthlyAnalyticsOut]
    by_leave_type: List[LeaveTypeAnalyticsOut]
    by_team: List[TeamAnalyticsOut]
