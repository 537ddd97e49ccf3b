"""
Leave categorization and approval routing
"""
from dataclasses import dataclass

from app.core.leave_policy import LeavePolicy
from app.models.leave import ApprovalTier, LeaveCategory, LeaveType


@dataclass(frozen=True)
class CategoryDecision:
    category: LeaveCategory
    approval_tier: ApprovalTier
    # No leave type is ever auto-approved
    requires_admin_approval: bool = True

    @property
    def requires_management_approval(self) -> bool:
        return self.approval_tier == ApprovalTier.MANAGEMENT


class LeaveCategorizer:
    """Assigns category and approval tier. Pure; never touches the database."""

    def __init__(self, policy: LeavePolicy):
        self.policy = policy

    def categorize(self, leave_type: LeaveType, business_days: int) -> CategoryDecision:
        leave_type = LeaveType(leave_type)

        if leave_type == LeaveType.SICK:
            return CategoryDecision(LeaveCategory.MEDICAL, ApprovalTier.ADMIN)
        if leave_type == LeaveType.MATERNITY:
            return CategoryDecision(LeaveCategory.FAMILY, ApprovalTier.ADMIN)
        if leave_type in (LeaveType.VACATION, LeaveType.OTHER):
            if business_days > self.policy.extended_threshold_days:
                return CategoryDecision(LeaveCategory.EXTENDED, ApprovalTier.MANAGEMENT)
            return CategoryDecision(LeaveCategory.REGULAR, ApprovalTier.ADMIN)
        raise ValueError(f"Unhandled leave type: {leave_type}")
