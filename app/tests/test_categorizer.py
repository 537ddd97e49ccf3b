"""
Tests for leave categorization and approval tiers
"""
import pytest

from app.core.leave_policy import LeavePolicy
from app.models.leave import ApprovalTier, LeaveCategory, LeaveType
from app.services.leave_categorizer import LeaveCategorizer


@pytest.mark.parametrize(
    "leave_type,days,category,tier",
    [
        (LeaveType.SICK, 1, LeaveCategory.MEDICAL, ApprovalTier.ADMIN),
        (LeaveType.SICK, 5, LeaveCategory.MEDICAL, ApprovalTier.ADMIN),
        (LeaveType.MATERNITY, 5, LeaveCategory.FAMILY, ApprovalTier.ADMIN),
        (LeaveType.VACATION, 3, LeaveCategory.REGULAR, ApprovalTier.ADMIN),
        (LeaveType.VACATION, 4, LeaveCategory.EXTENDED, ApprovalTier.MANAGEMENT),
        (LeaveType.OTHER, 1, LeaveCategory.REGULAR, ApprovalTier.ADMIN),
        (LeaveType.OTHER, 5, LeaveCategory.EXTENDED, ApprovalTier.MANAGEMENT),
    ],
)
def test_category_and_tier(policy, leave_type, days, category, tier):
    decision = LeaveCategorizer(policy).categorize(leave_type, days)
    assert decision.category == category
    assert decision.approval_tier == tier
    assert decision.requires_management_approval == (tier == ApprovalTier.MANAGEMENT)


def test_every_category_requires_admin_approval(policy):
    categorizer = LeaveCategorizer(policy)
    for leave_type in LeaveType:
        for days in range(1, 6):
            assert categorizer.categorize(leave_type, days).requires_admin_approval


def test_extended_threshold_comes_from_policy():
    categorizer = LeaveCategorizer(LeavePolicy(extended_threshold_days=1))
    assert categorizer.categorize(LeaveType.VACATION, 2).category == LeaveCategory.EXTENDED


def test_accepts_raw_values(policy):
    assert LeaveCategorizer(policy).categorize("sick", 1).category == LeaveCategory.MEDICAL
