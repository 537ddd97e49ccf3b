"""
Tests for leave validation, submission and drafts
"""
from datetime import date

import pytest

from app.core.exceptions import InvalidTransitionError, LeaveValidationError
from app.models.holiday import CompanyHoliday
from app.models.leave import ApprovalTier, LeaveCategory, LeaveRequest, LeaveStatus, LeaveType
from app.models.user import Role
from app.services.leave_validator import (
    LeaveDraft,
    LeaveRequestValidator,
    ensure_transition,
)

SUN = date(2025, 1, 5)
MON = date(2025, 1, 6)
TUE = date(2025, 1, 7)
WED = date(2025, 1, 8)
THU = date(2025, 1, 9)
NEXT_SUN = date(2025, 1, 12)


def _draft(user, start, end, leave_type=LeaveType.VACATION):
    return LeaveDraft(user_id=user.id, leave_type=leave_type, start_date=start, end_date=end)


def test_three_day_vacation_is_admissible_regular_admin_tier(db, policy, employee):
    result = LeaveRequestValidator(db, policy).validate(_draft(employee, TUE, THU))

    assert result.admissible
    assert result.violations == []
    assert result.business_days == 3
    assert result.category == LeaveCategory.REGULAR
    assert result.approval_tier == ApprovalTier.ADMIN
    assert result.semi_annual_period == "2025-H1"


def test_vacation_over_period_balance_is_rejected(db, policy, employee, set_usage):
    set_usage(employee, "2025-H1", vacation_days_used=10)

    result = LeaveRequestValidator(db, policy).validate(_draft(employee, MON, WED))

    assert not result.admissible
    assert result.violation_codes == ["INSUFFICIENT_BALANCE"]


def test_sunday_to_thursday_vacation_with_one_weekend_leave_used(db, policy, employee, set_usage):
    set_usage(employee, "2025-H1", weekend_leaves_used=1)

    result = LeaveRequestValidator(db, policy).validate(_draft(employee, SUN, THU))

    assert result.admissible
    assert result.is_weekend_leave
    assert result.business_days == 5
    assert result.category == LeaveCategory.EXTENDED
    assert result.requires_management_approval


def test_weekend_limit_reached(db, policy, employee, set_usage):
    set_usage(employee, "2025-H1", weekend_leaves_used=2)

    result = LeaveRequestValidator(db, policy).validate(_draft(employee, WED, THU))

    assert result.violation_codes == ["WEEKEND_LIMIT_EXCEEDED"]


def test_weekend_limit_counts_a_thursday_holiday(db, policy, employee, set_usage):
    db.add(CompanyHoliday(date=THU, name="National Day"))
    db.commit()
    set_usage(employee, "2025-H1", weekend_leaves_used=2)

    result = LeaveRequestValidator(db, policy).validate(_draft(employee, WED, THU))

    assert result.business_days == 1
    assert result.is_weekend_leave
    assert not result.admissible
    assert result.violation_codes == ["WEEKEND_LIMIT_EXCEEDED"]


def test_weekend_limit_only_applies_to_vacation(db, policy, employee, set_usage):
    set_usage(employee, "2025-H1", weekend_leaves_used=2)

    result = LeaveRequestValidator(db, policy).validate(_draft(employee, THU, THU, LeaveType.SICK))

    assert result.admissible
    assert result.is_weekend_leave


def test_six_business_days_exceeds_maximum_regardless_of_balance(db, policy, employee):
    result = LeaveRequestValidator(db, policy).validate(_draft(employee, SUN, NEXT_SUN))

    assert result.business_days == 6
    assert "MAX_DURATION_EXCEEDED" in result.violation_codes


def test_fifth_member_on_leave_exceeds_team_capacity(db, policy, make_user, make_leave, team):
    members = [make_user(Role.EMPLOYEE, team) for _ in range(10)]
    for member in members[:4]:
        make_leave(member, TUE, TUE)

    result = LeaveRequestValidator(db, policy).validate(_draft(members[4], MON, TUE))

    assert result.violation_codes == ["TEAM_CAPACITY_EXCEEDED"]
    assert result.conflict_dates == [TUE]
    assert result.violations[0].conflict_dates == [TUE]


def test_one_day_sick_leave_is_medical_and_needs_admin(db, policy, employee):
    result = LeaveRequestValidator(db, policy).validate(_draft(employee, MON, MON, LeaveType.SICK))

    assert result.admissible
    assert result.category == LeaveCategory.MEDICAL
    assert result.approval_tier == ApprovalTier.ADMIN
    assert not result.requires_management_approval


def test_violations_are_collected_not_short_circuited(db, policy, make_user, make_leave, team, set_usage):
    members = [make_user(Role.EMPLOYEE, team) for _ in range(4)]
    make_leave(members[0], TUE, TUE)
    set_usage(members[1], "2025-H1", vacation_days_used=12, weekend_leaves_used=2)

    result = LeaveRequestValidator(db, policy).validate(_draft(members[1], SUN, NEXT_SUN))

    assert set(result.violation_codes) == {
        "MAX_DURATION_EXCEEDED",
        "INSUFFICIENT_BALANCE",
        "WEEKEND_LIMIT_EXCEEDED",
        "TEAM_CAPACITY_EXCEEDED",
    }


def test_reversed_range_stops_other_checks(db, policy, employee):
    result = LeaveRequestValidator(db, policy).validate(_draft(employee, THU, MON))

    assert result.violation_codes == ["INVALID_RANGE"]
    assert result.category is None


def test_range_without_working_days_is_invalid(db, policy, employee):
    friday, saturday = date(2025, 1, 10), date(2025, 1, 11)
    result = LeaveRequestValidator(db, policy).validate(_draft(employee, friday, saturday))

    assert result.violation_codes == ["INVALID_RANGE"]


def test_holidays_reduce_counted_days(db, policy, employee):
    db.add(CompanyHoliday(date=WED, name="Founders Day"))
    db.commit()

    result = LeaveRequestValidator(db, policy).validate(_draft(employee, MON, THU))

    assert result.business_days == 3
    assert result.category == LeaveCategory.REGULAR


def test_overlapping_request_is_rejected(db, policy, employee, make_leave):
    make_leave(employee, WED, THU, status=LeaveStatus.PENDING)

    result = LeaveRequestValidator(db, policy).validate(_draft(employee, MON, WED))

    assert result.violation_codes == ["OVERLAPPING_REQUEST"]


def test_sick_annual_allowance(db, policy, employee, make_leave):
    make_leave(employee, date(2025, 2, 2), date(2025, 2, 6), leave_type=LeaveType.SICK, business_days=5)
    make_leave(employee, date(2025, 3, 2), date(2025, 3, 5), leave_type=LeaveType.SICK, business_days=4)

    result = LeaveRequestValidator(db, policy).validate(_draft(employee, MON, TUE, LeaveType.SICK))

    assert result.violation_codes == ["INSUFFICIENT_BALANCE"]


def test_maternity_does_not_touch_vacation_balance(db, policy, employee, set_usage):
    set_usage(employee, "2025-H1", vacation_days_used=12, weekend_leaves_used=2)

    result = LeaveRequestValidator(db, policy).validate(_draft(employee, SUN, THU, LeaveType.MATERNITY))

    assert result.admissible
    assert result.category == LeaveCategory.FAMILY


def test_submit_persists_pending(db, policy, employee):
    leave = LeaveRequestValidator(db, policy).submit(_draft(employee, TUE, THU))

    assert leave.id is not None
    assert leave.status == LeaveStatus.PENDING
    assert leave.team_id == employee.team_id
    assert leave.category == LeaveCategory.REGULAR
    assert leave.business_days == 3
    assert leave.is_weekend_leave


def test_submit_inadmissible_writes_nothing(db, policy, employee):
    with pytest.raises(LeaveValidationError) as exc_info:
        LeaveRequestValidator(db, policy).submit(_draft(employee, SUN, NEXT_SUN))

    assert [v.code.value for v in exc_info.value.violations] == ["MAX_DURATION_EXCEEDED"]
    assert db.query(LeaveRequest).count() == 0


def test_draft_lifecycle(db, policy, employee):
    validator = LeaveRequestValidator(db, policy)
    draft = validator.create_draft(_draft(employee, SUN, NEXT_SUN))
    assert draft.status == LeaveStatus.DRAFT

    with pytest.raises(LeaveValidationError):
        validator.submit_draft(draft.id, employee.id)
    db.refresh(draft)
    assert draft.status == LeaveStatus.DRAFT

    result = validator.update_draft(draft.id, employee.id, end_date=TUE)
    assert result.admissible

    submitted = validator.submit_draft(draft.id, employee.id)
    assert submitted.status == LeaveStatus.PENDING
    assert submitted.business_days == 3

    with pytest.raises(InvalidTransitionError):
        validator.submit_draft(draft.id, employee.id)
    with pytest.raises(InvalidTransitionError):
        validator.update_draft(draft.id, employee.id, reason="too late")


@pytest.mark.parametrize(
    "current,target",
    [
        (LeaveStatus.DRAFT, LeaveStatus.APPROVED),
        (LeaveStatus.DRAFT, LeaveStatus.CANCELLED),
        (LeaveStatus.PENDING, LeaveStatus.DRAFT),
        (LeaveStatus.APPROVED, LeaveStatus.REJECTED),
        (LeaveStatus.APPROVED, LeaveStatus.PENDING),
        (LeaveStatus.REJECTED, LeaveStatus.CANCELLED),
        (LeaveStatus.CANCELLED, LeaveStatus.PENDING),
    ],
)
def test_illegal_transitions(current, target):
    with pytest.raises(InvalidTransitionError):
        ensure_transition(current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (LeaveStatus.DRAFT, LeaveStatus.PENDING),
        (LeaveStatus.PENDING, LeaveStatus.APPROVED),
        (LeaveStatus.PENDING, LeaveStatus.REJECTED),
        (LeaveStatus.PENDING, LeaveStatus.CANCELLED),
        (LeaveStatus.APPROVED, LeaveStatus.CANCELLED),
    ],
)
def test_legal_transitions(current, target):
    ensure_transition(current, target)
