"""
Tests for semi-annual periods and the allocation tracker
"""
from datetime import date

import pytest

from app.core.exceptions import (
    BalanceUnderflowError,
    InsufficientBalanceError,
    WeekendLimitExceededError,
)
from app.models.leave import HalfYear, SemiAnnualBalance
from app.services.allocation_service import SemiAnnualAllocationTracker, SemiAnnualPeriod


@pytest.mark.parametrize(
    "day,label",
    [
        (date(2025, 1, 1), "2025-H1"),
        (date(2025, 6, 30), "2025-H1"),
        (date(2025, 7, 1), "2025-H2"),
        (date(2025, 12, 31), "2025-H2"),
    ],
)
def test_period_for_date(policy, db, day, label):
    tracker = SemiAnnualAllocationTracker(db, policy)
    assert tracker.current_period(day).label == label


def test_period_bounds_and_label_parsing():
    period = SemiAnnualPeriod.from_label("2025-h2")
    assert period == SemiAnnualPeriod(2025, HalfYear.H2)
    assert period.start_date == date(2025, 7, 1)
    assert period.end_date == date(2025, 12, 31)
    assert period.contains(date(2025, 9, 1))
    assert not period.contains(date(2025, 6, 30))


@pytest.mark.parametrize("label", ["2025", "2025-H3", "H1-2025", ""])
def test_invalid_period_label(label):
    with pytest.raises(ValueError):
        SemiAnnualPeriod.from_label(label)


def test_get_balance_is_zero_and_transient_when_unused(db, policy, employee):
    tracker = SemiAnnualAllocationTracker(db, policy)
    balance = tracker.get_balance(employee.id, SemiAnnualPeriod(2025, HalfYear.H1))

    assert balance.vacation_days_used == 0
    assert balance.weekend_leaves_used == 0
    assert balance not in db
    assert db.query(SemiAnnualBalance).count() == 0


def test_can_consume_vacation_up_to_cap(db, policy, employee, set_usage):
    set_usage(employee, "2025-H1", vacation_days_used=10)
    tracker = SemiAnnualAllocationTracker(db, policy)
    period = SemiAnnualPeriod(2025, HalfYear.H1)

    assert tracker.can_consume_vacation(employee.id, period, 2)
    assert not tracker.can_consume_vacation(employee.id, period, 3)


def test_can_consume_weekend_leave_below_cap(db, policy, employee, set_usage):
    tracker = SemiAnnualAllocationTracker(db, policy)
    period = SemiAnnualPeriod(2025, HalfYear.H1)
    assert tracker.can_consume_weekend_leave(employee.id, period)

    set_usage(employee, "2025-H1", weekend_leaves_used=2)
    assert not tracker.can_consume_weekend_leave(employee.id, period)


def test_new_period_starts_at_zero(db, policy, employee, set_usage):
    set_usage(employee, "2025-H1", vacation_days_used=12, weekend_leaves_used=2)
    tracker = SemiAnnualAllocationTracker(db, policy)
    h2 = SemiAnnualPeriod(2025, HalfYear.H2)

    assert tracker.can_consume_vacation(employee.id, h2, 5)
    assert tracker.can_consume_weekend_leave(employee.id, h2)


def test_commit_creates_row_lazily(db, policy, employee):
    tracker = SemiAnnualAllocationTracker(db, policy)
    period = SemiAnnualPeriod(2025, HalfYear.H1)

    tracker.commit(employee.id, period, 3, 1)
    db.commit()

    row = db.query(SemiAnnualBalance).filter(SemiAnnualBalance.user_id == employee.id).one()
    assert (row.vacation_days_used, row.weekend_leaves_used) == (3, 1)


def test_commit_then_reverse_is_a_no_op(db, policy, employee, set_usage):
    set_usage(employee, "2025-H1", vacation_days_used=4, weekend_leaves_used=1)
    tracker = SemiAnnualAllocationTracker(db, policy)
    period = SemiAnnualPeriod(2025, HalfYear.H1)

    tracker.commit(employee.id, period, 3, 1)
    tracker.commit(employee.id, period, -3, -1)
    db.commit()

    balance = tracker.get_balance(employee.id, period)
    assert (balance.vacation_days_used, balance.weekend_leaves_used) == (4, 1)


def test_commit_underflow_raises(db, policy, employee):
    tracker = SemiAnnualAllocationTracker(db, policy)
    with pytest.raises(BalanceUnderflowError):
        tracker.commit(employee.id, SemiAnnualPeriod(2025, HalfYear.H1), -1, 0)
    db.rollback()


def test_commit_refuses_to_pass_vacation_cap(db, policy, employee, set_usage):
    set_usage(employee, "2025-H1", vacation_days_used=10)
    tracker = SemiAnnualAllocationTracker(db, policy)
    with pytest.raises(InsufficientBalanceError):
        tracker.commit(employee.id, SemiAnnualPeriod(2025, HalfYear.H1), 3, 0)
    db.rollback()


def test_commit_refuses_to_pass_weekend_cap(db, policy, employee, set_usage):
    set_usage(employee, "2025-H1", weekend_leaves_used=2)
    tracker = SemiAnnualAllocationTracker(db, policy)
    with pytest.raises(WeekendLimitExceededError):
        tracker.commit(employee.id, SemiAnnualPeriod(2025, HalfYear.H1), 1, 1)
    db.rollback()


def test_force_reset_single_user(db, policy, make_user, team, set_usage):
    first = make_user(team=team)
    second = make_user(team=team)
    set_usage(first, "2025-H1", vacation_days_used=5, weekend_leaves_used=1)
    set_usage(second, "2025-H1", vacation_days_used=7)
    tracker = SemiAnnualAllocationTracker(db, policy)
    period = SemiAnnualPeriod(2025, HalfYear.H1)

    assert tracker.force_reset(period, user_id=first.id) == 1
    db.commit()

    assert tracker.get_balance(first.id, period).vacation_days_used == 0
    assert tracker.get_balance(second.id, period).vacation_days_used == 7


def test_force_reset_everyone_and_list(db, policy, make_user, team, set_usage):
    first = make_user(team=team)
    second = make_user(team=team)
    set_usage(first, "2025-H1", vacation_days_used=5)
    set_usage(second, "2025-H1", vacation_days_used=7)
    set_usage(second, "2025-H2", vacation_days_used=2)
    tracker = SemiAnnualAllocationTracker(db, policy)

    assert tracker.force_reset(SemiAnnualPeriod(2025, HalfYear.H1)) == 2
    db.commit()

    h1 = tracker.list_balances(SemiAnnualPeriod(2025, HalfYear.H1))
    assert [b.vacation_days_used for b in h1] == [0, 0]
    h2 = tracker.list_balances(SemiAnnualPeriod(2025, HalfYear.H2))
    assert [(b.user_id, b.vacation_days_used) for b in h2] == [(second.id, 2)]
