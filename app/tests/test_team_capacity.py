"""
Tests for the team capacity checker
"""
from datetime import date
from decimal import Decimal

from app.core.leave_policy import LeavePolicy
from app.models.leave import LeaveStatus
from app.models.team import Team
from app.models.user import Role
from app.services.team_capacity_service import TeamCapacityChecker

TUE = date(2025, 1, 7)
WED = date(2025, 1, 8)
THU = date(2025, 1, 9)


def _members(make_user, team, count):
    return [make_user(Role.EMPLOYEE, team) for _ in range(count)]


def test_team_size_excludes_admins_and_inactive(db, policy, make_user, team):
    _members(make_user, team, 3)
    make_user(Role.ADMIN, team)
    inactive = make_user(Role.EMPLOYEE, team)
    inactive.active = False
    db.commit()

    assert TeamCapacityChecker(db, policy).team_size(team.id) == 3


def test_four_of_ten_on_leave_blocks_a_fifth(db, policy, make_user, make_leave, team):
    members = _members(make_user, team, 10)
    for member in members[:4]:
        make_leave(member, TUE, TUE)

    result = TeamCapacityChecker(db, policy).check_capacity(team.id, TUE, WED)

    assert not result.ok
    assert result.conflict_dates == [TUE]
    assert result.team_size == 10


def test_three_of_ten_on_leave_allows_a_fourth(db, policy, make_user, make_leave, team):
    members = _members(make_user, team, 10)
    for member in members[:3]:
        make_leave(member, TUE, THU)

    assert TeamCapacityChecker(db, policy).check_capacity(team.id, TUE, THU).ok


def test_only_approved_requests_count(db, policy, make_user, make_leave, team):
    members = _members(make_user, team, 4)
    make_leave(members[0], TUE, TUE, status=LeaveStatus.PENDING)
    make_leave(members[1], TUE, TUE, status=LeaveStatus.CANCELLED)
    make_leave(members[2], TUE, TUE, status=LeaveStatus.REJECTED)

    assert TeamCapacityChecker(db, policy).check_capacity(team.id, TUE, TUE).ok


def test_approved_leave_follows_its_owner_to_a_new_team(db, policy, make_user, make_leave, team):
    other = Team(name="Support")
    db.add(other)
    db.commit()
    _members(make_user, other, 3)
    mover = make_user(Role.EMPLOYEE, team)
    make_leave(mover, TUE, TUE)

    mover.team_id = other.id
    db.commit()
    checker = TeamCapacityChecker(db, policy)

    assert checker.approved_counts(team.id, TUE, TUE) == {TUE: 0}
    assert checker.approved_counts(other.id, TUE, TUE) == {TUE: 1}
    assert checker.check_capacity(other.id, TUE, TUE).conflict_dates == [TUE]


def test_excluding_request_under_evaluation(db, policy, make_user, make_leave, team):
    members = _members(make_user, team, 4)
    leave = make_leave(members[0], TUE, TUE)
    checker = TeamCapacityChecker(db, policy)

    assert not checker.check_capacity(team.id, TUE, TUE).ok
    assert checker.check_capacity(team.id, TUE, TUE, excluding_request_id=leave.id).ok


def test_other_teams_do_not_count(db, policy, make_user, make_leave, team):
    other = Team(name="Sales")
    db.add(other)
    db.commit()
    _members(make_user, team, 4)
    for member in _members(make_user, other, 4):
        make_leave(member, TUE, TUE)

    assert TeamCapacityChecker(db, policy).check_capacity(team.id, TUE, TUE).ok


def test_no_team_or_empty_team_passes(db, policy, team):
    checker = TeamCapacityChecker(db, policy)
    assert checker.check_capacity(None, TUE, THU).ok
    assert checker.check_capacity(team.id, TUE, THU).ok


def test_ratio_comes_from_policy(db, make_user, make_leave, team):
    members = _members(make_user, team, 10)
    for member in members[:4]:
        make_leave(member, TUE, TUE)

    relaxed = LeavePolicy(team_capacity_ratio=Decimal("0.5"))
    assert TeamCapacityChecker(db, relaxed).check_capacity(team.id, TUE, TUE).ok


def test_daily_usage(db, policy, make_user, make_leave, team):
    members = _members(make_user, team, 10)
    make_leave(members[0], TUE, WED)
    make_leave(members[1], WED, THU)

    usage = TeamCapacityChecker(db, policy).daily_usage(team.id, TUE, THU)

    assert [row["on_leave"] for row in usage] == [1, 2, 1]
    assert all(row["max_allowed"] == 4 for row in usage)
    assert usage[1]["ratio"] == Decimal("0.20")
    assert not any(row["at_capacity"] for row in usage)
