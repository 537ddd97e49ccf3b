"""
Team capacity: share of a team on approved leave on any single day.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_FLOOR
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.leave_policy import LeavePolicy
from app.models.leave import LeaveRequest, LeaveStatus
from app.models.team import Team
from app.models.user import User, Role
from app.utils.datetime_utils import iter_days

logger = logging.getLogger(__name__)


@dataclass
class CapacityResult:
    ok: bool
    conflict_dates: List[date] = field(default_factory=list)
    team_size: int = 0


class TeamCapacityChecker:
    def __init__(self, db: Session, policy: LeavePolicy):
        self.db = db
        self.policy = policy

    def team_size(self, team_id: int) -> int:
        """Active members who can take leave; administrators are not counted."""
        return self.db.query(User).filter(
            User.team_id == team_id,
            User.active == True,
            User.role != Role.ADMIN.value,
        ).count()

    def max_on_leave(self, team_size: int) -> int:
        """Largest number of members that may be away on the same day."""
        allowed = self.policy.team_capacity_ratio * team_size
        return int(allowed.to_integral_value(rounding=ROUND_FLOOR))

    def lock_team(self, team_id: int) -> Optional[Team]:
        """
        Take a row lock on the team for the rest of the transaction.

        Approvals for the same team serialize on this lock, so the capacity
        re-check and the status change happen as one step.
        """
        return self.db.query(Team).filter(Team.id == team_id).with_for_update().first()

    def approved_counts(
        self,
        team_id: int,
        start: date,
        end: date,
        excluding_request_id: Optional[int] = None,
    ) -> Dict[date, int]:
        """
        Per-day count of approved requests overlapping [start, end] whose owners
        are currently members of the team.
        """
        query = self.db.query(LeaveRequest.id, LeaveRequest.start_date, LeaveRequest.end_date).join(
            User, User.id == LeaveRequest.user_id
        ).filter(
            User.team_id == team_id,
            LeaveRequest.status == LeaveStatus.APPROVED,
            LeaveRequest.end_date >= start,
            LeaveRequest.start_date <= end,
        )
        if excluding_request_id is not None:
            query = query.filter(LeaveRequest.id != excluding_request_id)

        counts = {day: 0 for day in iter_days(start, end)}
        for _, leave_start, leave_end in query.all():
            for day in iter_days(max(leave_start, start), min(leave_end, end)):
                counts[day] += 1
        return counts

    def check_capacity(
        self,
        team_id: Optional[int],
        start: date,
        end: date,
        excluding_request_id: Optional[int] = None,
    ) -> CapacityResult:
        """
        Flag each day on which approving one more request would put the team
        over the capacity ratio. Users without a team, and empty teams, always pass.
        """
        if team_id is None:
            return CapacityResult(ok=True)

        size = self.team_size(team_id)
        if size == 0:
            return CapacityResult(ok=True)

        ratio = self.policy.team_capacity_ratio
        counts = self.approved_counts(team_id, start, end, excluding_request_id)
        conflicts = [
            day for day, count in sorted(counts.items())
            if Decimal(count + 1) > ratio * size
        ]
        if conflicts:
            logger.info(
                "team capacity exceeded: team_id=%s size=%s ratio=%s conflict_dates=%s",
                team_id, size, ratio, [d.isoformat() for d in conflicts],
            )
        return CapacityResult(ok=not conflicts, conflict_dates=conflicts, team_size=size)

    def daily_usage(self, team_id: int, start: date, end: date) -> List[Dict]:
        """Per-day usage rows for the capacity dashboard."""
        size = self.team_size(team_id)
        limit = self.max_on_leave(size)
        counts = self.approved_counts(team_id, start, end)
        usage = []
        for day, count in sorted(counts.items()):
            usage.append({
                "date": day,
                "on_leave": count,
                "team_size": size,
                "max_allowed": limit,
                "ratio": (Decimal(count) / size).quantize(Decimal("0.01")) if size else Decimal("0"),
                "at_capacity": count >= limit,
            })
        return usage
