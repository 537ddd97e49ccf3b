"""
Leave request validation and lifecycle (draft -> pending).

Validation is read-only: it consults the calendar, the allocation tracker,
the capacity checker and the categorizer, and collects every violation it
finds. Only submit() writes, and only when the request is admissible.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, FrozenSet, List, Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.exceptions import (
    InsufficientBalanceError,
    InvalidRangeError,
    InvalidTransitionError,
    LeaveRuleError,
    LeaveValidationError,
    MaxDurationExceededError,
    OverlappingLeaveError,
    TeamCapacityExceededError,
    WeekendLimitExceededError,
)
from app.core.leave_policy import LeavePolicy
from app.models.leave import ApprovalTier, LeaveCategory, LeaveRequest, LeaveStatus, LeaveType
from app.models.user import User
from app.services.allocation_service import SemiAnnualAllocationTracker, SemiAnnualPeriod
from app.services.audit_service import log_audit
from app.services.business_day_service import BusinessDayCalculator
from app.services.leave_categorizer import LeaveCategorizer
from app.services.team_capacity_service import TeamCapacityChecker
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: Dict[LeaveStatus, FrozenSet[LeaveStatus]] = {
    LeaveStatus.DRAFT: frozenset({LeaveStatus.PENDING}),
    LeaveStatus.PENDING: frozenset({LeaveStatus.APPROVED, LeaveStatus.REJECTED, LeaveStatus.CANCELLED}),
    LeaveStatus.APPROVED: frozenset({LeaveStatus.CANCELLED}),
    LeaveStatus.REJECTED: frozenset(),
    LeaveStatus.CANCELLED: frozenset(),
}


def ensure_transition(current: LeaveStatus, target: LeaveStatus) -> None:
    """Raise InvalidTransitionError unless current -> target is a legal move."""
    current = LeaveStatus(current)
    target = LeaveStatus(target)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Cannot move leave request from {current.value} to {target.value}",
            {"from": current.value, "to": target.value},
        )


@dataclass
class LeaveDraft:
    user_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: Optional[str] = None
    # Set when re-validating a stored request so it is not compared with itself
    request_id: Optional[int] = None


@dataclass
class ValidationResult:
    admissible: bool
    violations: List[LeaveRuleError] = field(default_factory=list)
    category: Optional[LeaveCategory] = None
    approval_tier: Optional[ApprovalTier] = None
    requires_management_approval: bool = False
    business_days: int = 0
    semi_annual_period: Optional[str] = None
    is_weekend_leave: bool = False
    team_id: Optional[int] = None
    conflict_dates: List[date] = field(default_factory=list)

    @property
    def violation_codes(self) -> List[str]:
        return [v.code.value for v in self.violations]


class LeaveRequestValidator:
    """Orchestrates the admissibility checks for a leave request."""

    def __init__(
        self,
        db: Session,
        policy: LeavePolicy,
        calendar: Optional[BusinessDayCalculator] = None,
        tracker: Optional[SemiAnnualAllocationTracker] = None,
        capacity: Optional[TeamCapacityChecker] = None,
        categorizer: Optional[LeaveCategorizer] = None,
    ):
        self.db = db
        self.policy = policy
        self.calendar = calendar or BusinessDayCalculator.from_db(db, policy)
        self.tracker = tracker or SemiAnnualAllocationTracker(db, policy)
        self.capacity = capacity or TeamCapacityChecker(db, policy)
        self.categorizer = categorizer or LeaveCategorizer(policy)

    def _get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"User with id {user_id} not found"
            )
        return user

    def _find_overlap(self, draft: LeaveDraft) -> Optional[LeaveRequest]:
        # Overlap: existing.end_date >= new.start_date AND existing.start_date <= new.end_date
        query = self.db.query(LeaveRequest).filter(
            LeaveRequest.user_id == draft.user_id,
            LeaveRequest.status.in_([LeaveStatus.PENDING, LeaveStatus.APPROVED]),
            LeaveRequest.end_date >= draft.start_date,
            LeaveRequest.start_date <= draft.end_date,
        )
        if draft.request_id is not None:
            query = query.filter(LeaveRequest.id != draft.request_id)
        return query.first()

    def _annual_allowance(self, leave_type: LeaveType) -> Optional[int]:
        if leave_type == LeaveType.SICK:
            return self.policy.sick_annual_days
        if leave_type == LeaveType.OTHER:
            return self.policy.other_annual_days
        return None

    def _approved_days_in_year(self, user_id: int, leave_type: LeaveType, year: int) -> int:
        total = self.db.query(func.coalesce(func.sum(LeaveRequest.business_days), 0)).filter(
            LeaveRequest.user_id == user_id,
            LeaveRequest.leave_type == leave_type,
            LeaveRequest.status == LeaveStatus.APPROVED,
            LeaveRequest.start_date >= date(year, 1, 1),
            LeaveRequest.start_date <= date(year, 12, 31),
        ).scalar()
        return int(total or 0)

    def validate(self, draft: LeaveDraft) -> ValidationResult:
        """
        Run every admissibility check and collect the violations.

        The range check is a precondition: when it fails nothing else runs.
        """
        leave_type = LeaveType(draft.leave_type)
        period = SemiAnnualPeriod.for_date(draft.start_date)
        user = self._get_user(draft.user_id)
        result = ValidationResult(
            admissible=False,
            semi_annual_period=period.label,
            team_id=user.team_id,
        )

        # 1. Range
        try:
            business_days = self.calendar.count_business_days(draft.start_date, draft.end_date)
        except InvalidRangeError as exc:
            result.violations.append(exc)
            return result
        if business_days == 0:
            result.violations.append(InvalidRangeError(
                f"No working days between {draft.start_date} and {draft.end_date}",
                {"start_date": draft.start_date.isoformat(), "end_date": draft.end_date.isoformat()},
            ))
            return result
        result.business_days = business_days
        result.is_weekend_leave = self.calendar.touches_weekend_working_day(draft.start_date, draft.end_date)

        # 2. Duration
        if business_days > self.policy.max_consecutive_days:
            result.violations.append(MaxDurationExceededError(
                f"Leave spans {business_days} business days; the maximum is {self.policy.max_consecutive_days}",
                {"business_days": business_days, "max_days": self.policy.max_consecutive_days},
            ))
        if leave_type == LeaveType.MATERNITY:
            calendar_days = (draft.end_date - draft.start_date).days + 1
            if calendar_days > self.policy.maternity_max_days:
                result.violations.append(MaxDurationExceededError(
                    f"Maternity leave of {calendar_days} days exceeds {self.policy.maternity_max_days} days",
                    {"calendar_days": calendar_days, "max_days": self.policy.maternity_max_days},
                ))

        overlapping = self._find_overlap(draft)
        if overlapping is not None:
            result.violations.append(OverlappingLeaveError(
                f"Leave request overlaps with existing leave from {overlapping.start_date} to {overlapping.end_date}",
                {"leave_request_id": overlapping.id, "status": LeaveStatus(overlapping.status).value},
            ))

        # 3. Vacation balance, or the annual allowance of the other types
        if leave_type == LeaveType.VACATION:
            if not self.tracker.can_consume_vacation(draft.user_id, period, business_days):
                balance = self.tracker.get_balance(draft.user_id, period)
                result.violations.append(InsufficientBalanceError(
                    f"Insufficient vacation balance for {period.label}",
                    {
                        "period": period.label,
                        "used": balance.vacation_days_used,
                        "requested": business_days,
                        "limit": self.policy.vacation_days_per_period,
                    },
                ))
        else:
            allowance = self._annual_allowance(leave_type)
            if allowance is not None:
                used = self._approved_days_in_year(draft.user_id, leave_type, draft.start_date.year)
                if used + business_days > allowance:
                    result.violations.append(InsufficientBalanceError(
                        f"Insufficient {leave_type.value} allowance for {draft.start_date.year}",
                        {"used": used, "requested": business_days, "limit": allowance},
                    ))

        # 4. Weekend leave
        if leave_type == LeaveType.VACATION and result.is_weekend_leave:
            if not self.tracker.can_consume_weekend_leave(draft.user_id, period):
                balance = self.tracker.get_balance(draft.user_id, period)
                result.violations.append(WeekendLimitExceededError(
                    f"Weekend leave limit reached for {period.label}",
                    {
                        "period": period.label,
                        "used": balance.weekend_leaves_used,
                        "limit": self.policy.weekend_leaves_per_period,
                    },
                ))

        # 5. Team capacity
        capacity = self.capacity.check_capacity(
            user.team_id, draft.start_date, draft.end_date, excluding_request_id=draft.request_id
        )
        if not capacity.ok:
            result.conflict_dates = capacity.conflict_dates
            result.violations.append(TeamCapacityExceededError(
                "Team capacity would be exceeded",
                capacity.conflict_dates,
                {"team_id": user.team_id, "team_size": capacity.team_size},
            ))

        # 6. Category and approval tier
        decision = self.categorizer.categorize(leave_type, business_days)
        result.category = decision.category
        result.approval_tier = decision.approval_tier
        result.requires_management_approval = decision.requires_management_approval

        result.admissible = not result.violations
        if not result.admissible:
            logger.info(
                "leave validation failed: user_id=%s start=%s end=%s violations=%s",
                draft.user_id, draft.start_date, draft.end_date, result.violation_codes,
            )
        return result

    def _apply_result(self, leave: LeaveRequest, result: ValidationResult) -> None:
        leave.team_id = result.team_id
        leave.category = result.category
        leave.approval_tier = result.approval_tier
        leave.requires_management_approval = result.requires_management_approval
        leave.business_days = result.business_days
        leave.is_weekend_leave = result.is_weekend_leave
        leave.semi_annual_period = result.semi_annual_period

    def submit(self, draft: LeaveDraft) -> LeaveRequest:
        """
        Persist the request as pending if it is admissible.

        Raises:
            LeaveValidationError: with every violation; nothing is written
        """
        result = self.validate(draft)
        if not result.admissible:
            raise LeaveValidationError(result.violations)

        now = now_utc()
        leave = LeaveRequest(
            user_id=draft.user_id,
            leave_type=LeaveType(draft.leave_type),
            start_date=draft.start_date,
            end_date=draft.end_date,
            reason=draft.reason,
            status=LeaveStatus.PENDING,
            submitted_at=now,
            created_at=now,
            updated_at=now,
        )
        self._apply_result(leave, result)
        self.db.add(leave)
        self.db.commit()
        self.db.refresh(leave)

        logger.info(
            "leave status transition: leave_request_id=%s before=NEW after=PENDING action=submit",
            leave.id,
        )
        log_audit(
            db=self.db,
            actor_id=draft.user_id,
            action="LEAVE_SUBMIT",
            entity_type="leave_requests",
            entity_id=leave.id,
            meta={
                "leave_type": leave.leave_type,
                "start_date": leave.start_date,
                "end_date": leave.end_date,
                "business_days": leave.business_days,
                "category": leave.category,
                "approval_tier": leave.approval_tier,
            },
        )
        return leave

    def create_draft(self, draft: LeaveDraft) -> LeaveRequest:
        """Store a draft without running the admissibility checks."""
        self._get_user(draft.user_id)
        business_days = self.calendar.count_business_days(draft.start_date, draft.end_date)

        now = now_utc()
        leave = LeaveRequest(
            user_id=draft.user_id,
            leave_type=LeaveType(draft.leave_type),
            start_date=draft.start_date,
            end_date=draft.end_date,
            reason=draft.reason,
            status=LeaveStatus.DRAFT,
            semi_annual_period=SemiAnnualPeriod.for_date(draft.start_date).label,
            business_days=business_days,
            created_at=now,
            updated_at=now,
        )
        self.db.add(leave)
        self.db.commit()
        self.db.refresh(leave)

        log_audit(
            db=self.db,
            actor_id=draft.user_id,
            action="LEAVE_DRAFT_CREATE",
            entity_type="leave_requests",
            entity_id=leave.id,
            meta={"start_date": leave.start_date, "end_date": leave.end_date},
        )
        return leave

    def _get_own_draft(self, request_id: int, user_id: int) -> LeaveRequest:
        leave = self.db.query(LeaveRequest).filter(LeaveRequest.id == request_id).first()
        if not leave or leave.user_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Leave request with id {request_id} not found"
            )
        return leave

    def update_draft(
        self,
        request_id: int,
        user_id: int,
        leave_type: Optional[LeaveType] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        reason: Optional[str] = None,
    ) -> ValidationResult:
        """Edit a draft and re-validate it against everything except itself."""
        leave = self._get_own_draft(request_id, user_id)
        if leave.status != LeaveStatus.DRAFT:
            raise InvalidTransitionError(
                f"Only draft requests can be edited; this one is {LeaveStatus(leave.status).value}",
                {"status": LeaveStatus(leave.status).value},
            )

        draft = LeaveDraft(
            user_id=user_id,
            leave_type=leave_type or leave.leave_type,
            start_date=start_date or leave.start_date,
            end_date=end_date or leave.end_date,
            reason=reason if reason is not None else leave.reason,
            request_id=leave.id,
        )
        if draft.start_date > draft.end_date:
            raise InvalidRangeError(
                f"start_date {draft.start_date} is after end_date {draft.end_date}",
                {"start_date": draft.start_date.isoformat(), "end_date": draft.end_date.isoformat()},
            )

        result = self.validate(draft)
        leave.leave_type = LeaveType(draft.leave_type)
        leave.start_date = draft.start_date
        leave.end_date = draft.end_date
        leave.reason = draft.reason
        leave.semi_annual_period = result.semi_annual_period
        leave.business_days = result.business_days
        leave.updated_at = now_utc()
        self.db.commit()
        self.db.refresh(leave)
        return result

    def submit_draft(self, request_id: int, user_id: int) -> LeaveRequest:
        """
        Move a stored draft to pending. When it is not admissible it stays a
        draft and LeaveValidationError carries the violations.
        """
        leave = self._get_own_draft(request_id, user_id)
        before_status = LeaveStatus(leave.status).value
        ensure_transition(leave.status, LeaveStatus.PENDING)

        result = self.validate(LeaveDraft(
            user_id=leave.user_id,
            leave_type=leave.leave_type,
            start_date=leave.start_date,
            end_date=leave.end_date,
            reason=leave.reason,
            request_id=leave.id,
        ))
        if not result.admissible:
            raise LeaveValidationError(result.violations)

        self._apply_result(leave, result)
        leave.status = LeaveStatus.PENDING
        leave.submitted_at = now_utc()
        leave.updated_at = leave.submitted_at
        self.db.commit()
        self.db.refresh(leave)

        logger.info(
            "leave status transition: leave_request_id=%s before=%s after=PENDING action=submit",
            leave.id, before_status,
        )
        log_audit(
            db=self.db,
            actor_id=user_id,
            action="LEAVE_SUBMIT",
            entity_type="leave_requests",
            entity_id=leave.id,
            meta={"category": leave.category, "approval_tier": leave.approval_tier},
        )
        return leave
