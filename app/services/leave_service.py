"""
Leave service - entry points used by the API layer.

Builds the engine components for one request/session and wires them
together; all rule logic lives in the validator and the approval workflow.
"""
import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import and_, case, extract, func
from sqlalchemy.orm import Session

from app.core.exceptions import ConcurrencyConflictError
from app.core.leave_policy import LeavePolicy
from app.models.leave import ApprovalTier, LeaveRequest, LeaveStatus, LeaveType, SemiAnnualBalance
from app.models.team import Team
from app.models.user import User, Role
from app.services.allocation_service import SemiAnnualAllocationTracker, SemiAnnualPeriod
from app.services.approval_workflow import ApprovalWorkflow, DecisionOutcome
from app.services.audit_service import log_audit
from app.services.leave_validator import LeaveDraft, LeaveRequestValidator, ValidationResult
from app.services.team_capacity_service import TeamCapacityChecker

logger = logging.getLogger(__name__)

# ConcurrencyConflictError is retried this many times before it reaches the caller
APPROVAL_RETRIES = 1


def validate_leave(db: Session, policy: LeavePolicy, draft: LeaveDraft) -> ValidationResult:
    return LeaveRequestValidator(db, policy).validate(draft)


def submit_leave(db: Session, policy: LeavePolicy, draft: LeaveDraft) -> LeaveRequest:
    return LeaveRequestValidator(db, policy).submit(draft)


def create_draft(db: Session, policy: LeavePolicy, draft: LeaveDraft) -> LeaveRequest:
    return LeaveRequestValidator(db, policy).create_draft(draft)


def update_draft(
    db: Session,
    policy: LeavePolicy,
    request_id: int,
    user_id: int,
    leave_type: Optional[LeaveType] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    reason: Optional[str] = None,
) -> Tuple[LeaveRequest, ValidationResult]:
    result = LeaveRequestValidator(db, policy).update_draft(
        request_id, user_id, leave_type=leave_type, start_date=start_date, end_date=end_date, reason=reason
    )
    return get_leave(db, request_id), result


def submit_draft(db: Session, policy: LeavePolicy, request_id: int, user_id: int) -> LeaveRequest:
    return LeaveRequestValidator(db, policy).submit_draft(request_id, user_id)


def approve_leave(
    db: Session,
    policy: LeavePolicy,
    request_id: int,
    approver: User,
    notes: Optional[str] = None
) -> DecisionOutcome:
    """
    Approve a leave request, retrying once on ConcurrencyConflictError.

    The retry starts a fresh transaction, so a conflict caused by a
    concurrent approval that has since rolled back can still succeed.
    """
    attempt = 0
    while True:
        try:
            return ApprovalWorkflow(db, policy).approve(request_id, approver, notes)
        except ConcurrencyConflictError as exc:
            if attempt >= APPROVAL_RETRIES:
                logger.warning(
                    "leave approval conflict surfaced: leave_request_id=%s conflict_dates=%s",
                    request_id, [d.isoformat() for d in exc.conflict_dates],
                )
                raise
            attempt += 1
            logger.info("retrying leave approval after conflict: leave_request_id=%s", request_id)


def reject_leave(
    db: Session,
    policy: LeavePolicy,
    request_id: int,
    approver: User,
    notes: Optional[str] = None
) -> DecisionOutcome:
    return ApprovalWorkflow(db, policy).reject(request_id, approver, notes)


def cancel_leave(
    db: Session,
    policy: LeavePolicy,
    request_id: int,
    actor: User,
    notes: Optional[str] = None
) -> DecisionOutcome:
    return ApprovalWorkflow(db, policy).cancel(request_id, actor, notes)


def get_leave(db: Session, request_id: int, viewer: Optional[User] = None) -> LeaveRequest:
    """
    Get a leave request. When a viewer is given, employees only see their own.
    """
    leave = db.query(LeaveRequest).filter(LeaveRequest.id == request_id).first()
    if not leave or (viewer is not None and not viewer.is_reviewer and leave.user_id != viewer.id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Leave request with id {request_id} not found"
        )
    return leave


def list_leaves(
    db: Session,
    user_id: Optional[int] = None,
    status_filter: Optional[LeaveStatus] = None,
    period: Optional[SemiAnnualPeriod] = None,
) -> List[LeaveRequest]:
    query = db.query(LeaveRequest)
    if user_id is not None:
        query = query.filter(LeaveRequest.user_id == user_id)
    if status_filter is not None:
        query = query.filter(LeaveRequest.status == status_filter)
    if period is not None:
        query = query.filter(LeaveRequest.semi_annual_period == period.label)
    return query.order_by(LeaveRequest.start_date.desc(), LeaveRequest.id.desc()).all()


def list_pending(db: Session, reviewer: User) -> List[LeaveRequest]:
    """
    Pending queue for a reviewer: everything they are allowed to decide,
    oldest first. Their own requests are left out.
    """
    query = db.query(LeaveRequest).filter(
        LeaveRequest.status == LeaveStatus.PENDING,
        LeaveRequest.user_id != reviewer.id,
    )
    if reviewer.role != Role.MANAGEMENT.value:
        query = query.filter(LeaveRequest.approval_tier == ApprovalTier.ADMIN)
    return query.order_by(LeaveRequest.start_date, LeaveRequest.id).all()


def get_balance(db: Session, policy: LeavePolicy, user_id: int, period: SemiAnnualPeriod) -> SemiAnnualBalance:
    return SemiAnnualAllocationTracker(db, policy).get_balance(user_id, period)


def list_balances(db: Session, policy: LeavePolicy, period: SemiAnnualPeriod) -> List[SemiAnnualBalance]:
    return SemiAnnualAllocationTracker(db, policy).list_balances(period)


def reset_balances(
    db: Session,
    policy: LeavePolicy,
    period: SemiAnnualPeriod,
    actor_id: int,
    user_id: Optional[int] = None
) -> int:
    """Administrative early reset of a period's counters."""
    reset = SemiAnnualAllocationTracker(db, policy).force_reset(period, user_id)
    db.commit()
    log_audit(
        db=db,
        actor_id=actor_id,
        action="BALANCE_RESET",
        entity_type="semi_annual_balances",
        entity_id=user_id,
        meta={"period": period.label, "user_id": user_id, "rows": reset},
    )
    return reset


def team_capacity(db: Session, policy: LeavePolicy, team_id: int, start: date, end: date) -> List[dict]:
    team = db.query(Team).filter(Team.id == team_id).first()
    if not team:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Team with id {team_id} not found"
        )
    if start > end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date must be on or before end_date"
        )
    return TeamCapacityChecker(db, policy).daily_usage(team_id, start, end)


def _totals():
    """Request count, approved count and approved business days for one GROUP BY"""
    approved = LeaveRequest.status == LeaveStatus.APPROVED
    return (
        func.count(LeaveRequest.id).label("total_requests"),
        func.count(case((approved, 1))).label("approved_requests"),
        func.coalesce(func.sum(case((approved, LeaveRequest.business_days), else_=0)), 0).label("days_taken"),
    )


def leave_analytics(db: Session, year: int) -> Dict[str, List[dict]]:
    """
    Yearly leave totals for the admin dashboard, grouped by start month, by
    leave type and by team. Drafts are not counted; team rows follow current
    membership and list every active team, even without requests.
    """
    year_start, year_end = date(year, 1, 1), date(year, 12, 31)
    in_year = and_(
        LeaveRequest.start_date >= year_start,
        LeaveRequest.start_date <= year_end,
        LeaveRequest.status != LeaveStatus.DRAFT,
    )
    totals = _totals()

    month = extract("month", LeaveRequest.start_date)
    by_month = (
        db.query(month.label("month"), *totals)
        .filter(in_year)
        .group_by(month)
        .order_by(month)
        .all()
    )

    by_type = (
        db.query(LeaveRequest.leave_type, *totals)
        .filter(in_year)
        .group_by(LeaveRequest.leave_type)
        .order_by(func.count(LeaveRequest.id).desc(), LeaveRequest.leave_type)
        .all()
    )

    by_team = (
        db.query(
            Team.id,
            Team.name,
            func.count(func.distinct(User.id)).label("team_members"),
            *totals,
        )
        .outerjoin(User, and_(
            User.team_id == Team.id,
            User.active == True,
            User.role != Role.ADMIN.value,
        ))
        .outerjoin(LeaveRequest, and_(LeaveRequest.user_id == User.id, in_year))
        .filter(Team.active == True)
        .group_by(Team.id, Team.name)
        .order_by(func.count(LeaveRequest.id).desc(), Team.name)
        .all()
    )

    def _row(row) -> dict:
        return {
            "total_requests": int(row.total_requests),
            "approved_requests": int(row.approved_requests),
            "days_taken": int(row.days_taken or 0),
        }

    return {
        "by_month": [{"month": int(r.month), **_row(r)} for r in by_month],
        "by_leave_type": [{"leave_type": LeaveType(r.leave_type), **_row(r)} for r in by_type],
        "by_team": [
            {"team_id": r.id, "team_name": r.name, "team_members": int(r.team_members), **_row(r)}
            for r in by_team
        ],
    }
