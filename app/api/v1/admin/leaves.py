"""
Admin leave endpoints: pending queue, decisions, balances, team capacity and analytics.
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.v1.leaves import resolve_period
from app.core.deps import get_db, require_roles, require_reviewer
from app.core.leave_policy import LeavePolicy, get_leave_policy
from app.models.user import User, Role
from app.schemas.leave import (
    BalanceOut,
    BalanceResetOut,
    BalanceResetRequest,
    DecisionOut,
    DecisionRequest,
    LeaveAnalyticsOut,
    LeaveOut,
    TeamCapacityDayOut,
    TeamCapacityOut,
)
from app.services import leave_service
from app.services.allocation_service import SemiAnnualPeriod
from app.utils.datetime_utils import now_utc

router = APIRouter()


@router.get("/pending", response_model=List[LeaveOut])
async def list_pending_endpoint(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_reviewer),
):
    """Pending requests the current reviewer may decide, oldest first"""
    return leave_service.list_pending(db, current_user)


@router.post("/{leave_request_id}/approve", response_model=DecisionOut)
async def approve_leave_endpoint(
    leave_request_id: int,
    payload: Optional[DecisionRequest] = Body(None),
    db: Session = Depends(get_db),
    policy: LeavePolicy = Depends(get_leave_policy),
    current_user: User = Depends(require_reviewer),
):
    """
    Approve a pending request.

    Returns 409 CONCURRENCY_CONFLICT with conflict_dates when team capacity
    is no longer available; the request then stays pending.
    """
    outcome = leave_service.approve_leave(
        db, policy, leave_request_id, current_user, notes=payload.notes if payload else None
    )
    return DecisionOut(
        status=outcome.status,
        leave=LeaveOut.model_validate(outcome.leave_request),
        conflict_dates=outcome.conflict_dates,
    )


@router.post("/{leave_request_id}/reject", response_model=DecisionOut)
async def reject_leave_endpoint(
    leave_request_id: int,
    payload: Optional[DecisionRequest] = Body(None),
    db: Session = Depends(get_db),
    policy: LeavePolicy = Depends(get_leave_policy),
    current_user: User = Depends(require_reviewer),
):
    """Reject a pending request"""
    outcome = leave_service.reject_leave(
        db, policy, leave_request_id, current_user, notes=payload.notes if payload else None
    )
    return DecisionOut(status=outcome.status, leave=LeaveOut.model_validate(outcome.leave_request))


@router.get("/balances", response_model=List[BalanceOut])
async def list_balances_endpoint(
    period: Optional[str] = Query(None, description='Semi-annual period, e.g. "2025-H1"; current when omitted'),
    db: Session = Depends(get_db),
    policy: LeavePolicy = Depends(get_leave_policy),
    current_user: User = Depends(require_reviewer),
):
    """Usage rows for every user who has used leave in the period"""
    balances = leave_service.list_balances(db, policy, resolve_period(period))
    return [BalanceOut.from_balance(b, policy) for b in balances]


@router.get("/balances/{user_id}", response_model=BalanceOut)
async def get_user_balance_endpoint(
    user_id: int,
    period: Optional[str] = Query(None, description='Semi-annual period, e.g. "2025-H1"; current when omitted'),
    db: Session = Depends(get_db),
    policy: LeavePolicy = Depends(get_leave_policy),
    current_user: User = Depends(require_reviewer),
):
    """Usage of one user for a period (zero when nothing was approved yet)"""
    if not db.query(User).filter(User.id == user_id).first():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with id {user_id} not found"
        )
    balance = leave_service.get_balance(db, policy, user_id, resolve_period(period))
    return BalanceOut.from_balance(balance, policy)


@router.post("/balances/reset", response_model=BalanceResetOut)
async def reset_balances_endpoint(
    payload: BalanceResetRequest,
    db: Session = Depends(get_db),
    policy: LeavePolicy = Depends(get_leave_policy),
    current_user: User = Depends(require_roles(Role.ADMIN)),
):
    """Zero a period's counters early (Admin-only)"""
    rows = leave_service.reset_balances(
        db,
        policy,
        SemiAnnualPeriod.from_label(payload.period),
        actor_id=current_user.id,
        user_id=payload.user_id,
    )
    return BalanceResetOut(period=payload.period, user_id=payload.user_id, rows_reset=rows)


@router.get("/team-capacity", response_model=TeamCapacityOut)
async def team_capacity_endpoint(
    team_id: int = Query(..., description="Team ID"),
    start_date: date = Query(..., description="First day (inclusive)"),
    end_date: date = Query(..., description="Last day (inclusive)"),
    db: Session = Depends(get_db),
    policy: LeavePolicy = Depends(get_leave_policy),
    current_user: User = Depends(require_reviewer),
):
    """Daily count of approved leave against the team's capacity limit"""
    days = leave_service.team_capacity(db, policy, team_id, start_date, end_date)
    return TeamCapacityOut(
        team_id=team_id,
        start_date=start_date,
        end_date=end_date,
        capacity_ratio=float(policy.team_capacity_ratio),
        days=[TeamCapacityDayOut(**day) for day in days],
    )


@router.get("/analytics", response_model=LeaveAnalyticsOut)
async def leave_analytics_endpoint(
    year: Optional[int] = Query(None, ge=2000, le=2100, description="Calendar year; current year when omitted"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.ADMIN)),
):
    """Requests, approvals and days taken per month, leave type and team (Admin-only)"""
    if year is None:
        year = now_utc().year
    return LeaveAnalyticsOut(year=year, **leave_service.leave_analytics(db, year))
