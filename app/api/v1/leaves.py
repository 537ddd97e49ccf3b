"""
Leave endpoints
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from app.core.deps import get_db, get_current_user
from app.core.leave_policy import LeavePolicy, get_leave_policy
from app.models.leave import LeaveStatus
from app.models.user import User
from app.schemas.leave import (
    BalanceOut,
    DecisionOut,
    DecisionRequest,
    DraftUpdateOut,
    LeaveDraftIn,
    LeaveDraftUpdate,
    LeaveOut,
    ValidationOut,
)
from app.services import leave_service
from app.services.allocation_service import SemiAnnualPeriod
from app.services.leave_validator import LeaveDraft

router = APIRouter()


def resolve_period(period: Optional[str]) -> SemiAnnualPeriod:
    """Period from a "2025-H1" label; the current period when omitted."""
    if period is None:
        return SemiAnnualPeriod.for_date(date.today())
    try:
        return SemiAnnualPeriod.from_label(period)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _draft(payload: LeaveDraftIn, user: User) -> LeaveDraft:
    return LeaveDraft(
        user_id=user.id,
        leave_type=payload.leave_type,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
    )


@router.post("/validate", response_model=ValidationOut)
async def validate_leave_endpoint(
    payload: LeaveDraftIn,
    db: Session = Depends(get_db),
    policy: LeavePolicy = Depends(get_leave_policy),
    current_user: User = Depends(get_current_user),
):
    """Dry run: report every rule the request would break, without saving it"""
    result = leave_service.validate_leave(db, policy, _draft(payload, current_user))
    return ValidationOut.from_result(result)


@router.post("", response_model=LeaveOut, status_code=201)
async def submit_leave_endpoint(
    payload: LeaveDraftIn,
    db: Session = Depends(get_db),
    policy: LeavePolicy = Depends(get_leave_policy),
    current_user: User = Depends(get_current_user),
):
    """Submit a leave request; stored as pending only when admissible"""
    return leave_service.submit_leave(db, policy, _draft(payload, current_user))


@router.post("/drafts", response_model=LeaveOut, status_code=201)
async def create_draft_endpoint(
    payload: LeaveDraftIn,
    db: Session = Depends(get_db),
    policy: LeavePolicy = Depends(get_leave_policy),
    current_user: User = Depends(get_current_user),
):
    """Save a leave request as a draft"""
    return leave_service.create_draft(db, policy, _draft(payload, current_user))


@router.put("/drafts/{leave_request_id}", response_model=DraftUpdateOut)
async def update_draft_endpoint(
    leave_request_id: int,
    payload: LeaveDraftUpdate,
    db: Session = Depends(get_db),
    policy: LeavePolicy = Depends(get_leave_policy),
    current_user: User = Depends(get_current_user),
):
    """Edit a draft and return it with its fresh validation verdict"""
    leave, result = leave_service.update_draft(
        db,
        policy,
        leave_request_id,
        current_user.id,
        leave_type=payload.leave_type,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
    )
    return DraftUpdateOut(leave=LeaveOut.model_validate(leave), validation=ValidationOut.from_result(result))


@router.get("/my", response_model=List[LeaveOut])
async def list_my_leaves_endpoint(
    status_filter: Optional[LeaveStatus] = Query(None, alias="status", description="Filter by status"),
    period: Optional[str] = Query(None, description='Semi-annual period, e.g. "2025-H1"'),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List the current user's leave requests"""
    return leave_service.list_leaves(
        db,
        user_id=current_user.id,
        status_filter=status_filter,
        period=resolve_period(period) if period else None,
    )


@router.get("/balance/me", response_model=BalanceOut)
async def balance_me(
    period: Optional[str] = Query(None, description='Semi-annual period, e.g. "2025-H1"; current when omitted'),
    db: Session = Depends(get_db),
    policy: LeavePolicy = Depends(get_leave_policy),
    current_user: User = Depends(get_current_user),
):
    """Vacation and weekend-leave usage of the current user for a period"""
    balance = leave_service.get_balance(db, policy, current_user.id, resolve_period(period))
    return BalanceOut.from_balance(balance, policy)


@router.get("/{leave_request_id}", response_model=LeaveOut)
async def get_leave_endpoint(
    leave_request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get a leave request (own requests only, unless reviewer)"""
    return leave_service.get_leave(db, leave_request_id, viewer=current_user)


@router.post("/{leave_request_id}/submit", response_model=LeaveOut)
async def submit_draft_endpoint(
    leave_request_id: int,
    db: Session = Depends(get_db),
    policy: LeavePolicy = Depends(get_leave_policy),
    current_user: User = Depends(get_current_user),
):
    """Submit a stored draft"""
    return leave_service.submit_draft(db, policy, leave_request_id, current_user.id)


@router.post("/{leave_request_id}/cancel", response_model=DecisionOut)
async def cancel_leave_endpoint(
    leave_request_id: int,
    payload: Optional[DecisionRequest] = Body(None),
    db: Session = Depends(get_db),
    policy: LeavePolicy = Depends(get_leave_policy),
    current_user: User = Depends(get_current_user),
):
    """Cancel a pending or approved leave request; approved ones get their balance back"""
    outcome = leave_service.cancel_leave(
        db, policy, leave_request_id, current_user, notes=payload.notes if payload else None
    )
    return DecisionOut(status=outcome.status, leave=LeaveOut.model_validate(outcome.leave_request))
