"""
Company holiday endpoints (changes are Admin-only)
"""
from datetime import date
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from app.core.deps import get_db, require_roles, get_current_user
from app.models.user import Role, User
from app.schemas.holiday import HolidayCreate, HolidayOut, HolidayDatesOut
from app.services.holiday_service import (
    create_holiday,
    list_holidays,
    delete_holiday,
    get_holidays_in_range
)

router = APIRouter()


@router.post("", response_model=HolidayOut, status_code=201)
async def create_holiday_endpoint(
    holiday_data: HolidayCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.ADMIN))
):
    """Create a new holiday (Admin-only)"""
    return create_holiday(
        db=db,
        holiday_date=holiday_data.date,
        name=holiday_data.name,
        recurrence=holiday_data.recurrence,
        active=holiday_data.active,
        actor_id=current_user.id
    )


@router.get("", response_model=List[HolidayOut])
async def list_holidays_endpoint(
    active_only: bool = Query(False, description="Return only active holidays"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List holidays"""
    return list_holidays(db, active_only=active_only)


@router.get("/dates", response_model=HolidayDatesOut)
async def holiday_dates_endpoint(
    from_date: date = Query(..., description="Start date (inclusive)"),
    to_date: date = Query(..., description="End date (inclusive)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Concrete holiday dates in a range, with recurring holidays expanded"""
    if from_date > to_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="from_date must be on or before to_date"
        )
    return HolidayDatesOut(
        from_date=from_date,
        to_date=to_date,
        dates=get_holidays_in_range(db, from_date, to_date)
    )


@router.delete("/{holiday_id}", response_model=HolidayOut)
async def delete_holiday_endpoint(
    holiday_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(Role.ADMIN))
):
    """Deactivate a holiday (Admin-only)"""
    return delete_holiday(db, holiday_id, actor_id=current_user.id)
