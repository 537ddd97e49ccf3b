"""
Holiday calendar service - business logic for company holiday management
"""
from datetime import date, datetime, timezone
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.models.holiday import CompanyHoliday, HolidayRecurrence
from app.services.audit_service import log_audit
from app.services.business_day_service import holiday_matches
from app.utils.datetime_utils import iter_days


def create_holiday(
    db: Session,
    holiday_date: date,
    name: str,
    recurrence: HolidayRecurrence = HolidayRecurrence.NONE,
    active: bool = True,
    actor_id: int = None
) -> CompanyHoliday:
    """
    Create a new company holiday

    Args:
        db: Database session
        holiday_date: Holiday date (first occurrence for recurring holidays)
        name: Holiday name
        recurrence: none, annual, monthly or weekly
        active: Whether holiday is active
        actor_id: ID of user creating the holiday

    Returns:
        Created CompanyHoliday instance

    Raises:
        HTTPException: If an active holiday with the same date and recurrence exists
    """
    existing = db.query(CompanyHoliday).filter(
        CompanyHoliday.date == holiday_date,
        CompanyHoliday.recurrence == recurrence,
        CompanyHoliday.active == True
    ).first()

    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Holiday already exists for date {holiday_date} ({recurrence.value})"
        )

    # Explicitly set created_at/updated_at to avoid SQLite issues with server_default
    now = datetime.now(timezone.utc)
    holiday = CompanyHoliday(
        date=holiday_date,
        name=name,
        recurrence=recurrence,
        active=active,
        created_by_id=actor_id,
        created_at=now,
        updated_at=now
    )

    db.add(holiday)
    db.commit()
    db.refresh(holiday)

    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="HOLIDAY_CREATE",
            entity_type="company_holidays",
            entity_id=holiday.id,
            meta={
                "date": str(holiday_date),
                "name": name,
                "recurrence": recurrence.value
            }
        )

    return holiday


def list_holidays(
    db: Session,
    active_only: bool = False,
    recurrence: Optional[HolidayRecurrence] = None
) -> List[CompanyHoliday]:
    """
    List company holidays

    Args:
        db: Database session
        active_only: If True, return only active holidays
        recurrence: Optional recurrence filter

    Returns:
        List of CompanyHoliday instances
    """
    query = db.query(CompanyHoliday)

    if active_only:
        query = query.filter(CompanyHoliday.active == True)

    if recurrence is not None:
        query = query.filter(CompanyHoliday.recurrence == recurrence)

    return query.order_by(CompanyHoliday.date).all()


def get_holiday(db: Session, holiday_id: int) -> Optional[CompanyHoliday]:
    """Get a holiday by ID"""
    return db.query(CompanyHoliday).filter(CompanyHoliday.id == holiday_id).first()


def delete_holiday(db: Session, holiday_id: int, actor_id: int = None) -> CompanyHoliday:
    """
    Deactivate a holiday. The row is kept so past business-day counts can be explained.

    Raises:
        HTTPException: If holiday not found
    """
    holiday = get_holiday(db, holiday_id)
    if not holiday:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Holiday with id {holiday_id} not found"
        )

    holiday.active = False
    # Explicitly update updated_at for SQLite compatibility
    holiday.updated_at = datetime.now(timezone.utc)

    db.commit()
    db.refresh(holiday)

    if actor_id:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="HOLIDAY_DELETE",
            entity_type="company_holidays",
            entity_id=holiday.id,
            meta={"date": str(holiday.date), "name": holiday.name}
        )

    return holiday


def get_holidays_in_range(
    db: Session,
    from_date: date,
    to_date: date
) -> List[date]:
    """
    Dates within the range on which an active holiday (recurring or not) falls

    Args:
        db: Database session
        from_date: Start date (inclusive)
        to_date: End date (inclusive)

    Returns:
        Sorted list of holiday dates
    """
    holidays = list_holidays(db, active_only=True)
    return [
        day for day in iter_days(from_date, to_date)
        if any(holiday_matches(day, h) for h in holidays)
    ]
