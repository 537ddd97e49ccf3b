"""
Company holiday calendar model
"""
import enum
from sqlalchemy import Column, Integer, Date, DateTime, String, Boolean, Enum as SQLEnum, Index
from sqlalchemy.sql import func
from app.db.base import Base


class HolidayRecurrence(str, enum.Enum):
    NONE = "none"
    ANNUAL = "annual"
    MONTHLY = "monthly"
    WEEKLY = "weekly"


class CompanyHoliday(Base):
    """
    A holiday on `date`, optionally repeating from that date onwards.

    annual repeats on the same month/day, monthly on the same day of month,
    weekly on the same weekday.
    """
    __tablename__ = "company_holidays"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    recurrence = Column(
        SQLEnum(HolidayRecurrence, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=HolidayRecurrence.NONE,
    )
    active = Column(Boolean, default=True, nullable=False)
    created_by_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        Index("ix_company_holidays_date_recurrence", "date", "recurrence"),
    )
