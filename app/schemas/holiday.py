"""
Holiday calendar schemas
"""
from datetime import date as date_type, datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_serializer, ConfigDict

from app.models.holiday import HolidayRecurrence
from app.utils.datetime_utils import iso_utc


class HolidayCreate(BaseModel):
    """Schema for creating a company holiday"""
    date: date_type = Field(..., description="Holiday date; first occurrence when recurring")
    name: str = Field(..., min_length=1, max_length=255, description="Holiday name")
    recurrence: HolidayRecurrence = Field(HolidayRecurrence.NONE, description="none, annual, monthly or weekly")
    active: bool = Field(True, description="Whether the holiday is active")


class HolidayOut(BaseModel):
    """Schema for holiday output"""
    id: int
    date: date_type
    name: str
    recurrence: HolidayRecurrence
    active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "updated_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_utc(dt)


class HolidayDatesOut(BaseModel):
    """Concrete holiday dates in a range, recurring holidays expanded"""
    from_date: date_type
    to_date: date_type
    dates: List[date_type]
