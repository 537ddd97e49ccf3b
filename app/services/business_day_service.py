"""
Business-day calendar: working week and company-holiday exclusion.
"""
import logging
from datetime import date
from typing import Iterable, List

from sqlalchemy.orm import Session

from app.core.exceptions import InvalidRangeError
from app.core.leave_policy import LeavePolicy
from app.models.holiday import CompanyHoliday, HolidayRecurrence
from app.utils.datetime_utils import iter_days

logger = logging.getLogger(__name__)


def holiday_matches(day: date, holiday: CompanyHoliday) -> bool:
    """
    True if `holiday` falls on `day`.

    A recurring holiday only applies from its base date onwards:
    - none: exact date
    - annual: same month and day
    - monthly: same day of month
    - weekly: same weekday
    """
    base = holiday.date
    recurrence = HolidayRecurrence(holiday.recurrence or HolidayRecurrence.NONE)

    if recurrence == HolidayRecurrence.NONE:
        return day == base
    if day < base:
        return False
    if recurrence == HolidayRecurrence.ANNUAL:
        return (day.month, day.day) == (base.month, base.day)
    if recurrence == HolidayRecurrence.MONTHLY:
        return day.day == base.day
    if recurrence == HolidayRecurrence.WEEKLY:
        return day.weekday() == base.weekday()
    raise ValueError(f"Unhandled holiday recurrence: {recurrence}")


class BusinessDayCalculator:
    """Working-week calendar built from a policy and a list of company holidays."""

    def __init__(self, policy: LeavePolicy, holidays: Iterable[CompanyHoliday] = ()):
        self.policy = policy
        self.holidays: List[CompanyHoliday] = [h for h in holidays if h.active is not False]

    @classmethod
    def from_db(cls, db: Session, policy: LeavePolicy) -> "BusinessDayCalculator":
        """Load active company holidays from the calendar table."""
        holidays = db.query(CompanyHoliday).filter(CompanyHoliday.active == True).all()
        return cls(policy, holidays)

    def is_holiday(self, day: date) -> bool:
        return any(holiday_matches(day, h) for h in self.holidays)

    def is_working_day(self, day: date) -> bool:
        if day.weekday() not in self.policy.working_weekdays:
            return False
        return not self.is_holiday(day)

    def is_weekend_working_day(self, day: date) -> bool:
        """Thursday or Sunday under the default policy: the edges of the working week."""
        return day.weekday() in self.policy.weekend_working_weekdays

    def working_days(self, start: date, end: date) -> List[date]:
        if start > end:
            raise InvalidRangeError(
                f"start_date {start} is after end_date {end}",
                {"start_date": start.isoformat(), "end_date": end.isoformat()},
            )
        return [d for d in iter_days(start, end) if self.is_working_day(d)]

    def count_business_days(self, start: date, end: date) -> int:
        """Inclusive count of working days; raises InvalidRangeError when start > end."""
        return len(self.working_days(start, end))

    def touches_weekend_working_day(self, start: date, end: date) -> bool:
        """
        True if a Thursday/Sunday (by policy) falls inside the range. Decided by
        weekday alone, so a holiday on one of those days still counts.
        """
        if start > end:
            raise InvalidRangeError(
                f"start_date {start} is after end_date {end}",
                {"start_date": start.isoformat(), "end_date": end.isoformat()},
            )
        return any(self.is_weekend_working_day(d) for d in iter_days(start, end))
