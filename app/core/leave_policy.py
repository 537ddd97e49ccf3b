"""
Leave policy passed into every engine component at construction time
"""
from decimal import Decimal
from typing import FrozenSet

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.core.config import Settings, settings as app_settings

SUNDAY = 6
THURSDAY = 3


class LeavePolicy(BaseModel):
    """Caps, working-week definition and capacity ratio for one engine instance."""

    vacation_days_per_period: int = Field(12, ge=0)
    weekend_leaves_per_period: int = Field(2, ge=0)
    max_consecutive_days: int = Field(5, ge=1)
    extended_threshold_days: int = Field(3, ge=0)
    maternity_max_days: int = Field(90, ge=1)
    team_capacity_ratio: Decimal = Field(Decimal("0.49"), gt=0, le=1)
    working_weekdays: FrozenSet[int] = frozenset({6, 0, 1, 2, 3})
    weekend_working_weekdays: FrozenSet[int] = frozenset({THURSDAY, SUNDAY})
    sick_annual_days: int = Field(10, ge=0)
    other_annual_days: int = Field(5, ge=0)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def check_weekend_days_are_working_days(self) -> "LeavePolicy":
        if not self.weekend_working_weekdays <= self.working_weekdays:
            raise ValueError("weekend_working_weekdays must be a subset of working_weekdays")
        return self

    @classmethod
    def from_settings(cls, settings: Settings) -> "LeavePolicy":
        return cls(
            vacation_days_per_period=settings.LEAVE_VACATION_DAYS_PER_PERIOD,
            weekend_leaves_per_period=settings.LEAVE_WEEKEND_LEAVES_PER_PERIOD,
            max_consecutive_days=settings.LEAVE_MAX_CONSECUTIVE_DAYS,
            extended_threshold_days=settings.LEAVE_EXTENDED_THRESHOLD_DAYS,
            maternity_max_days=settings.LEAVE_MATERNITY_MAX_DAYS,
            team_capacity_ratio=Decimal(str(settings.LEAVE_TEAM_CAPACITY_RATIO)),
            working_weekdays=settings.get_weekday_set(settings.LEAVE_WORKING_WEEKDAYS),
            weekend_working_weekdays=settings.get_weekday_set(settings.LEAVE_WEEKEND_WORKING_WEEKDAYS),
            sick_annual_days=settings.LEAVE_SICK_ANNUAL_DAYS,
            other_annual_days=settings.LEAVE_OTHER_ANNUAL_DAYS,
        )


def get_leave_policy() -> LeavePolicy:
    """FastAPI dependency; override in tests to vary policy."""
    return LeavePolicy.from_settings(app_settings)
