"""
Semi-annual allocation tracking.

H1 covers January-June and H2 July-December. Each (user, period) pair has
its own vacation-day and weekend-leave counters; nothing carries forward, so
a new period starts at zero simply because no row exists for it yet.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    BalanceUnderflowError,
    ConcurrencyConflictError,
    InsufficientBalanceError,
    WeekendLimitExceededError,
)
from app.core.leave_policy import LeavePolicy
from app.models.leave import HalfYear, LeaveRequest, LeaveStatus, SemiAnnualBalance
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SemiAnnualPeriod:
    year: int
    half: HalfYear

    @classmethod
    def for_date(cls, day: date) -> "SemiAnnualPeriod":
        return cls(day.year, HalfYear.H1 if day.month <= 6 else HalfYear.H2)

    @classmethod
    def from_label(cls, label: str) -> "SemiAnnualPeriod":
        """Parse "2025-H1" style labels."""
        try:
            year, half = label.split("-")
            return cls(int(year), HalfYear(half.upper()))
        except (ValueError, AttributeError):
            raise ValueError(f"Invalid semi-annual period: {label!r}")

    @property
    def label(self) -> str:
        return f"{self.year}-{self.half.value}"

    @property
    def start_date(self) -> date:
        return date(self.year, 1 if self.half == HalfYear.H1 else 7, 1)

    @property
    def end_date(self) -> date:
        if self.half == HalfYear.H1:
            return date(self.year, 6, 30)
        return date(self.year, 12, 31)

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def __str__(self) -> str:
        return self.label


class SemiAnnualAllocationTracker:
    """Reads and mutates SemiAnnualBalance rows against the policy caps."""

    def __init__(self, db: Session, policy: LeavePolicy):
        self.db = db
        self.policy = policy

    def current_period(self, day: date) -> SemiAnnualPeriod:
        return SemiAnnualPeriod.for_date(day)

    def _get_row(self, user_id: int, period: SemiAnnualPeriod, lock: bool = False) -> Optional[SemiAnnualBalance]:
        query = self.db.query(SemiAnnualBalance).filter(
            SemiAnnualBalance.user_id == user_id,
            SemiAnnualBalance.year == period.year,
            SemiAnnualBalance.period == period.half,
        )
        if lock:
            query = query.with_for_update()
        return query.first()

    def get_balance(self, user_id: int, period: SemiAnnualPeriod) -> SemiAnnualBalance:
        """
        Usage for the period. When nothing has been committed yet a zeroed,
        transient balance is returned; it is not added to the session.
        """
        row = self._get_row(user_id, period)
        if row is not None:
            return row
        return SemiAnnualBalance(
            user_id=user_id,
            year=period.year,
            period=period.half,
            vacation_days_used=0,
            weekend_leaves_used=0,
        )

    def can_consume_vacation(self, user_id: int, period: SemiAnnualPeriod, requested_days: int) -> bool:
        balance = self.get_balance(user_id, period)
        return balance.vacation_days_used + requested_days <= self.policy.vacation_days_per_period

    def can_consume_weekend_leave(self, user_id: int, period: SemiAnnualPeriod) -> bool:
        balance = self.get_balance(user_id, period)
        return balance.weekend_leaves_used < self.policy.weekend_leaves_per_period

    def commit(
        self,
        user_id: int,
        period: SemiAnnualPeriod,
        vacation_days_delta: int,
        weekend_delta: int,
    ) -> SemiAnnualBalance:
        """
        Add deltas to the user's counters for the period (negative for reversals).

        The balance row is locked for the rest of the caller's transaction and
        created on first use. Nothing is committed here; the caller owns the
        transaction.

        Raises:
            BalanceUnderflowError: a counter would drop below zero
            InsufficientBalanceError: vacation usage would pass the period cap
            WeekendLimitExceededError: weekend usage would pass the period cap
            ConcurrencyConflictError: another transaction created the row first
        """
        row = self._get_row(user_id, period, lock=True)
        if row is None:
            row = SemiAnnualBalance(
                user_id=user_id,
                year=period.year,
                period=period.half,
                vacation_days_used=0,
                weekend_leaves_used=0,
            )
            self.db.add(row)
            try:
                self.db.flush()
            except IntegrityError as exc:
                raise ConcurrencyConflictError(
                    f"Balance for user {user_id} in {period.label} was created concurrently"
                ) from exc

        new_vacation = row.vacation_days_used + vacation_days_delta
        new_weekend = row.weekend_leaves_used + weekend_delta
        details = {
            "user_id": user_id,
            "period": period.label,
            "vacation_days_used": row.vacation_days_used,
            "weekend_leaves_used": row.weekend_leaves_used,
            "vacation_days_delta": vacation_days_delta,
            "weekend_delta": weekend_delta,
        }

        if new_vacation < 0 or new_weekend < 0:
            raise BalanceUnderflowError(
                f"Balance for user {user_id} in {period.label} would become negative", details
            )
        if vacation_days_delta > 0 and new_vacation > self.policy.vacation_days_per_period:
            raise InsufficientBalanceError(
                f"Vacation cap of {self.policy.vacation_days_per_period} days exceeded for {period.label}", details
            )
        if weekend_delta > 0 and new_weekend > self.policy.weekend_leaves_per_period:
            raise WeekendLimitExceededError(
                f"Weekend leave cap of {self.policy.weekend_leaves_per_period} exceeded for {period.label}", details
            )

        row.vacation_days_used = new_vacation
        row.weekend_leaves_used = new_weekend
        row.updated_at = now_utc()
        logger.info(
            "balance commit: user_id=%s period=%s vacation_delta=%s weekend_delta=%s vacation_used=%s weekend_used=%s",
            user_id, period.label, vacation_days_delta, weekend_delta, new_vacation, new_weekend,
        )
        return row

    def force_reset(self, period: SemiAnnualPeriod, user_id: Optional[int] = None) -> int:
        """
        Zero the counters of a period early (one user or everyone). Returns rows touched.

        Approved requests of the period forget their committed deltas as well,
        so cancelling them later has nothing left to reverse.
        """
        query = self.db.query(SemiAnnualBalance).filter(
            SemiAnnualBalance.year == period.year,
            SemiAnnualBalance.period == period.half,
        )
        if user_id is not None:
            query = query.filter(SemiAnnualBalance.user_id == user_id)

        rows = query.with_for_update().all()
        now = now_utc()
        for row in rows:
            row.vacation_days_used = 0
            row.weekend_leaves_used = 0
            row.updated_at = now

        committed = self.db.query(LeaveRequest).filter(
            LeaveRequest.status == LeaveStatus.APPROVED,
            LeaveRequest.committed_period == period.label,
        )
        if user_id is not None:
            committed = committed.filter(LeaveRequest.user_id == user_id)
        cleared = 0
        for leave in committed.with_for_update().all():
            leave.committed_vacation_days = 0
            leave.committed_weekend_leaves = 0
            leave.updated_at = now
            cleared += 1

        logger.warning(
            "semi-annual balance reset: period=%s user_id=%s rows=%s committed_requests_cleared=%s",
            period.label, user_id if user_id is not None else "ALL", len(rows), cleared,
        )
        return len(rows)

    def list_balances(self, period: SemiAnnualPeriod) -> List[SemiAnnualBalance]:
        return (
            self.db.query(SemiAnnualBalance)
            .filter(
                SemiAnnualBalance.year == period.year,
                SemiAnnualBalance.period == period.half,
            )
            .order_by(SemiAnnualBalance.user_id)
            .all()
        )
