"""
Approval workflow - the only place leave decisions change balances.

Every decision runs as a single transaction: the request row is locked, the
team row is locked before capacity is re-checked, and the balance row is
locked before it is mutated. Any rule failure rolls the whole unit back.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    ApprovalAuthorityError,
    ConcurrencyConflictError,
    LeaveRuleError,
)
from app.core.leave_policy import LeavePolicy
from app.models.leave import (
    ApprovalAction,
    ApprovalTier,
    LeaveApproval,
    LeaveRequest,
    LeaveStatus,
    LeaveType,
)
from app.models.user import User, Role
from app.services.allocation_service import SemiAnnualAllocationTracker, SemiAnnualPeriod
from app.services.audit_service import log_audit
from app.services.leave_validator import ensure_transition
from app.services.team_capacity_service import TeamCapacityChecker
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

# Postgres serialization_failure / deadlock_detected
SERIALIZATION_FAILURE_CODES = frozenset({"40001", "40P01"})


def is_serialization_failure(exc: OperationalError) -> bool:
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode in SERIALIZATION_FAILURE_CODES:
        return True
    return "database is locked" in str(exc.orig)


@dataclass
class DecisionOutcome:
    status: LeaveStatus
    leave_request: LeaveRequest
    conflict_dates: List[date] = field(default_factory=list)


class ApprovalWorkflow:
    def __init__(
        self,
        db: Session,
        policy: LeavePolicy,
        tracker: Optional[SemiAnnualAllocationTracker] = None,
        capacity: Optional[TeamCapacityChecker] = None,
    ):
        self.db = db
        self.policy = policy
        self.tracker = tracker or SemiAnnualAllocationTracker(db, policy)
        self.capacity = capacity or TeamCapacityChecker(db, policy)

    def _lock_request(self, request_id: int) -> LeaveRequest:
        leave = (
            self.db.query(LeaveRequest)
            .filter(LeaveRequest.id == request_id)
            .with_for_update()
            .first()
        )
        if not leave:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Leave request with id {request_id} not found"
            )
        return leave

    def _current_team_id(self, user_id: int) -> Optional[int]:
        row = self.db.query(User.team_id).filter(User.id == user_id).first()
        return row[0] if row else None

    def check_authority(self, leave: LeaveRequest, approver: User) -> None:
        """
        Raises ApprovalAuthorityError unless the approver may decide this request.

        Admin-tier requests can be decided by ADMIN or MANAGEMENT; extended
        (management-tier) requests by MANAGEMENT only. Nobody decides their own.
        """
        if approver.id == leave.user_id:
            raise ApprovalAuthorityError(
                "Cannot decide on your own leave request",
                {"leave_request_id": leave.id},
            )
        if approver.role not in (Role.ADMIN.value, Role.MANAGEMENT.value):
            raise ApprovalAuthorityError(
                "Only admin or management users can decide leave requests",
                {"role": approver.role},
            )
        if leave.approval_tier == ApprovalTier.MANAGEMENT and approver.role != Role.MANAGEMENT.value:
            raise ApprovalAuthorityError(
                "This leave request requires management approval",
                {"leave_request_id": leave.id, "approval_tier": ApprovalTier.MANAGEMENT.value},
            )

    def _run(self, unit_of_work, request_id: int):
        """Execute a decision, rolling back on any failure."""
        try:
            return unit_of_work()
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning("leave decision conflict: leave_request_id=%s error=%s", request_id, exc.orig)
            raise ConcurrencyConflictError(
                f"Leave request {request_id} was modified concurrently; retry the decision"
            ) from exc
        except OperationalError as exc:
            self.db.rollback()
            if not is_serialization_failure(exc):
                raise
            logger.warning("leave decision serialization failure: leave_request_id=%s", request_id)
            raise ConcurrencyConflictError(
                f"Leave request {request_id} was modified concurrently; retry the decision"
            ) from exc
        except (LeaveRuleError, HTTPException):
            self.db.rollback()
            raise
        except Exception:
            self.db.rollback()
            logger.exception("leave decision failed: leave_request_id=%s", request_id)
            raise

    def approve(self, request_id: int, approver: User, notes: Optional[str] = None) -> DecisionOutcome:
        """
        Approve a pending request.

        Capacity is re-checked under the team lock; a failure leaves the
        request pending and raises ConcurrencyConflictError with the
        conflicting dates. Vacation requests commit their balance deltas,
        which are remembered on the request for exact reversal.
        """
        def unit_of_work() -> DecisionOutcome:
            leave = self._lock_request(request_id)
            before_status = LeaveStatus(leave.status).value
            ensure_transition(leave.status, LeaveStatus.APPROVED)
            self.check_authority(leave, approver)

            # Membership may have changed since submission
            team_id = self._current_team_id(leave.user_id)
            if team_id is not None:
                self.capacity.lock_team(team_id)
            capacity = self.capacity.check_capacity(
                team_id, leave.start_date, leave.end_date, excluding_request_id=leave.id
            )
            if not capacity.ok:
                raise ConcurrencyConflictError(
                    "Team capacity is no longer available for this leave request",
                    capacity.conflict_dates,
                    {"leave_request_id": leave.id, "team_id": team_id},
                )
            leave.team_id = team_id

            if leave.leave_type == LeaveType.VACATION:
                period = SemiAnnualPeriod.from_label(leave.semi_annual_period)
                weekend_delta = 1 if leave.is_weekend_leave else 0
                self.tracker.commit(leave.user_id, period, leave.business_days, weekend_delta)
                leave.committed_period = period.label
                leave.committed_vacation_days = leave.business_days
                leave.committed_weekend_leaves = weekend_delta

            now = now_utc()
            leave.status = LeaveStatus.APPROVED
            leave.reviewed_by_id = approver.id
            leave.reviewed_at = now
            leave.admin_notes = notes
            leave.updated_at = now
            self.db.add(LeaveApproval(
                leave_request_id=leave.id,
                action_by=approver.id,
                action=ApprovalAction.APPROVE,
                notes=notes,
                action_at=now,
            ))
            self.db.commit()
            self.db.refresh(leave)
            logger.info(
                "leave status transition: leave_request_id=%s before=%s after=APPROVED action=approve",
                leave.id, before_status,
            )
            return DecisionOutcome(status=LeaveStatus.APPROVED, leave_request=leave)

        outcome = self._run(unit_of_work, request_id)
        leave = outcome.leave_request
        log_audit(
            db=self.db,
            actor_id=approver.id,
            action="LEAVE_APPROVE",
            entity_type="leave_requests",
            entity_id=leave.id,
            meta={
                "user_id": leave.user_id,
                "leave_type": leave.leave_type,
                "period": leave.committed_period,
                "vacation_days": leave.committed_vacation_days,
                "weekend_leaves": leave.committed_weekend_leaves,
                "notes": notes,
            },
        )
        return outcome

    def reject(self, request_id: int, approver: User, notes: Optional[str] = None) -> DecisionOutcome:
        """Reject a pending request. Nothing was committed, so no balance changes."""
        def unit_of_work() -> DecisionOutcome:
            leave = self._lock_request(request_id)
            before_status = LeaveStatus(leave.status).value
            ensure_transition(leave.status, LeaveStatus.REJECTED)
            self.check_authority(leave, approver)

            now = now_utc()
            leave.status = LeaveStatus.REJECTED
            leave.reviewed_by_id = approver.id
            leave.reviewed_at = now
            leave.admin_notes = notes
            leave.updated_at = now
            self.db.add(LeaveApproval(
                leave_request_id=leave.id,
                action_by=approver.id,
                action=ApprovalAction.REJECT,
                notes=notes,
                action_at=now,
            ))
            self.db.commit()
            self.db.refresh(leave)
            logger.info(
                "leave status transition: leave_request_id=%s before=%s after=REJECTED action=reject",
                leave.id, before_status,
            )
            return DecisionOutcome(status=LeaveStatus.REJECTED, leave_request=leave)

        outcome = self._run(unit_of_work, request_id)
        log_audit(
            db=self.db,
            actor_id=approver.id,
            action="LEAVE_REJECT",
            entity_type="leave_requests",
            entity_id=request_id,
            meta={"notes": notes},
        )
        return outcome

    def cancel(self, request_id: int, actor: User, notes: Optional[str] = None) -> DecisionOutcome:
        """
        Cancel a pending or approved request.

        Cancelling an approved request reverses exactly the deltas committed
        at approval time.
        """
        def unit_of_work() -> DecisionOutcome:
            leave = self._lock_request(request_id)
            if leave.user_id != actor.id and not actor.is_reviewer:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="You can only cancel your own leave requests"
                )
            before_status = LeaveStatus(leave.status)
            ensure_transition(leave.status, LeaveStatus.CANCELLED)

            if before_status == LeaveStatus.APPROVED and (
                leave.committed_vacation_days or leave.committed_weekend_leaves
            ):
                self.tracker.commit(
                    leave.user_id,
                    SemiAnnualPeriod.from_label(leave.committed_period),
                    -leave.committed_vacation_days,
                    -leave.committed_weekend_leaves,
                )

            now = now_utc()
            leave.status = LeaveStatus.CANCELLED
            leave.cancelled_by_id = actor.id
            leave.cancelled_at = now
            leave.updated_at = now
            self.db.add(LeaveApproval(
                leave_request_id=leave.id,
                action_by=actor.id,
                action=ApprovalAction.CANCEL,
                notes=notes,
                action_at=now,
            ))
            self.db.commit()
            self.db.refresh(leave)
            logger.info(
                "leave status transition: leave_request_id=%s before=%s after=CANCELLED action=cancel",
                leave.id, before_status.value,
            )
            return DecisionOutcome(status=LeaveStatus.CANCELLED, leave_request=leave)

        outcome = self._run(unit_of_work, request_id)
        leave = outcome.leave_request
        log_audit(
            db=self.db,
            actor_id=actor.id,
            action="LEAVE_CANCEL",
            entity_type="leave_requests",
            entity_id=leave.id,
            meta={
                "reversed_vacation_days": leave.committed_vacation_days,
                "reversed_weekend_leaves": leave.committed_weekend_leaves,
                "notes": notes,
            },
        )
        return outcome
