"""
Leave rule errors.

Every failure of the leave engine is one of these. They carry a stable
violation code and are turned into JSON by app.core.errors, so callers
never see a raw traceback for a rule violation.
"""
import enum
from datetime import date
from typing import Any, Dict, Iterable, List, Optional


class ViolationCode(str, enum.Enum):
    INVALID_RANGE = "INVALID_RANGE"
    MAX_DURATION_EXCEEDED = "MAX_DURATION_EXCEEDED"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    WEEKEND_LIMIT_EXCEEDED = "WEEKEND_LIMIT_EXCEEDED"
    TEAM_CAPACITY_EXCEEDED = "TEAM_CAPACITY_EXCEEDED"
    OVERLAPPING_REQUEST = "OVERLAPPING_REQUEST"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    BALANCE_UNDERFLOW = "BALANCE_UNDERFLOW"
    CONCURRENCY_CONFLICT = "CONCURRENCY_CONFLICT"
    APPROVAL_AUTHORITY_REQUIRED = "APPROVAL_AUTHORITY_REQUIRED"
    VALIDATION_FAILED = "VALIDATION_FAILED"


class LeaveRuleError(Exception):
    code: ViolationCode = ViolationCode.VALIDATION_FAILED
    status_code: int = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = {"code": self.code.value, "message": self.message}
        if self.details:
            data["details"] = self.details
        return data


class InvalidRangeError(LeaveRuleError):
    code = ViolationCode.INVALID_RANGE


class MaxDurationExceededError(LeaveRuleError):
    code = ViolationCode.MAX_DURATION_EXCEEDED


class InsufficientBalanceError(LeaveRuleError):
    code = ViolationCode.INSUFFICIENT_BALANCE


class WeekendLimitExceededError(LeaveRuleError):
    code = ViolationCode.WEEKEND_LIMIT_EXCEEDED


class OverlappingLeaveError(LeaveRuleError):
    code = ViolationCode.OVERLAPPING_REQUEST
    status_code = 409


class _DateConflictError(LeaveRuleError):
    """Error that names the days on which team capacity would be exceeded."""

    status_code = 409

    def __init__(self, message: str, conflict_dates: Iterable[date] = (), details: Optional[Dict[str, Any]] = None):
        self.conflict_dates: List[date] = sorted(conflict_dates)
        details = dict(details or {})
        if self.conflict_dates:
            details["conflict_dates"] = [d.isoformat() for d in self.conflict_dates]
        super().__init__(message, details)


class TeamCapacityExceededError(_DateConflictError):
    code = ViolationCode.TEAM_CAPACITY_EXCEEDED


class ConcurrencyConflictError(_DateConflictError):
    code = ViolationCode.CONCURRENCY_CONFLICT


class InvalidTransitionError(LeaveRuleError):
    code = ViolationCode.INVALID_TRANSITION
    status_code = 409


class BalanceUnderflowError(LeaveRuleError):
    code = ViolationCode.BALANCE_UNDERFLOW
    status_code = 409


class ApprovalAuthorityError(LeaveRuleError):
    code = ViolationCode.APPROVAL_AUTHORITY_REQUIRED
    status_code = 403


class LeaveValidationError(LeaveRuleError):
    """Raised by submit when a draft is not admissible; carries every violation found."""

    code = ViolationCode.VALIDATION_FAILED
    status_code = 422

    def __init__(self, violations: List[LeaveRuleError]):
        self.violations = list(violations)
        codes = ", ".join(v.code.value for v in self.violations)
        super().__init__(f"Leave request is not admissible: {codes}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["violations"] = [v.to_dict() for v in self.violations]
        return data
