"""
Leave models
"""
from sqlalchemy import (
    Column,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    String,
    Text,
    Enum as SQLEnum,
    Boolean,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import text
import enum
from app.db.base import Base


def _values(enum_cls):
    return [member.value for member in enum_cls]


class LeaveType(str, enum.Enum):
    VACATION = "vacation"
    SICK = "sick"
    MATERNITY = "maternity"
    OTHER = "other"


class LeaveStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class LeaveCategory(str, enum.Enum):
    REGULAR = "regular"
    MEDICAL = "medical"
    FAMILY = "family"
    EXTENDED = "extended"


class ApprovalTier(str, enum.Enum):
    ADMIN = "admin"
    MANAGEMENT = "management"


class ApprovalAction(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"


class HalfYear(str, enum.Enum):
    H1 = "H1"  # January - June
    H2 = "H2"  # July - December


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=True, index=True)
    leave_type = Column(SQLEnum(LeaveType, values_callable=_values), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(Text, nullable=True)
    status = Column(
        SQLEnum(LeaveStatus, values_callable=_values),
        nullable=False,
        default=LeaveStatus.DRAFT,
        server_default=text("'draft'"),
    )
    # Filled in by validation; a draft that never passed validation has no category yet
    category = Column(SQLEnum(LeaveCategory, values_callable=_values), nullable=True)
    approval_tier = Column(SQLEnum(ApprovalTier, values_callable=_values), nullable=True)
    requires_management_approval = Column(Boolean, nullable=False, default=False)
    semi_annual_period = Column(String(7), nullable=False)  # e.g. "2025-H1"
    business_days = Column(Integer, nullable=False, default=0)
    is_weekend_leave = Column(Boolean, nullable=False, default=False)
    admin_notes = Column(Text, nullable=True)
    reviewed_by_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    # Exact deltas written to semi_annual_balances on approval; reversed on cancellation
    committed_period = Column(String(7), nullable=True)
    committed_vacation_days = Column(Integer, nullable=False, default=0)
    committed_weekend_leaves = Column(Integer, nullable=False, default=0)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    # Relationships
    user = relationship("User", foreign_keys=[user_id], back_populates="leave_requests")
    reviewed_by = relationship("User", foreign_keys=[reviewed_by_id])
    cancelled_by = relationship("User", foreign_keys=[cancelled_by_id])
    approvals = relationship("LeaveApproval", back_populates="leave_request", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_leave_requests_user_dates", "user_id", "start_date", "end_date"),
        Index("ix_leave_requests_team_status_dates", "team_id", "status", "start_date", "end_date"),
        CheckConstraint("start_date <= end_date", name="check_start_date_le_end_date"),
    )


class LeaveApproval(Base):
    """Decision history for a leave request."""
    __tablename__ = "leave_approvals"

    id = Column(Integer, primary_key=True, index=True)
    leave_request_id = Column(Integer, ForeignKey("leave_requests.id"), nullable=False, index=True)
    action_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    action = Column(SQLEnum(ApprovalAction, values_callable=_values), nullable=False)
    notes = Column(Text, nullable=True)
    action_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    leave_request = relationship("LeaveRequest", back_populates="approvals")
    actor = relationship("User", foreign_keys=[action_by])


class SemiAnnualBalance(Base):
    """
    Vacation and weekend-leave usage for one user in one half-year.

    Rows are created lazily on the first approval in a period; a missing row
    means nothing has been used. Counters never carry into the next period.
    """
    __tablename__ = "semi_annual_balances"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    year = Column(Integer, nullable=False, index=True)
    period = Column(SQLEnum(HalfYear, values_callable=_values), nullable=False)
    vacation_days_used = Column(Integer, nullable=False, default=0)
    weekend_leaves_used = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    user = relationship("User", backref="semi_annual_balances")

    __table_args__ = (
        UniqueConstraint("user_id", "year", "period", name="uq_semi_annual_balances_user_year_period"),
        CheckConstraint("vacation_days_used >= 0", name="check_vacation_days_used_non_negative"),
        CheckConstraint("weekend_leaves_used >= 0", name="check_weekend_leaves_used_non_negative"),
    )

    @property
    def period_label(self) -> str:
        return f"{self.year}-{HalfYear(self.period).value}"
