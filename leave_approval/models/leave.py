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
    Numeric,
    Enum as SQLEnum,
    Boolean,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import text
import enum
from leave_approval.db.base import Base


class LeaveType(str, enum.Enum):
    SICK = "sick_leave"
    CASUAL = "casual_leave"
    EARNED = "earned_leave"
    COMP_OFF = "comp_off"
    PATERNITY_MATERNITY = "paternity_maternity"


class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class HalfDaySession(str, enum.Enum):
    FIRST_HALF = "first_half"
    SECOND_HALF = "second_half"


class ApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LeaveTransactionAction(str, enum.Enum):
    APPROVE_DEDUCT = "APPROVE_DEDUCT"


# Balance column holding each leave type's entitlement
BALANCE_BUCKETS = {
    LeaveType.SICK: "sick_leave",
    LeaveType.CASUAL: "casual_leave",
    LeaveType.EARNED: "earned_leave",
    LeaveType.COMP_OFF: "comp_off",
    LeaveType.PATERNITY_MATERNITY: "paternity_maternity",
}


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    leave_type = Column(SQLEnum(LeaveType, values_callable=_enum_values), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_half_day = Column(Boolean, nullable=False, default=False)
    half_day_session = Column(SQLEnum(HalfDaySession, values_callable=_enum_values), nullable=True)
    days_count = Column(Numeric(4, 1), nullable=False)  # 0.5 granularity
    reason = Column(Text, nullable=True)
    status = Column(
        SQLEnum(LeaveStatus, values_callable=_enum_values),
        nullable=False,
        default=LeaveStatus.PENDING,
        server_default=text("'pending'"),
    )
    current_approval_level = Column(Integer, nullable=False, default=0)
    total_approval_levels = Column(Integer, nullable=False, default=0)
    # Last deciding approver and their comments
    approver_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    comments = Column(Text, nullable=True)
    decided_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    # Relationships
    user = relationship("User", foreign_keys=[user_id], back_populates="leave_requests")
    approver = relationship("User", foreign_keys=[approver_id])
    approvals = relationship(
        "LeaveApproval",
        back_populates="leave_request",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="LeaveApproval.approval_order",
    )

    # Concurrent writers on the same request conflict on flush
    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_leave_requests_user_dates", "user_id", "start_date", "end_date"),
        CheckConstraint("start_date <= end_date", name="check_start_date_le_end_date"),
        CheckConstraint("days_count > 0", name="check_days_count_positive"),
        CheckConstraint(
            "current_approval_level >= 0 AND current_approval_level <= total_approval_levels",
            name="check_approval_level_in_range",
        ),
    )

    @property
    def year(self) -> int:
        return self.start_date.year

    @property
    def current_approval(self):
        """The approval row whose turn it is, or None once the chain is exhausted"""
        for approval in self.approvals:
            if approval.approval_order == self.current_approval_level + 1:
                return approval
        return None


class LeaveApproval(Base):
    __tablename__ = "leave_approvals"

    id = Column(Integer, primary_key=True, index=True)
    leave_request_id = Column(
        Integer, ForeignKey("leave_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    approver_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    approval_order = Column(Integer, nullable=False)  # 1-based position in the chain
    status = Column(
        SQLEnum(ApprovalStatus, values_callable=_enum_values),
        nullable=False,
        default=ApprovalStatus.PENDING,
        server_default=text("'pending'"),
    )
    comments = Column(Text, nullable=True)
    decided_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    # Relationships
    leave_request = relationship("LeaveRequest", back_populates="approvals")
    approver = relationship("User", foreign_keys=[approver_id])

    __table_args__ = (
        UniqueConstraint("leave_request_id", "approval_order", name="uq_leave_approvals_request_order"),
        UniqueConstraint("leave_request_id", "approver_id", name="uq_leave_approvals_request_approver"),
        CheckConstraint("approval_order >= 1", name="check_approval_order_positive"),
    )


class LeaveBalance(Base):
    """
    Leave ledger: one row per (user_id, year), one column per bucket.
    Buckets never go negative; debits happen only at final approval.
    """
    __tablename__ = "leave_balances"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    year = Column(Integer, nullable=False, index=True)
    sick_leave = Column(Numeric(4, 1), nullable=False, default=0)
    casual_leave = Column(Numeric(4, 1), nullable=False, default=0)
    earned_leave = Column(Numeric(4, 1), nullable=False, default=0)
    comp_off = Column(Numeric(4, 1), nullable=False, default=0)
    paternity_maternity = Column(Numeric(4, 1), nullable=False, default=0)
    birthday_leave = Column(Numeric(4, 1), nullable=False, default=0)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    # Relationships
    user = relationship("User", backref="leave_balances")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("user_id", "year", name="uq_leave_balances_user_year"),
        CheckConstraint(
            "sick_leave >= 0 AND casual_leave >= 0 AND earned_leave >= 0 AND comp_off >= 0 "
            "AND paternity_maternity >= 0 AND birthday_leave >= 0",
            name="check_leave_balances_non_negative",
        ),
    )


class LeaveTransaction(Base):
    """Audit trail for the ledger: one row per debit."""
    __tablename__ = "leave_transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    leave_request_id = Column(Integer, ForeignKey("leave_requests.id", ondelete="SET NULL"), nullable=True, index=True)
    year = Column(Integer, nullable=False, index=True)
    leave_type = Column(SQLEnum(LeaveType, values_callable=_enum_values), nullable=False)
    delta_days = Column(Numeric(4, 1), nullable=False)  # negative for a debit
    action = Column(String(30), nullable=False)
    remarks = Column(Text, nullable=True)
    action_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action_at = Column(DateTime(timezone=True), nullable=False)

    user = relationship("User", foreign_keys=[user_id])
    leave_request = relationship("LeaveRequest", foreign_keys=[leave_request_id])
