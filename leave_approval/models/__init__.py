"""
Database models
"""
from leave_approval.models.user import User, Role
from leave_approval.models.audit_log import AuditLog
from leave_approval.models.notification import Notification
from leave_approval.models.leave import (
    LeaveRequest,
    LeaveApproval,
    LeaveBalance,
    LeaveTransaction,
    LeaveType,
    LeaveStatus,
    HalfDaySession,
    ApprovalStatus,
    LeaveTransactionAction,
    BALANCE_BUCKETS,
)

__all__ = [
    "User",
    "Role",
    "AuditLog",
    "Notification",
    "LeaveRequest",
    "LeaveApproval",
    "LeaveBalance",
    "LeaveTransaction",
    "LeaveType",
    "LeaveStatus",
    "HalfDaySession",
    "ApprovalStatus",
    "LeaveTransactionAction",
    "BALANCE_BUCKETS",
]
