"""
Notifications emitted on leave transitions.

Services hand finished transitions to a ``Notifier``. The default
``DatabaseNotifier`` stores in-app notification rows; delivery over email or
websockets belongs to other services. Notifications are sent only after the
transition has committed, and a failing notifier never undoes or fails the
transition.
"""
import logging
from typing import Any, Dict, List, Protocol, Tuple

from sqlalchemy.orm import Session

from leave_approval.core.constants import (
    NOTIFY_LEAVE_APPROVAL_REQUIRED,
    NOTIFY_LEAVE_PARTIALLY_APPROVED,
    NOTIFY_LEAVE_APPROVED,
    NOTIFY_LEAVE_REJECTED,
)
from leave_approval.models.leave import LeaveRequest
from leave_approval.models.notification import Notification
from leave_approval.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

# (recipient user id, kind, payload)
PendingNotification = Tuple[int, str, Dict[str, Any]]


class Notifier(Protocol):
    def notify(self, user_id: int, kind: str, payload: Dict[str, Any]) -> None:
        ...


class DatabaseNotifier:
    """Persists each notification as a row in the notifications table"""

    def __init__(self, db: Session):
        self.db = db

    def notify(self, user_id: int, kind: str, payload: Dict[str, Any]) -> None:
        notification = Notification(
            user_id=user_id,
            kind=kind,
            title=payload["title"],
            message=payload["message"],
            related_id=payload.get("leave_request_id"),
            related_type="leave_request",
            is_read=False,
            created_at=now_utc(),
        )
        self.db.add(notification)
        self.db.commit()


def dispatch(db: Session, notifier: Notifier, notifications: List[PendingNotification]) -> None:
    """
    Send notifications for an already committed transition.

    Errors are logged and swallowed; whatever the notifier left pending in the
    session is rolled back so the next unit of work starts clean.
    """
    for user_id, kind, payload in notifications:
        try:
            notifier.notify(user_id, kind, payload)
        except Exception:
            logger.exception(
                "notification failed: user_id=%s kind=%s leave_request_id=%s",
                user_id, kind, payload.get("leave_request_id"),
            )
            db.rollback()


def _leave_type_label(leave_request: LeaveRequest) -> str:
    value = getattr(leave_request.leave_type, "value", leave_request.leave_type)
    return value.replace("_", " ")


def approval_required(leave_request: LeaveRequest, approver_id: int, submitter_name: str) -> PendingNotification:
    level = leave_request.current_approval_level + 1
    return (
        approver_id,
        NOTIFY_LEAVE_APPROVAL_REQUIRED,
        {
            "leave_request_id": leave_request.id,
            "title": "Leave Request - Approval Required",
            "message": (
                f"{submitter_name} has requested {leave_request.days_count} day(s) of "
                f"{_leave_type_label(leave_request)} and requires your approval "
                f"(Level {level} of {leave_request.total_approval_levels})"
            ),
            "approval_level": level,
        },
    )


def partially_approved(leave_request: LeaveRequest) -> PendingNotification:
    return (
        leave_request.user_id,
        NOTIFY_LEAVE_PARTIALLY_APPROVED,
        {
            "leave_request_id": leave_request.id,
            "title": "Leave Request Partially Approved",
            "message": (
                f"Your leave request has been approved by Level {leave_request.current_approval_level} "
                f"of {leave_request.total_approval_levels} approvers"
            ),
            "approval_level": leave_request.current_approval_level,
        },
    )


def fully_approved(leave_request: LeaveRequest) -> PendingNotification:
    return (
        leave_request.user_id,
        NOTIFY_LEAVE_APPROVED,
        {
            "leave_request_id": leave_request.id,
            "title": "Leave Request Approved",
            "message": (
                f"Your leave request for {leave_request.days_count} day(s) has been fully approved "
                f"by all approvers"
            ),
        },
    )


def rejected(leave_request: LeaveRequest) -> PendingNotification:
    return (
        leave_request.user_id,
        NOTIFY_LEAVE_REJECTED,
        {
            "leave_request_id": leave_request.id,
            "title": "Leave Request Rejected",
            "message": f"Your leave request for {leave_request.days_count} day(s) has been rejected",
            "comments": leave_request.comments,
        },
    )
