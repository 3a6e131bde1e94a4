"""
Approval state machine.

A pending request advances one chain level per approval. Only the approver
owning the current level may act; the last approval debits the ledger and
flips the request to approved in the same commit. Any rejection ends the
request immediately without touching balances.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from leave_approval.core.exceptions import (
    NotFoundError,
    ForbiddenError,
    SequenceViolationError,
    InvalidStateError,
)
from leave_approval.models.leave import LeaveRequest, LeaveStatus, ApprovalStatus
from leave_approval.services import leave_balance_service as ledger
from leave_approval.services import notification_service
from leave_approval.services.audit_service import log_audit
from leave_approval.services.notification_service import Notifier, DatabaseNotifier
from leave_approval.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)


class Decision(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"


@dataclass
class DecisionOutcome:
    leave_request: LeaveRequest
    message: str
    fully_approved: bool = False


def _lock_leave_request(db: Session, leave_request_id: int) -> Optional[LeaveRequest]:
    # populate_existing makes the locked read win over stale identity-map state
    return (
        db.query(LeaveRequest)
        .filter(LeaveRequest.id == leave_request_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def decide(
    db: Session,
    leave_request_id: int,
    approver_id: int,
    decision: Decision,
    comments: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> DecisionOutcome:
    """
    Record an approver's decision on a leave request

    Args:
        db: Database session
        leave_request_id: Request being decided
        approver_id: Caller; must own the current approval level
        decision: approve or reject
        comments: Optional comments stored on the approval row and request
        notifier: Notification sink (defaults to in-app notifications)

    Returns:
        DecisionOutcome with the refreshed request and a user-facing message

    Raises:
        NotFoundError: unknown request
        InvalidStateError: request no longer pending, caller already decided,
            or a concurrent decision won the race
        ForbiddenError: caller is not in the approval chain
        SequenceViolationError: caller's level is not reached yet
        InsufficientBalanceError: final-level debit would overdraw the bucket
    """
    decision = Decision(decision)
    verb = decision.value
    notifier = notifier or DatabaseNotifier(db)

    try:
        leave_request = _lock_leave_request(db, leave_request_id)
        if not leave_request:
            raise NotFoundError("Leave request not found")

        if leave_request.status != LeaveStatus.PENDING:
            raise InvalidStateError("Leave request has already been processed")

        own_row = next((a for a in leave_request.approvals if a.approver_id == approver_id), None)
        if own_row is None:
            raise ForbiddenError(f"You are not authorized to {verb} this leave request")

        current_order = leave_request.current_approval_level + 1
        if own_row.approval_order > current_order:
            raise SequenceViolationError(f"Previous approvers must approve first before you can {verb}")
        if own_row.approval_order < current_order or own_row.status != ApprovalStatus.PENDING:
            raise InvalidStateError("This leave request has already been processed by you")

        before_status = leave_request.status.value.upper()
        decided_at = now_utc()
        own_row.comments = comments
        own_row.decided_at = decided_at
        leave_request.approver_id = approver_id
        leave_request.comments = comments
        leave_request.decided_at = decided_at

        fully_approved = False
        if decision == Decision.REJECT:
            own_row.status = ApprovalStatus.REJECTED
            leave_request.status = LeaveStatus.REJECTED
            audit_action = "LEAVE_REJECT"
            message = "Leave request rejected"
        else:
            own_row.status = ApprovalStatus.APPROVED
            leave_request.current_approval_level = current_order
            if current_order == leave_request.total_approval_levels:
                ledger.debit_balance(
                    db,
                    user_id=leave_request.user_id,
                    year=leave_request.year,
                    leave_type=leave_request.leave_type,
                    days=leave_request.days_count,
                    leave_request_id=leave_request.id,
                    action_by_id=approver_id,
                    remarks=comments,
                )
                leave_request.status = LeaveStatus.APPROVED
                audit_action = "LEAVE_APPROVE"
                message = "Leave request fully approved"
                fully_approved = True
            else:
                audit_action = "LEAVE_APPROVE_LEVEL"
                message = (
                    f"Leave request approved by Level {current_order}/{leave_request.total_approval_levels}. "
                    f"Awaiting further approvals."
                )

        log_audit(
            db=db,
            actor_id=approver_id,
            action=audit_action,
            entity_type="leave_request",
            entity_id=leave_request.id,
            meta={
                "user_id": leave_request.user_id,
                "leave_type": leave_request.leave_type,
                "days_count": leave_request.days_count,
                "approval_order": own_row.approval_order,
                "total_approval_levels": leave_request.total_approval_levels,
                "comments": comments,
            }
        )
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning(
            "leave decision lost a concurrent update: leave_request_id=%s approver_id=%s decision=%s",
            leave_request_id, approver_id, verb,
        )
        raise InvalidStateError("Leave request has already been processed")
    except Exception:
        db.rollback()
        raise

    db.refresh(leave_request)
    logger.info(
        "leave status transition: leave_request_id=%s before=%s after=%s action=%s level=%s/%s",
        leave_request_id, before_status, leave_request.status.value.upper(), verb,
        leave_request.current_approval_level, leave_request.total_approval_levels,
    )

    if decision == Decision.REJECT:
        notifications = [notification_service.rejected(leave_request)]
    elif fully_approved:
        notifications = [notification_service.fully_approved(leave_request)]
    else:
        next_row = leave_request.current_approval
        notifications = [notification_service.partially_approved(leave_request)]
        if next_row is not None:
            notifications.append(
                notification_service.approval_required(leave_request, next_row.approver_id, leave_request.user.name)
            )
    notification_service.dispatch(db, notifier, notifications)

    return DecisionOutcome(leave_request=leave_request, message=message, fully_approved=fully_approved)


def approve_leave(
    db: Session,
    leave_request_id: int,
    approver_id: int,
    comments: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> DecisionOutcome:
    return decide(db, leave_request_id, approver_id, Decision.APPROVE, comments, notifier)


def reject_leave(
    db: Session,
    leave_request_id: int,
    approver_id: int,
    comments: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> DecisionOutcome:
    return decide(db, leave_request_id, approver_id, Decision.REJECT, comments, notifier)
