"""
Tests for leave cancellation
"""
from datetime import date
from decimal import Decimal

import pytest

from leave_approval.core.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from leave_approval.models.audit_log import AuditLog
from leave_approval.models.leave import ApprovalStatus, LeaveStatus, LeaveType
from leave_approval.services.approval_service import approve_leave, reject_leave
from leave_approval.services.leave_balance_service import get_balance
from leave_approval.services.leave_service import cancel_leave, submit_leave


@pytest.fixture
def pending_leave(db, employee_user, manager_user, admin_user, notifier):
    return submit_leave(
        db, employee_user.id, LeaveType.EARNED, date(2026, 6, 1), date(2026, 6, 5), notifier=notifier,
    )


def test_submitter_cancels_pending_leave(db, pending_leave, employee_user):
    leave = cancel_leave(db, pending_leave.id, employee_user.id)

    assert leave.status == LeaveStatus.CANCELLED
    assert leave.cancelled_at is not None
    assert all(a.status == ApprovalStatus.PENDING for a in leave.approvals)
    assert get_balance(db, employee_user.id, 2026).earned_leave == Decimal("15.0")
    assert db.query(AuditLog).filter(AuditLog.action == "LEAVE_CANCEL").count() == 1


def test_cancel_after_partial_approval(db, pending_leave, employee_user, manager_user, notifier):
    approve_leave(db, pending_leave.id, manager_user.id, notifier=notifier)

    leave = cancel_leave(db, pending_leave.id, employee_user.id)

    assert leave.status == LeaveStatus.CANCELLED
    assert get_balance(db, employee_user.id, 2026).earned_leave == Decimal("15.0")


def test_only_submitter_can_cancel(db, pending_leave, manager_user, admin_user):
    with pytest.raises(ForbiddenError, match="only cancel your own"):
        cancel_leave(db, pending_leave.id, manager_user.id)

    with pytest.raises(ForbiddenError):
        cancel_leave(db, pending_leave.id, admin_user.id)


def test_cancel_unknown_request(db, employee_user):
    with pytest.raises(NotFoundError):
        cancel_leave(db, 424242, employee_user.id)


def test_cannot_cancel_approved_leave(db, pending_leave, employee_user, manager_user, admin_user, notifier):
    approve_leave(db, pending_leave.id, manager_user.id, notifier=notifier)
    approve_leave(db, pending_leave.id, admin_user.id, notifier=notifier)

    with pytest.raises(InvalidStateError, match="already been processed"):
        cancel_leave(db, pending_leave.id, employee_user.id)

    # Approved leave stays debited
    assert get_balance(db, employee_user.id, 2026).earned_leave == Decimal("10.0")


def test_cannot_cancel_rejected_leave(db, pending_leave, employee_user, manager_user, notifier):
    reject_leave(db, pending_leave.id, manager_user.id, notifier=notifier)

    with pytest.raises(InvalidStateError, match="already been processed"):
        cancel_leave(db, pending_leave.id, employee_user.id)


def test_cannot_cancel_twice(db, pending_leave, employee_user):
    cancel_leave(db, pending_leave.id, employee_user.id)

    with pytest.raises(InvalidStateError):
        cancel_leave(db, pending_leave.id, employee_user.id)


def test_cancelled_leave_cannot_be_decided(db, pending_leave, employee_user, manager_user, notifier):
    cancel_leave(db, pending_leave.id, employee_user.id)

    with pytest.raises(InvalidStateError, match="already been processed"):
        approve_leave(db, pending_leave.id, manager_user.id, notifier=notifier)


def test_cancelled_dates_can_be_requested_again(db, pending_leave, employee_user, notifier):
    cancel_leave(db, pending_leave.id, employee_user.id)

    again = submit_leave(
        db, employee_user.id, LeaveType.EARNED, date(2026, 6, 1), date(2026, 6, 5), notifier=notifier,
    )

    assert again.status == LeaveStatus.PENDING
