"""
Leave service - leave request lifecycle (day counting, submission,
cancellation) and the role-scoped queries over leave requests
"""
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import List, Optional, Tuple, Iterator, Dict, Any

from sqlalchemy.orm import Session, joinedload, selectinload

from leave_approval.core.config import settings
from leave_approval.core.exceptions import (
    LeaveValidationError,
    InsufficientBalanceError,
    NotFoundError,
    ForbiddenError,
    InvalidStateError,
)
from leave_approval.models.leave import (
    LeaveRequest,
    LeaveApproval,
    LeaveType,
    LeaveStatus,
    HalfDaySession,
    ApprovalStatus,
)
from leave_approval.models.user import User, Role
from leave_approval.services import leave_balance_service as ledger
from leave_approval.services import notification_service
from leave_approval.services.approval_chain_service import build_chain, materialize_chain
from leave_approval.services.audit_service import log_audit
from leave_approval.services.notification_service import Notifier, DatabaseNotifier
from leave_approval.services.org_directory import OrgDirectory, SqlOrgDirectory
from leave_approval.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

HALF_DAY = Decimal("0.5")

# Statuses that block a new request over the same dates
ACTIVE_LEAVE_STATUSES = (LeaveStatus.PENDING, LeaveStatus.APPROVED)


def is_sunday(check_date: date) -> bool:
    """Check if a date is Sunday (weekly off)"""
    return check_date.weekday() == 6  # Monday=0, Sunday=6


def compute_days_count(
    start_date: date,
    end_date: date,
    is_half_day: bool = False,
    half_day_session: Optional[HalfDaySession] = None,
) -> Decimal:
    """
    Number of leave days a request consumes

    Half-day leave is 0.5 of a single day. Otherwise the inclusive calendar
    span, minus Sundays when LEAVE_EXCLUDE_SUNDAYS is on.

    Raises:
        LeaveValidationError: missing half-day session, multi-day half-day,
            or a range that counts zero days
    """
    if is_half_day:
        if half_day_session is None:
            raise LeaveValidationError("Half-day session is required for half-day leave")
        if start_date != end_date:
            raise LeaveValidationError("Half-day leave can only be applied for a single day")
        if settings.LEAVE_EXCLUDE_SUNDAYS and is_sunday(start_date):
            raise LeaveValidationError("Cannot apply leave on Sunday")
        return HALF_DAY

    if start_date > end_date:
        raise LeaveValidationError("Invalid date range")

    days = 0
    current = start_date
    while current <= end_date:
        if not (settings.LEAVE_EXCLUDE_SUNDAYS and is_sunday(current)):
            days += 1
        current += timedelta(days=1)

    if days <= 0:
        raise LeaveValidationError("Invalid date range")
    return Decimal(days)


def validate_leave_year(start_date: date, end_date: date) -> None:
    """Reject requests spanning two calendar years (balances are kept per year)"""
    if start_date.year != end_date.year:
        raise LeaveValidationError(
            f"Leave cannot span across years. Start date year: {start_date.year}, End date year: {end_date.year}"
        )


def validate_overlap(
    db: Session,
    user_id: int,
    start_date: date,
    end_date: date,
    exclude_leave_id: Optional[int] = None
) -> None:
    """
    Reject a request overlapping the user's own pending or approved leave.

    Overlap condition: existing.end_date >= new.start_date AND existing.start_date <= new.end_date
    """
    query = db.query(LeaveRequest).filter(
        LeaveRequest.user_id == user_id,
        LeaveRequest.status.in_(ACTIVE_LEAVE_STATUSES),
        LeaveRequest.end_date >= start_date,
        LeaveRequest.start_date <= end_date
    )
    if exclude_leave_id:
        query = query.filter(LeaveRequest.id != exclude_leave_id)

    overlapping = query.first()
    if overlapping:
        raise LeaveValidationError(
            f"You already have a leave request ({overlapping.status.value}) for the selected dates"
        )


def submit_leave(
    db: Session,
    user_id: int,
    leave_type: LeaveType,
    start_date: date,
    end_date: date,
    is_half_day: bool = False,
    half_day_session: Optional[HalfDaySession] = None,
    reason: Optional[str] = None,
    org: Optional[OrgDirectory] = None,
    notifier: Optional[Notifier] = None,
) -> LeaveRequest:
    """
    Apply for leave (creates a pending request with its approval chain)

    The balance is checked but not debited; debit happens at final approval.

    Args:
        db: Database session
        user_id: User applying for leave
        leave_type: Type of leave
        start_date: First day of leave
        end_date: Last day of leave
        is_half_day: Whether this is a half-day request
        half_day_session: first_half or second_half (required for half-day)
        reason: Optional reason
        org: Org hierarchy lookups (defaults to the users table)
        notifier: Notification sink (defaults to in-app notifications)

    Returns:
        Created LeaveRequest instance

    Raises:
        LeaveValidationError, InsufficientBalanceError, NotFoundError,
        NoApproverAvailableError
    """
    leave_type = LeaveType(leave_type)
    if half_day_session is not None:
        half_day_session = HalfDaySession(half_day_session)

    days_count = compute_days_count(start_date, end_date, is_half_day, half_day_session)
    validate_leave_year(start_date, end_date)

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError(f"User with id {user_id} not found")

    validate_overlap(db, user_id, start_date, end_date)

    org = org or SqlOrgDirectory(db)
    notifier = notifier or DatabaseNotifier(db)

    try:
        # A first request of the year creates the balance row in this transaction
        balance = ledger.ensure_balance(db, user_id, start_date.year)
        if not ledger.check_sufficient(balance, leave_type, days_count):
            raise InsufficientBalanceError(
                f"Insufficient leave balance. Available: {ledger.available_days(balance, leave_type)} days, "
                f"Requested: {days_count} days"
            )

        approver_ids = build_chain(org, user_id)

        leave_request = LeaveRequest(
            user_id=user_id,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            is_half_day=is_half_day,
            half_day_session=half_day_session if is_half_day else None,
            days_count=days_count,
            reason=reason,
            status=LeaveStatus.PENDING,
            current_approval_level=0,
            total_approval_levels=len(approver_ids),
        )
        db.add(leave_request)
        materialize_chain(db, leave_request, approver_ids)

        log_audit(
            db=db,
            actor_id=user_id,
            action="LEAVE_APPLY",
            entity_type="leave_request",
            entity_id=leave_request.id,
            meta={
                "leave_type": leave_type,
                "start_date": start_date,
                "end_date": end_date,
                "days_count": days_count,
                "approver_ids": approver_ids,
            }
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(leave_request)
    logger.info(
        "leave status transition: leave_request_id=%s before=NONE after=PENDING action=apply levels=%s",
        leave_request.id, leave_request.total_approval_levels,
    )

    notification_service.dispatch(db, notifier, [
        notification_service.approval_required(leave_request, approver_ids[0], user.name),
    ])
    return leave_request


def cancel_leave(db: Session, leave_request_id: int, requesting_user_id: int) -> LeaveRequest:
    """
    Cancel a pending leave request (submitter only)

    Balances are never touched: nothing is debited before final approval.
    The approval rows are kept as they are; the request status is terminal.
    """
    leave_request = (
        db.query(LeaveRequest)
        .filter(LeaveRequest.id == leave_request_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not leave_request:
        raise NotFoundError("Leave request not found")

    if leave_request.user_id != requesting_user_id:
        raise ForbiddenError("You can only cancel your own leave requests")

    if leave_request.status != LeaveStatus.PENDING:
        raise InvalidStateError(
            "Leave request has already been processed and can no longer be cancelled"
        )

    before_status = leave_request.status.value
    leave_request.status = LeaveStatus.CANCELLED
    leave_request.cancelled_at = now_utc()
    log_audit(
        db=db,
        actor_id=requesting_user_id,
        action="LEAVE_CANCEL",
        entity_type="leave_request",
        entity_id=leave_request.id,
        meta={"before_status": before_status, "approval_level": leave_request.current_approval_level}
    )
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(leave_request)
    logger.info(
        "leave status transition: leave_request_id=%s before=%s after=CANCELLED action=cancel",
        leave_request_id, before_status.upper(),
    )
    return leave_request


def _with_chain(query):
    return query.options(
        joinedload(LeaveRequest.user),
        joinedload(LeaveRequest.approver),
        selectinload(LeaveRequest.approvals).joinedload(LeaveApproval.approver),
    )


def visible_user_ids(db: Session, current_user: User) -> Optional[List[int]]:
    """
    User ids whose leave the caller may see; None means everyone (admin).

    Employees see their own leave, managers their own plus their direct reports.
    """
    if current_user.role == Role.ADMIN.value:
        return None
    ids = [current_user.id]
    if current_user.role == Role.MANAGER.value:
        ids.extend(SqlOrgDirectory(db).direct_report_ids(current_user.id))
    return ids


def can_view_leave(db: Session, current_user: User, leave_request: LeaveRequest) -> bool:
    """Submitter, any member of its approval chain, the submitter's manager, or an admin"""
    if current_user.role == Role.ADMIN.value or leave_request.user_id == current_user.id:
        return True
    if any(a.approver_id == current_user.id for a in leave_request.approvals):
        return True
    visible = visible_user_ids(db, current_user)
    return visible is None or leave_request.user_id in visible


def get_leave_request(db: Session, leave_request_id: int, current_user: Optional[User] = None) -> LeaveRequest:
    leave_request = _with_chain(db.query(LeaveRequest)).filter(LeaveRequest.id == leave_request_id).first()
    if not leave_request:
        raise NotFoundError("Leave request not found")
    if current_user is not None and not can_view_leave(db, current_user, leave_request):
        raise ForbiddenError("You are not authorized to view this leave request")
    return leave_request


def _scoped_query(
    db: Session,
    current_user: User,
    status: Optional[LeaveStatus] = None,
    user_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    query = db.query(LeaveRequest)

    visible = visible_user_ids(db, current_user)
    if user_id is not None:
        if visible is not None and user_id not in visible:
            return None
        query = query.filter(LeaveRequest.user_id == user_id)
    elif visible is not None:
        query = query.filter(LeaveRequest.user_id.in_(visible))

    if status is not None:
        query = query.filter(LeaveRequest.status == LeaveStatus(status))
    # Date window: leave overlapping [start_date, end_date]
    if start_date:
        query = query.filter(LeaveRequest.end_date >= start_date)
    if end_date:
        query = query.filter(LeaveRequest.start_date <= end_date)
    return query


def list_leave_requests(
    db: Session,
    current_user: User,
    status: Optional[LeaveStatus] = None,
    user_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[LeaveRequest], int]:
    """
    List leave requests with role-based scoping.

    Includes every status. A user_id outside the caller's scope yields an
    empty page rather than an error.

    Returns:
        (items for the page, total matching rows)
    """
    query = _scoped_query(db, current_user, status, user_id, start_date, end_date)
    if query is None:
        return [], 0

    total = query.count()
    items = (
        _with_chain(query)
        .order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def list_pending_for_approver(db: Session, approver_id: int) -> List[LeaveRequest]:
    """
    Pending requests whose current approval row belongs to the approver

    Ordered oldest first so approvers work the queue in submission order.
    """
    query = (
        db.query(LeaveRequest)
        .join(LeaveApproval, LeaveApproval.leave_request_id == LeaveRequest.id)
        .filter(
            LeaveRequest.status == LeaveStatus.PENDING,
            LeaveApproval.approver_id == approver_id,
            LeaveApproval.status == ApprovalStatus.PENDING,
            LeaveApproval.approval_order == LeaveRequest.current_approval_level + 1,
        )
    )
    return _with_chain(query).order_by(LeaveRequest.created_at.asc(), LeaveRequest.id.asc()).all()


def list_leave_history(
    db: Session,
    user_id: int,
    year: Optional[int] = None,
    page: int = 1,
    limit: int = 50,
    as_of: Optional[date] = None,
) -> Tuple[List[LeaveRequest], int]:
    """The user's past leave (ended before as_of, default today), latest first"""
    as_of = as_of or date.today()
    query = db.query(LeaveRequest).filter(
        LeaveRequest.user_id == user_id,
        LeaveRequest.end_date < as_of,
    )
    if year is not None:
        query = query.filter(
            LeaveRequest.start_date >= date(year, 1, 1),
            LeaveRequest.start_date <= date(year, 12, 31),
        )

    total = query.count()
    items = (
        _with_chain(query)
        .order_by(LeaveRequest.start_date.desc(), LeaveRequest.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


EXPORT_HEADERS = [
    "id",
    "employee_name",
    "employee_email",
    "leave_type",
    "start_date",
    "end_date",
    "days_count",
    "is_half_day",
    "status",
    "approval_progress",
    "reason",
    "comments",
    "created_at",
]


def iter_leave_export_rows(
    db: Session,
    current_user: User,
    status: Optional[LeaveStatus] = None,
    user_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Iterator[Dict[str, Any]]:
    """Rows for the CSV leave report, same scoping as list_leave_requests"""
    query = _scoped_query(db, current_user, status, user_id, start_date, end_date)
    if query is None:
        return

    rows = (
        query.options(joinedload(LeaveRequest.user))
        .order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())
        .all()
    )
    for leave_request in rows:
        yield {
            "id": leave_request.id,
            "employee_name": leave_request.user.name if leave_request.user else None,
            "employee_email": leave_request.user.email if leave_request.user else None,
            "leave_type": leave_request.leave_type.value,
            "start_date": leave_request.start_date.isoformat(),
            "end_date": leave_request.end_date.isoformat(),
            "days_count": leave_request.days_count,
            "is_half_day": "yes" if leave_request.is_half_day else "no",
            "status": leave_request.status.value,
            "approval_progress": f"{leave_request.current_approval_level}/{leave_request.total_approval_levels}",
            "reason": leave_request.reason,
            "comments": leave_request.comments,
            "created_at": leave_request.created_at.isoformat() if leave_request.created_at else None,
        }
