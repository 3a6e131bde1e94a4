"""
Leave endpoints
"""
import math
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from leave_approval.core.deps import get_db, get_current_user, get_org_directory, get_notifier
from leave_approval.core.exceptions import ForbiddenError, NotFoundError
from leave_approval.models.leave import LeaveStatus
from leave_approval.models.user import User, Role
from leave_approval.schemas.leave import (
    LeaveApplyRequest,
    DecisionRequest,
    LeaveOut,
    LeaveListResponse,
    LeaveActionResponse,
    LeaveBalanceOut,
)
from leave_approval.services import leave_service
from leave_approval.services.approval_service import approve_leave, reject_leave
from leave_approval.services.leave_balance_service import get_balance
from leave_approval.services.notification_service import Notifier
from leave_approval.services.org_directory import OrgDirectory
from leave_approval.utils.csv_export import stream_csv

router = APIRouter()


def _page(items, total: int, page: int, limit: int) -> LeaveListResponse:
    return LeaveListResponse(
        items=[LeaveOut.model_validate(item) for item in items],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total else 0,
    )


@router.get("/balance", response_model=LeaveBalanceOut)
async def leave_balance_endpoint(
    year: Optional[int] = Query(None, ge=2000, le=2100, description="Calendar year (defaults to the current year)"),
    user_id: Optional[int] = Query(None, description="Whose balance (defaults to the caller)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Get a leave balance for one year. The row is created with default
    entitlements on first read.

    Callers may read their own balance; managers also their direct reports',
    admins anyone's.
    """
    target_id = user_id if user_id is not None else current_user.id
    target = db.query(User).filter(User.id == target_id).first()
    if target is None:
        raise NotFoundError(f"User with id {target_id} not found")

    if target_id != current_user.id and current_user.role != Role.ADMIN.value:
        if target.manager_id != current_user.id:
            raise ForbiddenError("You are not authorized to view this leave balance")

    return get_balance(db, target_id, year or date.today().year)


@router.post("", response_model=LeaveOut, status_code=201)
async def apply_leave_endpoint(
    request: LeaveApplyRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    org: OrgDirectory = Depends(get_org_directory),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Apply for leave

    Creates a pending request and its approval chain. The balance is checked
    here but only debited when the last approver approves.
    """
    leave_request = leave_service.submit_leave(
        db=db,
        user_id=current_user.id,
        leave_type=request.leave_type,
        start_date=request.start_date,
        end_date=request.end_date,
        is_half_day=request.is_half_day,
        half_day_session=request.half_day_session,
        reason=request.reason,
        org=org,
        notifier=notifier,
    )
    return leave_service.get_leave_request(db, leave_request.id)


@router.get("", response_model=LeaveListResponse)
async def list_leaves_endpoint(
    status: Optional[LeaveStatus] = Query(None, description="Filter by status"),
    user_id: Optional[int] = Query(None, description="Filter by user"),
    start_date: Optional[date] = Query(None, description="Leave ending on or after this date"),
    end_date: Optional[date] = Query(None, description="Leave starting on or before this date"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    List leave requests with role-based scoping

    - EMPLOYEE: own requests
    - MANAGER: own requests and direct reports'
    - ADMIN: all requests
    """
    items, total = leave_service.list_leave_requests(
        db, current_user,
        status=status, user_id=user_id, start_date=start_date, end_date=end_date,
        page=page, limit=limit,
    )
    return _page(items, total, page, limit)


@router.get("/pending", response_model=LeaveListResponse)
async def list_pending_leaves_endpoint(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Requests currently waiting for the caller's decision, oldest first"""
    items = leave_service.list_pending_for_approver(db, current_user.id)
    return _page(items, len(items), 1, max(len(items), 1))


@router.get("/history", response_model=LeaveListResponse)
async def leave_history_endpoint(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Caller's past leave (ended before today), latest first"""
    items, total = leave_service.list_leave_history(db, current_user.id, year=year, page=page, limit=limit)
    return _page(items, total, page, limit)


@router.get("/export")
async def export_leaves_endpoint(
    status: Optional[LeaveStatus] = Query(None),
    user_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """CSV report of the leave requests the caller can see"""
    rows = list(leave_service.iter_leave_export_rows(
        db, current_user, status=status, user_id=user_id, start_date=start_date, end_date=end_date,
    ))
    filename = f"leave_report_{date.today().isoformat()}.csv"
    return stream_csv(leave_service.EXPORT_HEADERS, rows, filename)


@router.get("/{leave_request_id}", response_model=LeaveOut)
async def get_leave_endpoint(
    leave_request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """One leave request with its approval chain"""
    return leave_service.get_leave_request(db, leave_request_id, current_user)


@router.post("/{leave_request_id}/approve", response_model=LeaveActionResponse)
async def approve_leave_endpoint(
    leave_request_id: int,
    request: Optional[DecisionRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Approve the caller's level of a leave request

    The final level debits the leave balance and marks the request approved.
    """
    outcome = approve_leave(
        db, leave_request_id, current_user.id,
        comments=request.comments if request else None,
        notifier=notifier,
    )
    return LeaveActionResponse(
        message=outcome.message,
        leave_request=LeaveOut.model_validate(leave_service.get_leave_request(db, leave_request_id)),
    )


@router.post("/{leave_request_id}/reject", response_model=LeaveActionResponse)
async def reject_leave_endpoint(
    leave_request_id: int,
    request: Optional[DecisionRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    """Reject a leave request at the caller's level; remaining levels are skipped"""
    outcome = reject_leave(
        db, leave_request_id, current_user.id,
        comments=request.comments if request else None,
        notifier=notifier,
    )
    return LeaveActionResponse(
        message=outcome.message,
        leave_request=LeaveOut.model_validate(leave_service.get_leave_request(db, leave_request_id)),
    )


@router.post("/{leave_request_id}/cancel", response_model=LeaveActionResponse)
async def cancel_leave_endpoint(
    leave_request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Cancel the caller's own pending leave request"""
    leave_service.cancel_leave(db, leave_request_id, current_user.id)
    return LeaveActionResponse(
        message="Leave request cancelled successfully",
        leave_request=LeaveOut.model_validate(leave_service.get_leave_request(db, leave_request_id)),
    )
