"""
Leave balance ledger.

One LeaveBalance row per (user, year) holding every bucket. Rows are created
lazily with the configured yearly defaults; the only mutation made here is
the debit applied when a request reaches final approval.
"""
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from leave_approval.core.config import settings
from leave_approval.core.exceptions import InsufficientBalanceError, InvalidStateError, LeaveValidationError
from leave_approval.models.leave import (
    BALANCE_BUCKETS,
    LeaveBalance,
    LeaveTransaction,
    LeaveTransactionAction,
    LeaveType,
)
from leave_approval.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)


def _default_buckets() -> dict:
    return {
        "sick_leave": Decimal(str(settings.DEFAULT_SICK_LEAVE)),
        "casual_leave": Decimal(str(settings.DEFAULT_CASUAL_LEAVE)),
        "earned_leave": Decimal(str(settings.DEFAULT_EARNED_LEAVE)),
        "comp_off": Decimal(str(settings.DEFAULT_COMP_OFF)),
        "paternity_maternity": Decimal(str(settings.DEFAULT_PATERNITY_MATERNITY)),
        "birthday_leave": Decimal(str(settings.DEFAULT_BIRTHDAY_LEAVE)),
    }


def _find_balance(db: Session, user_id: int, year: int, for_update: bool = False) -> Optional[LeaveBalance]:
    query = db.query(LeaveBalance).filter(
        LeaveBalance.user_id == user_id,
        LeaveBalance.year == year,
    )
    if for_update:
        query = query.with_for_update().populate_existing()
    return query.first()


def get_bucket_name(leave_type: LeaveType) -> str:
    """Balance column that backs a leave type"""
    try:
        return BALANCE_BUCKETS[LeaveType(leave_type)]
    except (KeyError, ValueError):
        raise LeaveValidationError(f"Unknown leave type: {leave_type}")


def get_or_create_balance(db: Session, user_id: int, year: int) -> LeaveBalance:
    """
    Return the (user_id, year) balance row, creating it with defaults if missing

    A newly created row is committed immediately, so call this before making
    other changes in the session. If a concurrent request inserted the same
    row first, the unique constraint fires and the winner's row is read back.
    """
    balance = _find_balance(db, user_id, year)
    if balance is not None:
        return balance

    balance = LeaveBalance(user_id=user_id, year=year, **_default_buckets())
    db.add(balance)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        balance = _find_balance(db, user_id, year)
        if balance is None:
            logger.error("leave balance could not be created: user_id=%s year=%s", user_id, year)
            raise
        logger.info("leave balance created concurrently, re-read: user_id=%s year=%s", user_id, year)
        return balance

    db.refresh(balance)
    logger.info("leave balance created: user_id=%s year=%s", user_id, year)
    return balance


def get_balance(db: Session, user_id: int, year: int) -> LeaveBalance:
    """Balance for display; first read of a year creates the row"""
    return get_or_create_balance(db, user_id, year)


def ensure_balance(db: Session, user_id: int, year: int, for_update: bool = False) -> LeaveBalance:
    """
    Return the (user_id, year) balance row, creating it inside the caller's
    transaction if missing. Nothing is committed here.

    Raises:
        InvalidStateError: another transaction created the row first
    """
    balance = _find_balance(db, user_id, year, for_update=for_update)
    if balance is not None:
        return balance

    balance = LeaveBalance(user_id=user_id, year=year, **_default_buckets())
    db.add(balance)
    try:
        db.flush()
    except IntegrityError:
        logger.warning("leave balance created concurrently: user_id=%s year=%s", user_id, year)
        raise InvalidStateError("Leave balance was updated concurrently, please retry")
    logger.info("leave balance created: user_id=%s year=%s", user_id, year)
    return balance


def available_days(balance: LeaveBalance, leave_type: LeaveType) -> Decimal:
    return Decimal(str(getattr(balance, get_bucket_name(leave_type))))


def check_sufficient(balance: LeaveBalance, leave_type: LeaveType, days: Decimal) -> bool:
    return available_days(balance, leave_type) >= Decimal(str(days))


def _log_transaction(
    db: Session,
    user_id: int,
    leave_request_id: Optional[int],
    year: int,
    leave_type: LeaveType,
    delta_days: Decimal,
    action: str,
    remarks: Optional[str],
    action_by_id: Optional[int],
) -> None:
    t = LeaveTransaction(
        user_id=user_id,
        leave_request_id=leave_request_id,
        year=year,
        leave_type=leave_type,
        delta_days=delta_days,
        action=action,
        remarks=remarks,
        action_by_id=action_by_id,
        action_at=now_utc(),
    )
    db.add(t)


def debit_balance(
    db: Session,
    user_id: int,
    year: int,
    leave_type: LeaveType,
    days: Decimal,
    leave_request_id: Optional[int] = None,
    action_by_id: Optional[int] = None,
    remarks: Optional[str] = None,
) -> LeaveBalance:
    """
    Deduct days from the user's bucket for the year.

    Locks the balance row, re-checks sufficiency against the locked values and
    records a LeaveTransaction. Nothing is committed: the caller commits the
    debit together with the leave request's status change.

    Raises:
        InsufficientBalanceError: the bucket would go negative
    """
    days = Decimal(str(days))
    bucket = get_bucket_name(leave_type)

    balance = ensure_balance(db, user_id, year, for_update=True)

    available = Decimal(str(getattr(balance, bucket)))
    if available < days:
        raise InsufficientBalanceError(
            f"Insufficient leave balance. Available: {available} days, Requested: {days} days"
        )

    setattr(balance, bucket, available - days)
    _log_transaction(
        db, user_id, leave_request_id, year, leave_type,
        -days, LeaveTransactionAction.APPROVE_DEDUCT.value, remarks, action_by_id,
    )
    db.flush()
    logger.info(
        "leave balance debited: user_id=%s year=%s bucket=%s days=%s remaining=%s",
        user_id, year, bucket, days, available - days,
    )
    return balance
