"""
Domain errors raised by the leave approval engine.

Each error carries the HTTP status the API layer answers with and a stable
machine-readable code, so callers can tell them apart without matching on
the message text.
"""
from fastapi import status


class LeaveError(Exception):
    """Base class for all leave engine errors"""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "LEAVE_ERROR"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class LeaveValidationError(LeaveError):
    """Malformed leave input (half-day rules, date range, overlap)"""

    code = "VALIDATION_ERROR"


class InsufficientBalanceError(LeaveError):
    """The leave bucket cannot cover the requested days"""

    code = "INSUFFICIENT_BALANCE"


class NotFoundError(LeaveError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ForbiddenError(LeaveError):
    """Caller is not part of the approval chain (or not the submitter)"""

    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class SequenceViolationError(LeaveError):
    """Caller is a later-level approver acting before their turn"""

    code = "SEQUENCE_VIOLATION"


class InvalidStateError(LeaveError):
    """Leave request (or the caller's approval row) is already terminal"""

    code = "INVALID_STATE"


class NoApproverAvailableError(LeaveError):
    """Approval chain cannot be resolved from the org hierarchy"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "NO_APPROVER_AVAILABLE"
