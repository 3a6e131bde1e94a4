"""
Service-wide constants
"""

SERVICE_NAME = "leave-approval-service"
DEFAULT_VERSION = "1.0.0"

# Notification kinds emitted on leave transitions
NOTIFY_LEAVE_APPROVAL_REQUIRED = "leave_approval_required"
NOTIFY_LEAVE_PARTIALLY_APPROVED = "leave_partially_approved"
NOTIFY_LEAVE_APPROVED = "leave_approved"
NOTIFY_LEAVE_REJECTED = "leave_rejected"
