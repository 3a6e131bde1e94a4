"""
Audit logging service
"""
from sqlalchemy.orm import Session
from leave_approval.models.audit_log import AuditLog
from leave_approval.utils.datetime_utils import now_utc
from leave_approval.utils.json_serializer import sanitize_for_json
from typing import Optional, Dict, Any


def log_audit(
    db: Session,
    actor_id: int,
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    meta: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Add an audit log entry to the caller's transaction

    The entry is flushed, not committed: it lands or disappears together with
    the leave transition it describes.

    Args:
        db: Database session
        actor_id: ID of the user performing the action
        action: Action type (e.g., "LEAVE_APPLY", "LEAVE_APPROVE_LEVEL", "LEAVE_REJECT")
        entity_type: Type of entity (e.g., "leave_request")
        entity_id: ID of the affected entity (optional)
        meta: Additional metadata as dictionary (optional)

    Returns:
        Pending AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_json=sanitize_for_json(meta) if meta is not None else None,
        created_at=now_utc()
    )
    db.add(audit_log)
    db.flush()
    return audit_log
