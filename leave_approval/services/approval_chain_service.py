"""
Approval chain builder.

A chain is the ordered list of approver ids a leave request must pass
through. It is computed once at submission from the configured policy levels
and materialized as LeaveApproval rows; later org changes do not alter an
existing chain.
"""
import logging
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from leave_approval.core.config import settings, APPROVAL_LEVEL_MANAGER, APPROVAL_LEVEL_ADMIN
from leave_approval.core.exceptions import NoApproverAvailableError
from leave_approval.models.leave import LeaveRequest, LeaveApproval, ApprovalStatus
from leave_approval.services.org_directory import OrgDirectory

logger = logging.getLogger(__name__)


def _resolve_level(org: OrgDirectory, level: str, anchor_id: int, submitter_id: int) -> Optional[int]:
    if level == APPROVAL_LEVEL_MANAGER:
        manager_id = org.resolve_manager(anchor_id)
        if manager_id is not None and manager_id != submitter_id:
            return manager_id
        # No usable manager at this position: the admin approver stands in
        return org.resolve_admin_approver(exclude_user_id=submitter_id)
    if level == APPROVAL_LEVEL_ADMIN:
        return org.resolve_admin_approver(exclude_user_id=submitter_id)
    raise ValueError(f"Unknown approval level: {level}")


def build_chain(
    org: OrgDirectory,
    submitter_id: int,
    levels: Optional[Sequence[str]] = None,
) -> List[int]:
    """
    Build the ordered approver chain for a submitter

    Args:
        org: Org hierarchy lookups
        submitter_id: User applying for leave
        levels: Policy levels in order (defaults to settings.APPROVAL_CHAIN).
            MANAGER resolves the manager of the previous chain position, so
            MANAGER,MANAGER gives manager then skip-level manager.

    Returns:
        Distinct approver ids, never containing the submitter, never empty

    Raises:
        NoApproverAvailableError: a level resolves to nobody
    """
    if levels is None:
        levels = settings.get_approval_chain_levels()
    if not levels:
        raise NoApproverAvailableError("No approval levels are configured")

    chain: List[int] = []
    anchor_id = submitter_id
    for position, level in enumerate(levels, start=1):
        approver_id = _resolve_level(org, level, anchor_id, submitter_id)
        if approver_id is None:
            logger.error(
                "approval chain unresolved: submitter_id=%s level=%s position=%s",
                submitter_id, level, position,
            )
            raise NoApproverAvailableError(
                f"No approver available for approval level {position} ({level})"
            )
        anchor_id = approver_id
        if approver_id == submitter_id or approver_id in chain:
            continue
        chain.append(approver_id)

    logger.debug("approval chain built: submitter_id=%s chain=%s", submitter_id, chain)
    return chain


def materialize_chain(db: Session, leave_request: LeaveRequest, approver_ids: Sequence[int]) -> List[LeaveApproval]:
    """Create one pending approval row per approver, ordered from 1"""
    rows = []
    for order, approver_id in enumerate(approver_ids, start=1):
        row = LeaveApproval(
            approver_id=approver_id,
            approval_order=order,
            status=ApprovalStatus.PENDING,
        )
        leave_request.approvals.append(row)
        rows.append(row)
    leave_request.total_approval_levels = len(approver_ids)
    leave_request.current_approval_level = 0
    db.flush()
    return rows
