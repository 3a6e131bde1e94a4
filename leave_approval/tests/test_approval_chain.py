"""
Tests for approval chain building
"""
from datetime import date
from decimal import Decimal

import pytest

from conftest import make_user
from leave_approval.core.exceptions import NoApproverAvailableError
from leave_approval.models.leave import LeaveRequest, LeaveType, LeaveStatus, ApprovalStatus
from leave_approval.models.user import Role
from leave_approval.services.approval_chain_service import build_chain, materialize_chain
from leave_approval.services.org_directory import SqlOrgDirectory


class FakeOrg:
    """In-memory org: managers maps user -> manager, admins in priority order"""

    def __init__(self, managers=None, admins=None):
        self.managers = managers or {}
        self.admins = admins or []

    def resolve_manager(self, user_id):
        return self.managers.get(user_id)

    def resolve_admin_approver(self, exclude_user_id=None):
        for admin_id in self.admins:
            if admin_id != exclude_user_id:
                return admin_id
        return None


def test_default_chain_is_manager_then_admin():
    org = FakeOrg(managers={10: 20}, admins=[1])

    assert build_chain(org, 10) == [20, 1]


def test_manager_who_is_the_admin_appears_once():
    org = FakeOrg(managers={10: 1}, admins=[1])

    assert build_chain(org, 10) == [1]


def test_missing_manager_falls_back_to_admin():
    org = FakeOrg(admins=[1])

    assert build_chain(org, 10) == [1]


def test_submitter_is_never_their_own_approver():
    # Admin submitting: the admin approver excludes them
    org = FakeOrg(admins=[1, 2])

    assert build_chain(org, 1) == [2]


def test_unresolvable_chain_raises():
    org = FakeOrg(admins=[1])

    with pytest.raises(NoApproverAvailableError):
        build_chain(org, 1)


def test_skip_level_manager_chain():
    org = FakeOrg(managers={10: 20, 20: 30}, admins=[1])

    assert build_chain(org, 10, levels=["MANAGER", "MANAGER", "ADMIN"]) == [20, 30, 1]


def test_chain_uses_configured_levels(monkeypatch):
    from leave_approval.core.config import settings

    monkeypatch.setattr(settings, "APPROVAL_CHAIN", "ADMIN")
    org = FakeOrg(managers={10: 20}, admins=[1])

    assert build_chain(org, 10) == [1]


def test_sql_org_directory(db, admin_user, manager_user, employee_user):
    org = SqlOrgDirectory(db)

    assert org.resolve_manager(employee_user.id) == manager_user.id
    assert org.resolve_manager(admin_user.id) is None
    assert org.resolve_admin_approver() == admin_user.id
    assert org.resolve_admin_approver(exclude_user_id=admin_user.id) is None
    assert build_chain(org, employee_user.id) == [manager_user.id, admin_user.id]
    assert build_chain(org, manager_user.id) == [admin_user.id]
    assert org.direct_report_ids(manager_user.id) == [employee_user.id]
    assert org.direct_report_ids(employee_user.id) == []


def test_sql_org_directory_ignores_inactive_users(db, admin_user):
    gone = make_user(db, "Gone Manager", role=Role.MANAGER, active=False)
    employee = make_user(db, "Orphan", manager=gone)
    make_user(db, "Retired Admin", role=Role.ADMIN, active=False)

    org = SqlOrgDirectory(db)

    assert org.resolve_manager(employee.id) is None
    assert build_chain(org, employee.id) == [admin_user.id]


def test_materialize_chain_creates_contiguous_pending_rows(db, admin_user, manager_user, employee_user):
    leave_request = LeaveRequest(
        user_id=employee_user.id,
        leave_type=LeaveType.CASUAL,
        start_date=date(2026, 3, 2),
        end_date=date(2026, 3, 2),
        days_count=Decimal("1"),
        status=LeaveStatus.PENDING,
    )
    db.add(leave_request)

    rows = materialize_chain(db, leave_request, [manager_user.id, admin_user.id])
    db.commit()

    assert [r.approval_order for r in rows] == [1, 2]
    assert [r.approver_id for r in rows] == [manager_user.id, admin_user.id]
    assert all(r.status == ApprovalStatus.PENDING for r in rows)
    assert leave_request.total_approval_levels == 2
    assert leave_request.current_approval_level == 0
    assert leave_request.current_approval.approver_id == manager_user.id
