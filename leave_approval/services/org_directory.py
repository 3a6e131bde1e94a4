"""
Org hierarchy lookups used to build approval chains.

The approval engine only needs two answers from the people directory: who
manages a user, and who acts as the admin approver. Anything that implements
``OrgDirectory`` can be passed to the leave services; ``SqlOrgDirectory``
answers from the ``users`` table.
"""
from typing import List, Optional, Protocol

from sqlalchemy.orm import Session

from leave_approval.models.user import User, Role


class OrgDirectory(Protocol):
    def resolve_manager(self, user_id: int) -> Optional[int]:
        ...

    def resolve_admin_approver(self, exclude_user_id: Optional[int] = None) -> Optional[int]:
        ...


class SqlOrgDirectory:
    """Directory backed by the users table (active users only)"""

    def __init__(self, db: Session):
        self.db = db

    def resolve_manager(self, user_id: int) -> Optional[int]:
        row = (
            self.db.query(User.manager_id)
            .filter(User.id == user_id)
            .first()
        )
        if row is None or row.manager_id is None:
            return None

        manager = (
            self.db.query(User.id)
            .filter(User.id == row.manager_id, User.active == True)
            .first()
        )
        return manager.id if manager else None

    def resolve_admin_approver(self, exclude_user_id: Optional[int] = None) -> Optional[int]:
        query = self.db.query(User.id).filter(
            User.role == Role.ADMIN.value,
            User.active == True,
        )
        if exclude_user_id is not None:
            query = query.filter(User.id != exclude_user_id)
        admin = query.order_by(User.id.asc()).first()
        return admin.id if admin else None

    def direct_report_ids(self, manager_id: int) -> List[int]:
        rows = self.db.query(User.id).filter(User.manager_id == manager_id).all()
        return [r.id for r in rows]
