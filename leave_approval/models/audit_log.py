"""
Audit log model
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from leave_approval.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    actor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    action = Column(String, nullable=False)  # e.g., "LEAVE_APPLY", "LEAVE_APPROVE_LEVEL", "LEAVE_CANCEL"
    entity_type = Column(String, nullable=False)  # e.g., "leave_request"
    entity_id = Column(Integer, nullable=True)
    meta_json = Column(JSON, nullable=True)
    # Set explicitly on insert; SQLite server defaults drop the timezone
    created_at = Column(DateTime(timezone=True), nullable=False)
