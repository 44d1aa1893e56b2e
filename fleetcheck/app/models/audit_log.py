"""
Audit Log Database Model.

Tracks admin actions and checklist activity for traceability.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from fleetcheck.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for tracking admin and driver actions.

    Events logged:
    - USER_CREATED / VEHICLE_CREATED / TRAILER_CREATED
    - ASSIGNMENT_CREATED / ASSIGNMENT_ACTIVATED / ASSIGNMENT_DEACTIVATED
    - TEMPLATE_CREATED / TEMPLATE_UPDATED
    - CHECKLIST_SUBMITTED / ARCHIVE_UPLOAD_FAILED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_email = Column(String(255), nullable=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # What it was performed on
    target_type = Column(String(50), nullable=True)
    target_id = Column(Integer, index=True, nullable=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    # Timestamp
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_email}, target={self.target_type}:{self.target_id})>"
