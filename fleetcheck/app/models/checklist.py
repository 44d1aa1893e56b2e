"""
Checklist template and submission database models.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fleetcheck.app.db.session import Base


class ChecklistTemplate(Base):
    """
    Checklist template model.

    ``items`` is the ordered list of item labels a driver must evaluate.
    The current template is the most recently created active one.
    """
    __tablename__ = "checklist_templates"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    items = Column(JSON, nullable=False)
    active = Column(Boolean, default=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<ChecklistTemplate(id={self.id}, name='{self.name}', items={len(self.items or [])})>"


class ChecklistSubmission(Base):
    """
    One completed daily inspection report.

    Vehicle, trailer and item labels are frozen at submission time so later
    assignment or template edits never rewrite history. Only
    ``archive_file_id`` is written after creation, to record the archive
    upload outcome.
    """
    __tablename__ = "checklist_submissions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    trailer_id = Column(Integer, ForeignKey("trailers.id"), nullable=True)
    template_id = Column(Integer, ForeignKey("checklist_templates.id"), nullable=False)

    date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD

    # [{"label": str, "status": "ok|issue|na", "note": str}, ...]
    answers = Column(JSON, nullable=False)
    metrics = Column(JSON, nullable=False, default=dict)
    metrics_schema_version = Column(Integer, nullable=False)

    archive_file_id = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User")
    vehicle = relationship("Vehicle")
    trailer = relationship("Trailer")
    template = relationship("ChecklistTemplate")

    @property
    def issue_count(self) -> int:
        return sum(1 for answer in self.answers or [] if answer.get("status") == "issue")

    def __repr__(self):
        return f"<ChecklistSubmission(id={self.id}, user_id={self.user_id}, date='{self.date}')>"
