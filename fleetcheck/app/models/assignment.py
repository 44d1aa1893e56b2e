"""
Assignment database model.

Pairs a driver with a vehicle and optionally a trailer. Rows are never
deleted; only ``status`` changes. At most one ACTIVE row may exist per
driver, per vehicle and per trailer, enforced by the assignment service
and backed by partial unique indexes.
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime, Enum, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fleetcheck.app.db.session import Base
from fleetcheck.app.models.enums import AssignmentStatus

_ACTIVE_ONLY = text("status = 'ACTIVE'")
_ACTIVE_WITH_TRAILER = text("status = 'ACTIVE' AND trailer_id IS NOT NULL")


class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id", ondelete="CASCADE"), nullable=False, index=True)
    trailer_id = Column(Integer, ForeignKey("trailers.id", ondelete="SET NULL"), nullable=True, index=True)

    status = Column(Enum(AssignmentStatus), default=AssignmentStatus.ACTIVE, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User")
    vehicle = relationship("Vehicle")
    trailer = relationship("Trailer")

    __table_args__ = (
        Index("ux_assignments_active_user", "user_id", unique=True,
              postgresql_where=_ACTIVE_ONLY, sqlite_where=_ACTIVE_ONLY),
        Index("ux_assignments_active_vehicle", "vehicle_id", unique=True,
              postgresql_where=_ACTIVE_ONLY, sqlite_where=_ACTIVE_ONLY),
        Index("ux_assignments_active_trailer", "trailer_id", unique=True,
              postgresql_where=_ACTIVE_WITH_TRAILER, sqlite_where=_ACTIVE_WITH_TRAILER),
    )

    @property
    def active(self) -> bool:
        return self.status == AssignmentStatus.ACTIVE

    def __repr__(self):
        return (
            f"<Assignment(id={self.id}, user_id={self.user_id}, vehicle_id={self.vehicle_id}, "
            f"trailer_id={self.trailer_id}, status={self.status})>"
        )
