"""
Assignment Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from fleetcheck.app.models.assignment import Assignment


class AssignmentCreate(BaseModel):
    """Schema for assigning a driver to a vehicle (and optionally a trailer)."""
    user_id: int = Field(..., description="Driver user ID")
    vehicle_id: int = Field(..., description="Vehicle ID")
    trailer_id: Optional[int] = Field(None, description="Trailer ID")
    active: bool = Field(True, description="Activate immediately, superseding conflicting assignments")


class AssignmentUpdate(BaseModel):
    """Schema for deactivating or reactivating an assignment."""
    active: bool = False


class AssignmentResponse(BaseModel):
    """Assignment with denormalized driver, vehicle and trailer display fields."""
    id: int
    user_id: int
    user_email: Optional[str] = None
    vehicle_id: int
    registration: Optional[str] = None
    model: Optional[str] = None
    trailer_id: Optional[int] = None
    trailer_number: Optional[str] = None
    active: bool
    status: str
    created_at: datetime

    @classmethod
    def from_assignment(cls, assignment: Assignment) -> "AssignmentResponse":
        return cls(
            id=assignment.id,
            user_id=assignment.user_id,
            user_email=assignment.user.email if assignment.user else None,
            vehicle_id=assignment.vehicle_id,
            registration=assignment.vehicle.registration if assignment.vehicle else None,
            model=assignment.vehicle.model if assignment.vehicle else None,
            trailer_id=assignment.trailer_id,
            trailer_number=assignment.trailer.number if assignment.trailer else None,
            active=assignment.active,
            status=assignment.status.value,
            created_at=assignment.created_at,
        )


class AssignmentListResponse(BaseModel):
    assignments: List[AssignmentResponse]
    total: int
