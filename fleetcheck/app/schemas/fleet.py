"""
User, vehicle and trailer Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from fleetcheck.app.models.enums import UserRole


class UserCreate(BaseModel):
    """Schema for an admin creating a driver or admin account."""
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6, max_length=128)
    role: UserRole = UserRole.DRIVER


class UserResponse(BaseModel):
    id: int
    email: str
    role: UserRole
    created_at: datetime

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    users: List[UserResponse]
    total: int


class VehicleCreate(BaseModel):
    """Schema for registering a vehicle."""
    registration: str = Field(..., min_length=1, max_length=50, description="Unique registration plate")
    model: str = Field(..., min_length=1, max_length=200)


class VehicleResponse(BaseModel):
    id: int
    registration: str
    model: str
    archive_folder_id: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class VehicleListResponse(BaseModel):
    vehicles: List[VehicleResponse]
    total: int


class TrailerCreate(BaseModel):
    number: str = Field(..., min_length=1, max_length=50, description="Unique trailer number")


class TrailerResponse(BaseModel):
    id: int
    number: str
    created_at: datetime

    class Config:
        from_attributes = True


class TrailerListResponse(BaseModel):
    trailers: List[TrailerResponse]
    total: int
