"""
Authentication schemas.
"""

from pydantic import BaseModel

from fleetcheck.app.schemas.fleet import UserResponse


class UserLogin(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
