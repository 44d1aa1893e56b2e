"""
Authentication API endpoints.

Provides login and current-user endpoints for the mobile app.
Accounts are created by admins (see admin endpoints) or the seed script.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from fleetcheck.app.db.session import get_db
from fleetcheck.app.models.user import User
from fleetcheck.app.schemas.auth import UserLogin, TokenResponse
from fleetcheck.app.schemas.fleet import UserResponse
from fleetcheck.app.core.jwt import token_for_user
from fleetcheck.app.core.dependencies import get_current_user
from fleetcheck.app.core.exceptions import AuthenticationError
from fleetcheck.app.services.audit import log_event, AuditAction
from fleetcheck.app.services.users import authenticate_user, normalize_email

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """
    Exchange email + password for a bearer token.

    Returns 401 for unknown email or wrong password (same message for both).
    """
    user = await authenticate_user(db, credentials.email, credentials.password)

    if not user:
        await log_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            actor_email=normalize_email(credentials.email),
        )
        raise AuthenticationError("Invalid credentials")

    token = token_for_user(user)

    await log_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        actor_id=user.id,
        actor_email=user.email,
    )

    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def me(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Return the authenticated user."""
    user = await db.get(User, current_user["user_id"])
    return UserResponse.model_validate(user)
