"""
User store helpers: creation, lookup and credential checks.
"""

import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from fleetcheck.app.core.exceptions import DuplicateResourceError, ValidationFailedError
from fleetcheck.app.core.security import get_password_hash, verify_password
from fleetcheck.app.models.enums import UserRole
from fleetcheck.app.models.user import User

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    email: str,
    password: str,
    role: UserRole = UserRole.DRIVER,
) -> User:
    """
    Create a user with a bcrypt-hashed password.

    Raises:
        ValidationFailedError: empty email or password
        DuplicateResourceError: email already registered (case-insensitive)
    """
    email = normalize_email(email)
    if not email:
        raise ValidationFailedError("email is required", field="email")
    if not password:
        raise ValidationFailedError("password is required", field="password")

    if await get_user_by_email(db, email):
        raise DuplicateResourceError("User", "email", email)

    user = User(email=email, hashed_password=get_password_hash(password), role=role)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateResourceError("User", "email", email)

    await db.refresh(user)
    logger.info(f"Created {role.value} user {user.id} ({email})")
    return user


async def list_users(db: AsyncSession, role: Optional[UserRole] = None) -> list[User]:
    query = select(User).order_by(User.created_at.desc(), User.id.desc())
    if role:
        query = query.where(User.role == role)
    result = await db.execute(query)
    return list(result.scalars().all())


async def authenticate_user(db: AsyncSession, email: str, password: str) -> Optional[User]:
    """Return the user when the credentials match, None otherwise."""
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.hashed_password):
        return None
    return user
