"""
Request dependencies for FastAPI.

This module provides dependencies for protecting routes with JWT authentication
and for wiring the checklist pipeline to its renderer and archive uploader.
"""

from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from fleetcheck.app.core.jwt import decode_access_token
from fleetcheck.app.db.session import get_db
from fleetcheck.app.models.user import User
from fleetcheck.app.services.archive import ArchiveUploader, get_archive_uploader
from fleetcheck.app.services.checklist_pipeline import ChecklistPipeline
from fleetcheck.app.services.document_renderer import DocumentRenderer, get_document_renderer

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    FastAPI dependency for JWT authentication.

    1. Validates JWT token signature and expiry
    2. Verifies the user still exists in the database

    Returns:
        Decoded token payload containing user information

    Raises:
        HTTPException: 401 if authentication fails for any reason
    """
    token = credentials.credentials

    payload = decode_access_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Role and email always come from the database, not the token
    payload["role"] = user.role.value
    payload["sub"] = user.email
    return payload


def get_checklist_pipeline(
    renderer: DocumentRenderer = Depends(get_document_renderer),
    uploader: Optional[ArchiveUploader] = Depends(get_archive_uploader),
) -> ChecklistPipeline:
    """FastAPI dependency wiring the submission pipeline to its collaborators."""
    return ChecklistPipeline(renderer=renderer, uploader=uploader)
