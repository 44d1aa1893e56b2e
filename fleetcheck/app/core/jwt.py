"""
Bearer token helpers.

Tokens carry the user's id, email (``sub``) and role. The role in the token is
informational only; ``get_current_user`` reloads it from the database.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from fleetcheck.app.core.config import settings

REQUIRED_CLAIMS = ("sub", "user_id", "exp")


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign ``data`` into an access token expiring after ``expires_delta``
    (``access_token_expire_minutes`` by default).
    """
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {**data, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def token_for_user(user) -> str:
    return create_access_token({"sub": user.email, "user_id": user.id, "role": user.role.value})


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Claims of a valid, unexpired token, or None."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if any(claim not in payload for claim in REQUIRED_CLAIMS):
        return None
    return payload
