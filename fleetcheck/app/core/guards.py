"""
Role guards for admin and driver endpoints.
"""

from typing import List
from fastapi import Depends
from fleetcheck.app.models.enums import UserRole
from fleetcheck.app.core.dependencies import get_current_user
from fleetcheck.app.core.exceptions import InsufficientPermissionsError


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/driver/daily")
        async def daily(current_user: dict = Depends(require_role([UserRole.DRIVER]))):
            ...

    Raises:
        InsufficientPermissionsError (403) if the caller's role is not in ``allowed_roles``
    """
    allowed = {role.value for role in allowed_roles}

    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        if current_user.get("role") not in allowed:
            raise InsufficientPermissionsError(
                f"Access denied. Required role: {', '.join(sorted(allowed))}",
                details={"role": current_user.get("role")},
            )
        return current_user

    return role_checker


async def require_admin(current_user: dict = Depends(get_current_user)) -> dict:
    """Dependency for admin-only endpoints."""
    if current_user.get("role") != UserRole.ADMIN.value:
        raise InsufficientPermissionsError("Admin access required")
    return current_user
