"""
Enumerations shared by the FleetCheck models.

Defines user roles, the assignment lifecycle and checklist item statuses.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Manages vehicles, trailers, drivers, assignments and templates
        DRIVER: Fills in the daily walkaround checklist (default role)
    """
    ADMIN = "admin"
    DRIVER = "driver"


class AssignmentStatus(str, enum.Enum):
    """
    Assignment lifecycle.

    ACTIVE -> SUPERSEDED when a newer assignment claims the same driver,
    vehicle or trailer; ACTIVE <-> INACTIVE when an admin toggles it.
    """
    ACTIVE = "active"
    SUPERSEDED = "superseded"
    INACTIVE = "inactive"


class ChecklistItemStatus(str, enum.Enum):
    """Outcome recorded for a single checklist item."""
    OK = "ok"
    ISSUE = "issue"
    NA = "na"
