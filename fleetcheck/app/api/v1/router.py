"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from fleetcheck.app.api.v1.endpoints import auth, admin, driver

router = APIRouter()

# Include authentication endpoints
router.include_router(auth.router)

# Admin back office: users, fleet, assignments, templates, reports
router.include_router(admin.router)

# Driver mobile app: daily checklist and submission
router.include_router(driver.router)
