"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Health and auth routers are open. Users and resources routers
take the current identity per route (they need its user_id), so
authentication is declared on each handler rather than on the router.
"""

from fastapi import APIRouter

from svipp.api.auth import router as auth_router
from svipp.api.health import router as health_router
from svipp.api.resources import router as resources_router
from svipp.api.users import router as users_router

api_router = APIRouter(prefix="/api/v1")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes — require a valid session token (header or cookie)
api_router.include_router(users_router, tags=["users"])
api_router.include_router(resources_router, tags=["locations", "drivers"])
