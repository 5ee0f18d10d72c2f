"""API route aggregation.

All routers registered here get mounted in main.py. Paths sit at the
root (/tasks, /users). There is no version prefix and no auth layer.
"""

from fastapi import APIRouter

from taskify.api.health import router as health_router
from taskify.api.tasks import router as tasks_router
from taskify.api.users import router as users_router

api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(users_router, tags=["users"])
api_router.include_router(tasks_router, tags=["tasks"])
