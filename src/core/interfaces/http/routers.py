"""API router configuration."""

from fastapi import APIRouter

from src.modules.monitors.interfaces.router import activity_router
from src.modules.monitors.interfaces.router import router as monitors_router

api_router = APIRouter()

# Monitor targets (configuration surface)
api_router.include_router(monitors_router)

# Pre-computed activity views (read-only)
api_router.include_router(activity_router)
