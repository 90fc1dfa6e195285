"""API v1 router: all admin JSON endpoints under /api/v1 prefix."""

from fastapi import APIRouter

from .cron_logs.routes import router as cron_logs_router
from .hadiths.routes import router as hadiths_router
from .notifications.routes import router as notifications_router

api_v1_router = APIRouter(prefix="/api/v1", tags=["api-v1"])

api_v1_router.include_router(notifications_router)
api_v1_router.include_router(hadiths_router)
api_v1_router.include_router(cron_logs_router)
