"""Central router that includes all sub-routers."""

from fastapi import APIRouter

from marketplace.api.auth import router as auth_router
from marketplace.api.properties import router as properties_router
from marketplace.api.moderation import router as moderation_router
from marketplace.api.appeals import router as appeals_router
from marketplace.api.notifications import router as notifications_router
from marketplace.api.admin import router as admin_router

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(properties_router)
api_router.include_router(moderation_router)
api_router.include_router(appeals_router)
api_router.include_router(notifications_router)
api_router.include_router(admin_router)
