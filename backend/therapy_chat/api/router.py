"""Central API routers that aggregate all route modules."""

from fastapi import APIRouter

from therapy_chat.api.chat import router as chat_router
from therapy_chat.api.health import router as health_router

api_router = APIRouter()

api_router.include_router(health_router, prefix="/health", tags=["health"])

__all__ = ["api_router", "chat_router"]
