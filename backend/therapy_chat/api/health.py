"""Health check endpoint for infrastructure monitoring."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends

from therapy_chat.config import Settings, get_settings
from therapy_chat.dependencies import get_session_store
from therapy_chat.memory.session_store import SessionStore

logger = logging.getLogger(__name__)
router = APIRouter()


async def _check_mongodb(store: SessionStore) -> dict[str, Any]:
    """Ping MongoDB and return status."""
    try:
        await store.ping()
        return {"status": "healthy"}
    except Exception as exc:
        logger.warning("MongoDB health check failed: %s", exc)
        return {"status": "unhealthy", "error": str(exc)}


def _check_oracle(settings: Settings) -> dict[str, Any]:
    """Report whether the language model is configured."""
    if settings.google_api_key:
        return {"status": "healthy", "model": settings.gemini_model}
    return {"status": "unhealthy", "error": "GOOGLE_API_KEY not configured"}


@router.get("")
async def health_check(
    settings: Settings = Depends(get_settings),
    store: SessionStore = Depends(get_session_store),
) -> dict[str, Any]:
    """Return aggregate health of all backend services.

    A missing model key degrades the service but does not stop it: replies
    fall back to fixed text.
    """
    services = {
        "mongodb": await _check_mongodb(store),
        "gemini": _check_oracle(settings),
    }

    overall = (
        "healthy"
        if all(s["status"] == "healthy" for s in services.values())
        else "degraded"
    )

    return {
        "status": overall,
        "services": services,
    }
