"""FastAPI application entry point with lifespan management."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from therapy_chat.api.router import api_router, chat_router
from therapy_chat.config import settings
from therapy_chat.dependencies import get_event_publisher, get_session_store
from therapy_chat.errors import TherapyChatError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    logger.info("Starting %s backend...", settings.app_name)

    # Connect the session store (MongoDB)
    store = get_session_store()
    await store.initialize()
    logger.info("Session store initialized successfully")

    events = get_event_publisher()

    yield

    # Cleanup
    await events.close()
    await store.close()
    logger.info("%s backend shut down cleanly", settings.app_name)


app = FastAPI(
    title="Therapy Chat API",
    description="Therapy-assistant chat sessions with per-message analysis",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.frontend_url,
        "http://localhost:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TherapyChatError)
async def therapy_chat_error_handler(
    request: Request, exc: TherapyChatError
) -> JSONResponse:
    """Render typed pipeline failures as ``{"error", "message"}``."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Mount routes
app.include_router(api_router, prefix="/api")
app.include_router(chat_router, prefix="/chat", tags=["chat"])

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
