"""Chat session endpoints: sessions, messages and topics.

Every endpoint requires a caller identity (see ``therapy_chat.auth``) and,
for a specific session, that the caller owns it. Typed failures raised by the
pipelines are rendered by the handler registered in ``main.py``.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from therapy_chat.auth import get_current_user
from therapy_chat.dependencies import (
    get_message_pipeline,
    get_session_service,
    get_topic_pipeline,
)
from therapy_chat.errors import TherapyChatError
from therapy_chat.models.messages import (
    ChatMessage,
    SendMessageRequest,
    SendMessageResponse,
)
from therapy_chat.models.sessions import (
    ChatSession,
    GenerateTopicRequest,
    GenerateTopicResponse,
    SessionCreatedResponse,
    SessionDeletedResponse,
    SessionSummary,
    StatusRequest,
    StatusUpdatedResponse,
    TopicRequest,
    TopicUpdatedResponse,
)
from therapy_chat.pipeline.messages import MessagePipeline
from therapy_chat.pipeline.sessions import SessionService
from therapy_chat.pipeline.topics import TopicPipeline

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/sessions",
    response_model=SessionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_session(
    user_id: str | None = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> SessionCreatedResponse:
    """Create an empty, active session owned by the caller."""
    session = await service.create_session(user_id)
    return SessionCreatedResponse(session_id=session.session_id)


@router.get("/sessions", response_model=list[SessionSummary])
async def list_sessions(
    user_id: str | None = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> list[SessionSummary]:
    """Return the caller's sessions, most recently updated first."""
    return await service.list_sessions(user_id)


@router.get("/sessions/{session_id}", response_model=ChatSession)
async def get_session(
    session_id: str,
    user_id: str | None = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> ChatSession:
    return await service.get_session(session_id, user_id)


@router.post("/sessions/{session_id}/messages", response_model=SendMessageResponse)
async def send_message(
    session_id: str,
    payload: Optional[SendMessageRequest] = None,
    user_id: str | None = Depends(get_current_user),
    pipeline: MessagePipeline = Depends(get_message_pipeline),
) -> SendMessageResponse:
    """Store the user's message and return the assistant's reply and analysis."""
    raw_text = payload.message if payload is not None else None
    try:
        result = await pipeline.submit_message(session_id, user_id, raw_text)
    except TherapyChatError:
        raise
    except Exception as exc:
        logger.exception("Error in send_message for session %s", session_id)
        raise HTTPException(
            status_code=500,
            detail={"message": "Error processing message", "error": str(exc)},
        )
    return SendMessageResponse.from_result(result)


@router.get("/sessions/{session_id}/history", response_model=list[ChatMessage])
async def get_session_history(
    session_id: str,
    user_id: str | None = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> list[ChatMessage]:
    """Return the session's messages in conversation order."""
    return await service.get_history(session_id, user_id)


@router.patch("/sessions/{session_id}/topic", response_model=TopicUpdatedResponse)
async def update_session_topic(
    session_id: str,
    payload: Optional[TopicRequest] = None,
    user_id: str | None = Depends(get_current_user),
    pipeline: TopicPipeline = Depends(get_topic_pipeline),
) -> TopicUpdatedResponse:
    topic = payload.topic if payload is not None else None
    stored = await pipeline.update_session_topic(session_id, user_id, topic)
    return TopicUpdatedResponse(topic=stored)


@router.patch("/sessions/{session_id}/status", response_model=StatusUpdatedResponse)
async def update_session_status(
    session_id: str,
    payload: Optional[StatusRequest] = None,
    user_id: str | None = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> StatusUpdatedResponse:
    new_status = await service.update_status(
        session_id, user_id, payload.status if payload is not None else None
    )
    return StatusUpdatedResponse(status=new_status)


@router.delete("/sessions/{session_id}", response_model=SessionDeletedResponse)
async def delete_session(
    session_id: str,
    user_id: str | None = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
) -> SessionDeletedResponse:
    """Delete a session and its history."""
    await service.delete_session(session_id, user_id)
    return SessionDeletedResponse(session_id=session_id)


@router.post("/generate-topic", response_model=GenerateTopicResponse)
async def generate_topic(
    payload: Optional[GenerateTopicRequest] = None,
    user_id: str | None = Depends(get_current_user),
    pipeline: TopicPipeline = Depends(get_topic_pipeline),
) -> GenerateTopicResponse:
    """Suggest a short title for a list of ``{role, content}`` messages."""
    messages = payload.messages if payload is not None else None
    topic = await pipeline.generate_topic(user_id, messages)
    return GenerateTopicResponse(topic=topic)
