"""Session models for conversation management."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from therapy_chat.models.messages import CamelModel, ChatMessage, utcnow

TOPIC_MAX_LENGTH = 100


class SessionStatus(str, Enum):
    """Lifecycle state of a session."""

    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"


class ChatSession(CamelModel):
    """A persisted conversation owned by exactly one user."""

    session_id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    messages: list[ChatMessage] = Field(default_factory=list)
    topic: Optional[str] = Field(default=None, max_length=TOPIC_MAX_LENGTH)
    status: SessionStatus = SessionStatus.ACTIVE
    start_time: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class SessionSummary(CamelModel):
    """Summary of a session for list views."""

    session_id: str
    topic: Optional[str] = None
    start_time: datetime
    status: SessionStatus
    created_at: datetime
    updated_at: datetime
    messages: list[ChatMessage] = Field(default_factory=list)
    message_count: int = 0

    @classmethod
    def from_session(cls, session: ChatSession) -> "SessionSummary":
        return cls(
            session_id=session.session_id,
            topic=session.topic,
            start_time=session.start_time,
            status=session.status,
            created_at=session.created_at,
            updated_at=session.updated_at,
            messages=session.messages,
            message_count=len(session.messages),
        )


class SessionCreatedResponse(CamelModel):
    message: str = "Chat session created successfully"
    session_id: str


class SessionHistoryResponse(CamelModel):
    session_id: str
    messages: list[ChatMessage]
    start_time: datetime
    status: SessionStatus


class SessionDeletedResponse(CamelModel):
    success: bool = True
    message: str = "Session deleted successfully"
    session_id: str


class TopicRequest(BaseModel):
    """Body of ``PATCH /chat/sessions/{id}/topic``."""

    topic: Any = None


class TopicUpdatedResponse(CamelModel):
    success: bool = True
    topic: str
    message: str = "Topic updated successfully"


class GenerateTopicRequest(BaseModel):
    """Body of ``POST /chat/generate-topic``."""

    messages: Any = None


class GenerateTopicResponse(CamelModel):
    topic: str


class StatusRequest(BaseModel):
    """Body of ``PATCH /chat/sessions/{id}/status``."""

    status: Any = None


class StatusUpdatedResponse(CamelModel):
    success: bool = True
    status: SessionStatus
