"""Message models for persisted conversation turns and API payloads."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys.

    Stored documents and API responses keep the camelCase shape
    (``emotionalState``, ``riskLevel``...) while Python code uses snake_case.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )

    def to_document(self) -> dict[str, Any]:
        """Return a dict ready to be written to MongoDB."""
        return self.model_dump(by_alias=True, exclude_none=True)


class MessageRole(str, Enum):
    """Message author. Only two authors ever exist."""

    USER = "user"
    ASSISTANT = "assistant"


class Analysis(CamelModel):
    """Structured assessment of a single user message."""

    emotional_state: str
    themes: list[str] = Field(default_factory=list)
    risk_level: int
    recommended_approach: str
    progress_indicators: list[str] = Field(default_factory=list)


class ProgressSnapshot(CamelModel):
    """Lightweight projection of an :class:`Analysis`."""

    emotional_state: str
    risk_level: int

    @classmethod
    def from_analysis(cls, analysis: Analysis) -> "ProgressSnapshot":
        return cls(
            emotional_state=analysis.emotional_state,
            risk_level=analysis.risk_level,
        )


class MessageMetadata(CamelModel):
    """Enrichment attached to assistant turns."""

    technique: Optional[str] = None
    goal: Optional[str] = None
    analysis: Optional[Analysis] = None
    progress: Optional[ProgressSnapshot] = None


class ChatMessage(CamelModel):
    """A single persisted conversation turn."""

    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=utcnow)
    metadata: Optional[MessageMetadata] = None

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must not be empty")
        return value

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role=MessageRole.USER, content=content.strip())

    @classmethod
    def assistant(cls, content: str, analysis: Analysis) -> "ChatMessage":
        return cls(
            role=MessageRole.ASSISTANT,
            content=content,
            metadata=MessageMetadata(
                analysis=analysis,
                progress=ProgressSnapshot.from_analysis(analysis),
            ),
        )


class MessageResult(BaseModel):
    """Outcome of processing one user message."""

    reply: str
    analysis: Analysis
    progress: ProgressSnapshot


class SendMessageRequest(BaseModel):
    """Body of ``POST /chat/sessions/{id}/messages``.

    ``message`` is typed loosely so that the pipeline owns validation.
    """

    message: Any = None


class SendMessageResponse(CamelModel):
    """Response for a processed message.

    ``response`` and ``message`` carry the same reply text; both keys are
    kept for older clients that read either one.
    """

    response: str
    message: str
    analysis: Analysis
    metadata: dict[str, ProgressSnapshot]

    @classmethod
    def from_result(cls, result: MessageResult) -> "SendMessageResponse":
        return cls(
            response=result.reply,
            message=result.reply,
            analysis=result.analysis,
            metadata={"progress": result.progress},
        )
