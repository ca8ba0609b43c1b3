"""Message pipeline: one user message in, one enriched exchange stored.

Order of operations for :meth:`MessagePipeline.submit_message`:

1. validate the text, the caller and session ownership
2. store the user turn (nothing below runs if this write fails)
3. publish a telemetry event (best effort)
4. ask the model for a JSON analysis, falling back to ``FALLBACK_ANALYSIS``
5. ask the model for a reply, falling back to ``FALLBACK_REPLY``
6. store the assistant turn carrying the analysis and progress snapshot

Steps 4 and 5 are independent: a failed analysis never prevents a reply and
a failed reply never discards a good analysis.
"""

from __future__ import annotations

import logging
from typing import Any

import pydantic

from therapy_chat.agent.fallbacks import FALLBACK_REPLY, fallback_analysis
from therapy_chat.agent.oracle import Oracle, OracleResult, decode_json_object
from therapy_chat.agent.prompts import build_analysis_prompt, build_reply_prompt
from therapy_chat.errors import PersistenceError, TherapyChatError, ValidationError
from therapy_chat.memory.session_store import SessionStore
from therapy_chat.models.messages import (
    Analysis,
    ChatMessage,
    MessageResult,
    ProgressSnapshot,
)
from therapy_chat.personality.loader import get_system_prompt
from therapy_chat.pipeline.guards import require_user
from therapy_chat.pipeline.sessions import load_owned_session
from therapy_chat.telemetry.events import SESSION_MESSAGE_EVENT, EventPublisher

logger = logging.getLogger(__name__)

LOG_PREVIEW_CHARS = 100


def validate_message_text(raw_text: Any) -> str:
    """Return the trimmed message or raise :class:`ValidationError`."""
    if not isinstance(raw_text, str) or not raw_text.strip():
        raise ValidationError("Message cannot be empty")
    return raw_text.strip()


def _to_analysis(data: dict[str, Any]) -> OracleResult:
    try:
        return OracleResult.success(Analysis.model_validate(data))
    except pydantic.ValidationError as exc:
        return OracleResult.failure(
            f"analysis did not match schema ({exc.error_count()} errors)"
        )


def _result(reply: str, analysis: Analysis) -> MessageResult:
    return MessageResult(
        reply=reply,
        analysis=analysis,
        progress=ProgressSnapshot.from_analysis(analysis),
    )


class MessagePipeline:
    """Turns a user message into a stored user/assistant exchange."""

    def __init__(
        self,
        store: SessionStore,
        oracle: Oracle,
        events: EventPublisher,
    ) -> None:
        self._store = store
        self._oracle = oracle
        self._events = events

    async def submit_message(
        self, session_id: str, user_id: str | None, raw_text: Any
    ) -> MessageResult:
        """Process one user message for ``session_id``.

        Raises:
            ValidationError: empty or non-text message.
            UnauthenticatedError: no caller identity.
            NotFoundError: unknown session.
            ForbiddenError: caller does not own the session.
            PersistenceError: a session write failed.
        """
        text = validate_message_text(raw_text)
        user_id = require_user(user_id)
        session = await load_owned_session(self._store, session_id, user_id)

        logger.info(
            "Processing message: session=%s message=%s",
            session_id,
            text[:LOG_PREVIEW_CHARS],
        )

        user_turn = ChatMessage.user(text)
        await self._append(session_id, user_turn)
        history = [*session.messages, user_turn]

        try:
            return await self._respond(session_id, text, history)
        except TherapyChatError:
            raise
        except Exception:
            # The user turn is already stored; answer rather than drop it.
            logger.exception(
                "Unexpected failure after storing user turn in session %s", session_id
            )
            return _result(FALLBACK_REPLY, fallback_analysis())

    async def _respond(
        self, session_id: str, text: str, history: list[ChatMessage]
    ) -> MessageResult:
        await self._publish_event(text, history)

        analysis = await self._analyze(text)
        reply = await self._generate_reply(text)

        await self._append(session_id, ChatMessage.assistant(reply, analysis))
        logger.info(
            "Session updated successfully: session=%s messages=%d",
            session_id,
            len(history) + 1,
        )
        return _result(reply, analysis)

    async def _append(self, session_id: str, message: ChatMessage) -> None:
        try:
            await self._store.append_message(session_id, message)
        except TherapyChatError:
            raise
        except Exception as exc:
            logger.exception(
                "Failed to store %s turn in session %s", message.role, session_id
            )
            raise PersistenceError(f"Failed to save message: {exc}") from exc

    async def _publish_event(self, text: str, history: list[ChatMessage]) -> None:
        try:
            await self._events.publish(
                SESSION_MESSAGE_EVENT, _event_payload(text, history)
            )
        except Exception as exc:
            logger.warning("Telemetry event %s failed: %s", SESSION_MESSAGE_EVENT, exc)

    async def _complete(self, build_prompt, text: str) -> OracleResult:
        """Call the model; adapter exceptions become failures."""
        try:
            return await self._oracle.complete(build_prompt(text))
        except Exception as exc:
            logger.warning("Oracle call raised %s: %s", type(exc).__name__, exc)
            return OracleResult.failure(str(exc) or type(exc).__name__)

    async def _analyze(self, text: str) -> Analysis:
        completion = await self._complete(build_analysis_prompt, text)
        try:
            result = completion.then(decode_json_object).then(_to_analysis)
        except Exception as exc:
            result = OracleResult.failure(f"could not decode analysis: {exc}")
        if not result.ok:
            logger.warning("Analysis failed, using fallback: %s", result.reason)
            return fallback_analysis()
        logger.info("Message analysis successful: %s", result.value.emotional_state)
        return result.value

    async def _generate_reply(self, text: str) -> str:
        result = await self._complete(build_reply_prompt, text)
        reply = result.value.strip() if result.ok and isinstance(result.value, str) else ""
        if not reply:
            logger.warning(
                "Response generation failed, using fallback: %s",
                result.reason or "empty reply",
            )
            return FALLBACK_REPLY
        logger.info("Response generated successfully, length=%d", len(reply))
        return reply


def _event_payload(text: str, history: list[ChatMessage]) -> dict[str, Any]:
    return {
        "message": text,
        "history": [
            m.model_dump(mode="json", by_alias=True, exclude_none=True)
            for m in history
        ],
        "memory": {
            "userProfile": {
                "emotionalState": [],
                "riskLevel": 0,
                "preferences": {},
            },
            "sessionContext": {
                "conversationThemes": [],
                "currentTechnique": None,
            },
        },
        "goals": [],
        "systemPrompt": get_system_prompt(),
    }
