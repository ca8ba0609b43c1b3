"""Topic pipeline: short conversation titles and their storage."""

from __future__ import annotations

import logging
from typing import Any

from therapy_chat.agent.fallbacks import ULTIMATE_FALLBACK_TOPIC, fallback_topic
from therapy_chat.agent.oracle import Oracle
from therapy_chat.agent.prompts import build_topic_prompt
from therapy_chat.errors import TopicGenerationError, ValidationError
from therapy_chat.memory.session_store import SessionStore
from therapy_chat.models.sessions import TOPIC_MAX_LENGTH
from therapy_chat.pipeline.guards import require_user
from therapy_chat.pipeline.sessions import load_owned_session

logger = logging.getLogger(__name__)

GENERATED_TOPIC_MAX_LENGTH = 50


def clean_topic(raw: str) -> str:
    """Drop quote characters and surrounding whitespace from model output."""
    return raw.replace('"', "").replace("'", "").strip()


class TopicPipeline:
    """Generates and stores session topics."""

    def __init__(self, store: SessionStore, oracle: Oracle) -> None:
        self._store = store
        self._oracle = oracle

    async def generate_topic(self, user_id: str | None, messages: Any) -> str:
        """Return a short title for ``messages``.

        Never fails because of the model: an unusable answer is replaced by
        :func:`fallback_topic`. If that fallback fails too,
        :class:`TopicGenerationError` is raised carrying
        ``ULTIMATE_FALLBACK_TOPIC``.
        """
        if not isinstance(messages, list) or not messages:
            raise ValidationError("Messages array is required and cannot be empty")
        require_user(user_id)

        logger.info("Generating topic for %d messages", len(messages))
        try:
            result = await self._oracle.complete(build_topic_prompt(messages))
        except Exception:
            logger.exception("Error generating topic")
            return self._fallback(messages)

        if not result.ok:
            logger.warning("Topic generation failed, using fallback: %s", result.reason)
            return self._fallback(messages)

        topic = clean_topic(str(result.value))

        if not topic or len(topic) > GENERATED_TOPIC_MAX_LENGTH:
            logger.info("Generated topic unusable (%r), using fallback", topic[:80])
            return self._fallback(messages)

        logger.info("Generated topic: %s", topic)
        return topic

    @staticmethod
    def _fallback(messages: list[Any]) -> str:
        try:
            return fallback_topic(messages)
        except Exception:
            logger.exception("Fallback topic generation failed")
            raise TopicGenerationError(ULTIMATE_FALLBACK_TOPIC) from None

    async def update_session_topic(
        self, session_id: str, user_id: str | None, topic: Any
    ) -> str:
        """Store ``topic`` (trimmed, capped at 100 characters) on the session."""
        if not isinstance(topic, str) or not topic.strip():
            raise ValidationError("Topic is required and must be a non-empty string")
        require_user(user_id)
        await load_owned_session(self._store, session_id, user_id)

        stored = topic.strip()[:TOPIC_MAX_LENGTH]
        await self._store.set_topic(session_id, stored)
        logger.info("Session topic updated: session=%s topic=%s", session_id, stored)
        return stored
