"""Deterministic substitutes used when the language model is unusable."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from therapy_chat.models.messages import Analysis, MessageRole

NEW_CHAT_TOPIC = "💬 New Chat"
ULTIMATE_FALLBACK_TOPIC = "💬 Therapy Session"
GENERIC_TOPIC_PREFIX = "💬"

FALLBACK_ANALYSIS = Analysis(
    emotional_state="seeking_support",
    themes=["anxiety_management"],
    risk_level=1,
    recommended_approach="cognitive_behavioral",
    progress_indicators=["active_engagement"],
)

FALLBACK_REPLY = (
    "I hear that you're looking for support with managing anxiety. That's a "
    "very common concern, and it's great that you're reaching out. There are "
    "several effective strategies we can explore together. What specific "
    "situations tend to trigger your anxiety the most?"
)

# Checked in this order; the first keyword found in the message wins.
TOPIC_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("anxiety", "💭 Anxiety Support"),
    ("anxious", "💭 Anxiety Support"),
    ("worried", "💭 Anxiety Support"),
    ("stress", "😰 Stress Management"),
    ("stressed", "😰 Stress Management"),
    ("overwhelmed", "🌊 Feeling Overwhelmed"),
    ("sleep", "😴 Sleep Issues"),
    ("insomnia", "😴 Sleep Problems"),
    ("tired", "😴 Sleep & Energy"),
    ("depression", "🌧️ Depression Support"),
    ("depressed", "🌧️ Depression Support"),
    ("sad", "😢 Emotional Support"),
    ("work", "💼 Work Issues"),
    ("job", "💼 Work Stress"),
    ("relationship", "💕 Relationship Help"),
    ("partner", "💕 Relationship Issues"),
    ("family", "👨‍👩‍👧‍👦 Family Matters"),
    ("panic", "⚡ Panic Support"),
    ("anger", "😡 Anger Management"),
    ("angry", "😡 Anger Management"),
    ("lonely", "🤗 Loneliness Support"),
    ("confidence", "💪 Building Confidence"),
    ("self-esteem", "💪 Self-Worth"),
    ("grief", "💙 Grief Support"),
    ("loss", "💙 Coping with Loss"),
)


def fallback_analysis() -> Analysis:
    """Return a fresh copy of the default analysis."""
    return FALLBACK_ANALYSIS.model_copy(deep=True)


def _role_and_content(message: Any) -> tuple[str, str]:
    if isinstance(message, Mapping):
        role, content = message.get("role", ""), message.get("content")
    else:
        role, content = getattr(message, "role", ""), getattr(message, "content", "")
    return str(getattr(role, "value", role)), str(content or "")


def fallback_topic(messages: Iterable[Any] | None) -> str:
    """Derive a topic label from the first user message without the model.

    Accepts ``ChatMessage`` objects or ``{"role", "content"}`` mappings.
    """
    if not messages:
        return NEW_CHAT_TOPIC

    first_user_content = None
    for message in messages:
        role, content = _role_and_content(message)
        if role == MessageRole.USER.value:
            first_user_content = content
            break
    if first_user_content is None:
        return NEW_CHAT_TOPIC

    text = first_user_content.lower()
    for keyword, topic in TOPIC_KEYWORDS:
        if keyword in text:
            return topic

    words = " ".join(text.split(" ")[:3])
    return f"{GENERIC_TOPIC_PREFIX} {words[:1].upper()}{words[1:]}"
