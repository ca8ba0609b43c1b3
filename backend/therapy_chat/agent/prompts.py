"""Prompt builders for message analysis, replies and topic titles."""

from __future__ import annotations

from typing import Any, Iterable

from therapy_chat.personality.loader import default_personality

TRANSCRIPT_CONTENT_LIMIT = 200


def _bullets(items: Iterable[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def build_analysis_prompt(message: str) -> str:
    """Ask for a bare JSON assessment of one user message."""
    return f"""Analyze this therapy message and provide insights. Return ONLY a valid JSON object with no markdown formatting or additional text.
Message: {message}

Required JSON structure:
{{
  "emotionalState": "string",
  "themes": ["string"],
  "riskLevel": 1,
  "recommendedApproach": "string",
  "progressIndicators": ["string"]
}}"""


def build_reply_prompt(message: str) -> str:
    """Ask for a free-text therapeutic reply to one user message."""
    persona = default_personality()
    guidelines = persona.get("reply_guidelines", [])
    intro = persona.get("reply_intro", "You are an AI therapist assistant.")
    return f"""{intro} Provide a helpful, empathetic response to this message:

Message: {message}

Guidelines:
{_bullets(guidelines)}"""


def _transcript_line(message: Any) -> str:
    if isinstance(message, dict):
        role, content = message.get("role", ""), message.get("content", "")
    else:
        role, content = message.role, message.content
    content = str(content or "")
    suffix = "..." if len(content) > TRANSCRIPT_CONTENT_LIMIT else ""
    return f"{role}: {content[:TRANSCRIPT_CONTENT_LIMIT]}{suffix}"


def build_topic_prompt(messages: Iterable[Any]) -> str:
    """Ask for a short empathetic title for a conversation."""
    persona = default_personality()
    transcript = "\n".join(_transcript_line(m) for m in messages)
    examples = [f'"{example}"' for example in persona.get("topic_examples", [])]
    return f"""Based on the following therapy conversation, generate a short, empathetic topic title (maximum 4 words) that captures the main theme or concern being discussed.

Conversation:
{transcript}

Guidelines:
{_bullets(persona.get("topic_guidelines", []))}

Examples of good topics:
{_bullets(examples)}

Generate only the topic title, nothing else:"""
