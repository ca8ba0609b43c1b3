"""Typed failures raised by the session and message pipelines.

Every pipeline entry point reports caller mistakes and store failures with one
of these classes. ``main.py`` maps them onto HTTP responses of the shape::

    {"error": "<code>", "message": "<human readable message>"}

``OracleError`` never leaves the pipelines: model failures are always
converted into fallback values before a result is assembled.
"""

from __future__ import annotations


class TherapyChatError(Exception):
    """Base class for all expected service failures."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message()
        super().__init__(self.message)

    @classmethod
    def default_message(cls) -> str:
        return "Internal server error"

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "message": self.message}


class ValidationError(TherapyChatError):
    """Malformed or missing input. No state was changed."""

    status_code = 400
    code = "validation_error"

    @classmethod
    def default_message(cls) -> str:
        return "Invalid request"


class UnauthenticatedError(TherapyChatError):
    """No verified caller identity was supplied."""

    status_code = 401
    code = "unauthenticated"

    @classmethod
    def default_message(cls) -> str:
        return "Unauthorized"


class ForbiddenError(TherapyChatError):
    """The caller does not own the referenced session."""

    status_code = 403
    code = "forbidden"

    @classmethod
    def default_message(cls) -> str:
        return "You can only access your own sessions"


class NotFoundError(TherapyChatError):
    """The referenced session does not exist."""

    status_code = 404
    code = "not_found"

    @classmethod
    def default_message(cls) -> str:
        return "Session not found"


class OracleError(TherapyChatError):
    """The language model failed or returned something unusable."""

    status_code = 502
    code = "oracle_error"

    @classmethod
    def default_message(cls) -> str:
        return "Language model request failed"


class PersistenceError(TherapyChatError):
    """A session store write or read failed."""

    status_code = 500
    code = "persistence_error"

    @classmethod
    def default_message(cls) -> str:
        return "Failed to persist session data"


class TopicGenerationError(TherapyChatError):
    """Neither the model nor the keyword fallback produced a topic.

    Still carries a usable placeholder ``topic`` for the caller.
    """

    status_code = 500
    code = "topic_generation_failed"

    def __init__(self, topic: str, message: str | None = None) -> None:
        self.topic = topic
        super().__init__(message)

    @classmethod
    def default_message(cls) -> str:
        return "Failed to generate topic"

    def to_dict(self) -> dict[str, str]:
        return {**super().to_dict(), "topic": self.topic}
