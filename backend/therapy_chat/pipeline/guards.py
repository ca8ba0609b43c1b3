"""Single ownership check shared by every session entry point."""

from __future__ import annotations

from enum import Enum

from therapy_chat.errors import ForbiddenError, UnauthenticatedError
from therapy_chat.models.sessions import ChatSession


class AccessVerdict(str, Enum):
    ALLOWED = "allowed"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


def authorize(session: ChatSession, user_id: str | None) -> AccessVerdict:
    """Decide whether ``user_id`` may act on ``session``."""
    if not user_id:
        return AccessVerdict.UNAUTHENTICATED
    if str(session.user_id) != str(user_id):
        return AccessVerdict.FORBIDDEN
    return AccessVerdict.ALLOWED


def require_user(user_id: str | None) -> str:
    """Return the caller identity or raise :class:`UnauthenticatedError`."""
    if not user_id:
        raise UnauthenticatedError()
    return user_id


def require_owner(session: ChatSession, user_id: str | None) -> ChatSession:
    """Raise the matching typed error unless ``user_id`` owns ``session``."""
    verdict = authorize(session, user_id)
    if verdict is AccessVerdict.UNAUTHENTICATED:
        raise UnauthenticatedError()
    if verdict is AccessVerdict.FORBIDDEN:
        raise ForbiddenError()
    return session
