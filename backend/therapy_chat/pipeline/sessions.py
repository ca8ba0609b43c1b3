"""Session lifecycle operations behind the HTTP surface."""

from __future__ import annotations

import logging

from therapy_chat.errors import NotFoundError, ValidationError
from therapy_chat.memory.session_store import SessionStore
from therapy_chat.models.messages import ChatMessage
from therapy_chat.models.sessions import ChatSession, SessionStatus, SessionSummary
from therapy_chat.pipeline.guards import (
    AccessVerdict,
    authorize,
    require_owner,
    require_user,
)

logger = logging.getLogger(__name__)


async def load_owned_session(
    store: SessionStore, session_id: str, user_id: str | None
) -> ChatSession:
    """Load a session and check that ``user_id`` owns it."""
    session = await store.get_session(session_id)
    if session is None:
        logger.warning("Session not found: %s", session_id)
        raise NotFoundError()
    if authorize(session, user_id) is AccessVerdict.FORBIDDEN:
        logger.warning(
            "Unauthorized access attempt: session=%s user=%s", session_id, user_id
        )
    return require_owner(session, user_id)


class SessionService:
    """Create, read, list and delete sessions for an authenticated caller."""

    def __init__(self, store: SessionStore) -> None:
        self._store = store

    async def create_session(self, user_id: str | None) -> ChatSession:
        user_id = require_user(user_id)
        session = await self._store.create_session(user_id)
        logger.info("Chat session %s created for user %s", session.session_id, user_id)
        return session

    async def get_session(self, session_id: str, user_id: str | None) -> ChatSession:
        require_user(user_id)
        return await load_owned_session(self._store, session_id, user_id)

    async def get_history(
        self, session_id: str, user_id: str | None
    ) -> list[ChatMessage]:
        session = await self.get_session(session_id, user_id)
        return session.messages

    async def list_sessions(self, user_id: str | None) -> list[SessionSummary]:
        user_id = require_user(user_id)
        sessions = await self._store.list_sessions(user_id)
        logger.info("Fetched %d sessions for user %s", len(sessions), user_id)
        return sessions

    async def delete_session(self, session_id: str, user_id: str | None) -> None:
        require_user(user_id)
        await load_owned_session(self._store, session_id, user_id)
        if not await self._store.delete_session(session_id):
            raise NotFoundError()
        logger.info("Session deleted: %s", session_id)

    async def update_status(
        self, session_id: str, user_id: str | None, status: object
    ) -> SessionStatus:
        try:
            new_status = SessionStatus(status)
        except ValueError:
            allowed = ", ".join(s.value for s in SessionStatus)
            raise ValidationError(f"Status must be one of: {allowed}") from None
        require_user(user_id)
        await load_owned_session(self._store, session_id, user_id)
        await self._store.set_status(session_id, new_status)
        logger.info("Session %s status set to %s", session_id, new_status.value)
        return new_status
