"""MongoDB session store: one document per session.

Every session lives in one document with its messages embedded in order::

    {
        "sessionId": "0b6f...",
        "userId": "user-123",
        "topic": "💭 Anxiety Support",
        "status": "active",
        "startTime": ISODate(...),
        "createdAt": ISODate(...),
        "updatedAt": ISODate(...),
        "messages": [
            {"role": "user", "content": "I feel anxious", "timestamp": ISODate(...)},
            {
                "role": "assistant",
                "content": "That sounds hard...",
                "timestamp": ISODate(...),
                "metadata": {
                    "analysis": {"emotionalState": "anxious", ...},
                    "progress": {"emotionalState": "anxious", "riskLevel": 1}
                }
            }
        ]
    }

Messages are appended with ``$push`` so concurrent appends to the same
session never overwrite each other. Topic and status are plain ``$set``
updates (last writer wins).
"""

from __future__ import annotations

import abc
import logging
from datetime import datetime, timezone
from typing import Any

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from therapy_chat.config import settings
from therapy_chat.errors import NotFoundError, PersistenceError
from therapy_chat.models.messages import ChatMessage
from therapy_chat.models.sessions import ChatSession, SessionStatus, SessionSummary

logger = logging.getLogger(__name__)

_SUMMARY_PROJECTION = {
    "_id": 0,
    "sessionId": 1,
    "topic": 1,
    "startTime": 1,
    "status": 1,
    "createdAt": 1,
    "updatedAt": 1,
    "messages": 1,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore(abc.ABC):
    """Operations the pipelines need from durable session storage."""

    async def initialize(self) -> None:
        """Acquire connections. Called once at application startup."""

    async def close(self) -> None:
        """Release connections. Called once at application shutdown."""

    @abc.abstractmethod
    async def create_session(
        self, user_id: str, session_id: str | None = None
    ) -> ChatSession:
        """Insert a new, empty, active session owned by ``user_id``."""

    @abc.abstractmethod
    async def get_session(self, session_id: str) -> ChatSession | None:
        """Return the session or ``None`` when it does not exist."""

    @abc.abstractmethod
    async def list_sessions(self, user_id: str) -> list[SessionSummary]:
        """Return the user's sessions, most recently updated first."""

    @abc.abstractmethod
    async def append_message(self, session_id: str, message: ChatMessage) -> None:
        """Atomically append one message to the session's message list."""

    @abc.abstractmethod
    async def set_topic(self, session_id: str, topic: str) -> None:
        """Overwrite the session topic."""

    @abc.abstractmethod
    async def set_status(self, session_id: str, status: SessionStatus) -> None:
        """Overwrite the session lifecycle status."""

    @abc.abstractmethod
    async def delete_session(self, session_id: str) -> bool:
        """Delete the session. Returns ``False`` if nothing was deleted."""

    @abc.abstractmethod
    async def ping(self) -> None:
        """Raise if the backing storage is unreachable."""


class MongoSessionStore(SessionStore):
    """Motor-backed :class:`SessionStore`.

    Lifecycle:
        store = MongoSessionStore()
        await store.initialize()   # call once at startup
        ...
        await store.close()        # call once at shutdown
    """

    def __init__(
        self,
        mongodb_uri: str | None = None,
        database_name: str | None = None,
        collection_name: str | None = None,
    ) -> None:
        self._mongodb_uri = mongodb_uri or settings.mongodb_uri
        self._database_name = database_name or settings.mongodb_database
        self._collection_name = collection_name or settings.sessions_collection
        self._client: AsyncIOMotorClient | None = None
        self._db: AsyncIOMotorDatabase | None = None
        self._collection: AsyncIOMotorCollection | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Connect to MongoDB and make sure the indexes exist."""
        if self._collection is not None:
            logger.warning("MongoSessionStore already initialized - skipping")
            return

        logger.info("Connecting to MongoDB at %s", self._mongodb_uri)
        self._client = AsyncIOMotorClient(
            self._mongodb_uri,
            serverSelectionTimeoutMS=5_000,
            tz_aware=True,
        )
        self._db = self._client[self._database_name]
        await self._client.admin.command("ping")

        collection = self._db[self._collection_name]
        await collection.create_index("sessionId", unique=True)
        await collection.create_index(
            [("userId", ASCENDING), ("updatedAt", DESCENDING)]
        )
        self._collection = collection
        logger.info(
            "MongoDB connection established (collection=%s)", self._collection_name
        )

    async def close(self) -> None:
        """Release the connection."""
        if self._client is not None:
            self._client.close()
            logger.info("MongoDB connection closed")
        self._client = None
        self._db = None
        self._collection = None

    @property
    def collection(self) -> AsyncIOMotorCollection:
        if self._collection is None:
            raise RuntimeError(
                "MongoSessionStore not initialized - call initialize() first"
            )
        return self._collection

    @property
    def database(self) -> AsyncIOMotorDatabase:
        if self._db is None:
            raise RuntimeError(
                "MongoSessionStore not initialized - call initialize() first"
            )
        return self._db

    # ------------------------------------------------------------------
    # SessionStore interface
    # ------------------------------------------------------------------

    async def create_session(
        self, user_id: str, session_id: str | None = None
    ) -> ChatSession:
        fields: dict[str, Any] = {"user_id": user_id}
        if session_id:
            fields["session_id"] = session_id
        session = ChatSession(**fields)
        try:
            await self.collection.insert_one(session.to_document())
        except PyMongoError as exc:
            logger.exception("Failed to create session for user %s", user_id)
            raise PersistenceError(f"Failed to create session: {exc}") from exc
        logger.info("Created session %s for user %s", session.session_id, user_id)
        return session

    async def get_session(self, session_id: str) -> ChatSession | None:
        try:
            doc = await self.collection.find_one(
                {"sessionId": session_id}, {"_id": 0}
            )
        except PyMongoError as exc:
            logger.exception("Failed to load session %s", session_id)
            raise PersistenceError(f"Failed to load session: {exc}") from exc
        if doc is None:
            return None
        return ChatSession.model_validate(doc)

    async def list_sessions(self, user_id: str) -> list[SessionSummary]:
        cursor = self.collection.find({"userId": user_id}, _SUMMARY_PROJECTION).sort(
            "updatedAt", DESCENDING
        )
        sessions: list[SessionSummary] = []
        try:
            async for doc in cursor:
                messages = doc.get("messages", [])
                doc["messageCount"] = len(messages)
                sessions.append(SessionSummary.model_validate(doc))
        except PyMongoError as exc:
            logger.exception("Failed to list sessions for user %s", user_id)
            raise PersistenceError(f"Failed to list sessions: {exc}") from exc
        return sessions

    async def append_message(self, session_id: str, message: ChatMessage) -> None:
        await self._update(
            session_id,
            {
                "$push": {"messages": message.to_document()},
                "$set": {"updatedAt": _now()},
            },
            action="append message to",
        )

    async def set_topic(self, session_id: str, topic: str) -> None:
        await self._update(
            session_id,
            {"$set": {"topic": topic, "updatedAt": _now()}},
            action="update topic of",
        )

    async def set_status(self, session_id: str, status: SessionStatus) -> None:
        await self._update(
            session_id,
            {"$set": {"status": SessionStatus(status).value, "updatedAt": _now()}},
            action="update status of",
        )

    async def delete_session(self, session_id: str) -> bool:
        try:
            result = await self.collection.delete_one({"sessionId": session_id})
        except PyMongoError as exc:
            logger.exception("Failed to delete session %s", session_id)
            raise PersistenceError(f"Failed to delete session: {exc}") from exc
        return result.deleted_count > 0

    async def ping(self) -> None:
        await self.database.client.admin.command("ping")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _update(
        self, session_id: str, update: dict[str, Any], *, action: str
    ) -> None:
        try:
            result = await self.collection.update_one({"sessionId": session_id}, update)
        except PyMongoError as exc:
            logger.exception("Failed to %s session %s", action, session_id)
            raise PersistenceError(f"Failed to {action} session: {exc}") from exc
        if result.matched_count == 0:
            raise NotFoundError()
