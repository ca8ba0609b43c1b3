"""Shared test fixtures for the therapy chat backend."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from therapy_chat.agent.oracle import Oracle, OracleResult
from therapy_chat.dependencies import (
    get_event_publisher,
    get_oracle,
    get_session_store,
)
from therapy_chat.errors import NotFoundError, PersistenceError
from therapy_chat.main import app
from therapy_chat.memory.session_store import SessionStore
from therapy_chat.models.messages import ChatMessage, utcnow
from therapy_chat.models.sessions import ChatSession, SessionStatus, SessionSummary
from therapy_chat.telemetry.events import EventPublisher

USER_ID = "user-123"
OTHER_USER_ID = "user-456"

ANALYSIS_JSON = (
    '{"emotionalState": "anxious", "themes": ["work", "anxiety"], '
    '"riskLevel": 2, "recommendedApproach": "mindfulness", '
    '"progressIndicators": ["self_awareness"]}'
)


class InMemorySessionStore(SessionStore):
    """Dict-backed store double with failure injection."""

    def __init__(self) -> None:
        self.sessions: dict[str, ChatSession] = {}
        # Number of successful appends allowed before appends start failing.
        self.appends_before_failure: int | None = None
        self.append_calls = 0

    async def create_session(
        self, user_id: str, session_id: str | None = None
    ) -> ChatSession:
        fields: dict[str, Any] = {"user_id": user_id}
        if session_id:
            fields["session_id"] = session_id
        session = ChatSession(**fields)
        self.sessions[session.session_id] = session
        return session.model_copy(deep=True)

    async def get_session(self, session_id: str) -> ChatSession | None:
        session = self.sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def list_sessions(self, user_id: str) -> list[SessionSummary]:
        owned = [s for s in self.sessions.values() if s.user_id == user_id]
        owned.sort(key=lambda s: s.updated_at, reverse=True)
        return [SessionSummary.from_session(s) for s in owned]

    async def append_message(self, session_id: str, message: ChatMessage) -> None:
        self.append_calls += 1
        if (
            self.appends_before_failure is not None
            and self.append_calls > self.appends_before_failure
        ):
            raise PersistenceError("write failed")
        session = self._require(session_id)
        session.messages.append(message.model_copy(deep=True))
        session.updated_at = utcnow()

    async def set_topic(self, session_id: str, topic: str) -> None:
        session = self._require(session_id)
        session.topic = topic
        session.updated_at = utcnow()

    async def set_status(self, session_id: str, status: SessionStatus) -> None:
        session = self._require(session_id)
        session.status = SessionStatus(status)
        session.updated_at = utcnow()

    async def delete_session(self, session_id: str) -> bool:
        return self.sessions.pop(session_id, None) is not None

    async def ping(self) -> None:
        return None

    def _require(self, session_id: str) -> ChatSession:
        try:
            return self.sessions[session_id]
        except KeyError:
            raise NotFoundError() from None


class ScriptedOracle(Oracle):
    """Oracle double that answers from a script and records prompts.

    ``script`` entries are consumed in order; each is an ``OracleResult``,
    a string (success) or an exception instance (raised). When the script
    runs out the oracle reports itself unreachable.
    """

    def __init__(self, *script: Any) -> None:
        self.script = list(script)
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> OracleResult:
        self.prompts.append(prompt)
        if not self.script:
            return OracleResult.failure("oracle unreachable")
        entry = self.script.pop(0)
        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, OracleResult):
            return entry
        return OracleResult.success(entry)


class RecordingEventPublisher(EventPublisher):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.events: list[tuple[str, dict[str, Any]]] = []

    async def publish(self, name: str, data: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("event bus unreachable")
        self.events.append((name, data))


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def oracle() -> ScriptedOracle:
    return ScriptedOracle()


@pytest.fixture
def events() -> RecordingEventPublisher:
    return RecordingEventPublisher()


@pytest.fixture
def auth() -> Callable[[str], dict[str, str]]:
    """Build the gateway header carrying a verified user id."""

    def _headers(user_id: str = USER_ID) -> dict[str, str]:
        return {"X-User-Id": user_id}

    return _headers


@pytest_asyncio.fixture
async def client(
    store: InMemorySessionStore,
    oracle: ScriptedOracle,
    events: RecordingEventPublisher,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client with the store, oracle and publisher swapped out."""
    app.dependency_overrides[get_session_store] = lambda: store
    app.dependency_overrides[get_oracle] = lambda: oracle
    app.dependency_overrides[get_event_publisher] = lambda: events
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
