"""Dependency injection providers for FastAPI."""

from fastapi import Depends

from therapy_chat.agent.oracle import GeminiOracle, Oracle
from therapy_chat.memory.session_store import MongoSessionStore, SessionStore
from therapy_chat.pipeline.messages import MessagePipeline
from therapy_chat.pipeline.sessions import SessionService
from therapy_chat.pipeline.topics import TopicPipeline
from therapy_chat.telemetry.events import EventPublisher, build_event_publisher

# Process-wide instances shared by all requests
_session_store: MongoSessionStore | None = None
_oracle: GeminiOracle | None = None
_event_publisher: EventPublisher | None = None


def get_session_store() -> SessionStore:
    """Return singleton MongoSessionStore instance."""
    global _session_store
    if _session_store is None:
        _session_store = MongoSessionStore()
    return _session_store


def get_oracle() -> Oracle:
    """Return singleton GeminiOracle instance."""
    global _oracle
    if _oracle is None:
        _oracle = GeminiOracle()
    return _oracle


def get_event_publisher() -> EventPublisher:
    """Return singleton EventPublisher instance."""
    global _event_publisher
    if _event_publisher is None:
        _event_publisher = build_event_publisher()
    return _event_publisher


def get_session_service(
    store: SessionStore = Depends(get_session_store),
) -> SessionService:
    return SessionService(store)


def get_message_pipeline(
    store: SessionStore = Depends(get_session_store),
    oracle: Oracle = Depends(get_oracle),
    events: EventPublisher = Depends(get_event_publisher),
) -> MessagePipeline:
    return MessagePipeline(store, oracle, events)


def get_topic_pipeline(
    store: SessionStore = Depends(get_session_store),
    oracle: Oracle = Depends(get_oracle),
) -> TopicPipeline:
    return TopicPipeline(store, oracle)
