"""Best-effort event publishing to Inngest's event API.

Events are fire-and-forget from the pipeline's point of view: a publisher
may raise, and callers are expected to log and carry on.
"""

from __future__ import annotations

import abc
import logging
from typing import Any

import httpx

from therapy_chat.config import settings

logger = logging.getLogger(__name__)

SESSION_MESSAGE_EVENT = "therapy/session.message"


class EventPublisher(abc.ABC):
    """Accepts named events with a JSON payload."""

    @abc.abstractmethod
    async def publish(self, name: str, data: dict[str, Any]) -> None:
        """Send one event. May raise on transport failure."""

    async def close(self) -> None:
        """Release any held resources."""


class NullEventPublisher(EventPublisher):
    """Used when no event key is configured."""

    async def publish(self, name: str, data: dict[str, Any]) -> None:
        logger.debug("Telemetry disabled, dropping event %s", name)


class InngestEventPublisher(EventPublisher):
    """POSTs ``{"name", "data"}`` to ``{base_url}/e/{event_key}``."""

    def __init__(
        self,
        event_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._event_key = event_key or settings.inngest_event_key
        self._base_url = (base_url or settings.inngest_base_url).rstrip("/")
        self._client = client or httpx.AsyncClient(
            timeout=timeout if timeout is not None else settings.telemetry_timeout_seconds
        )

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/e/{self._event_key}"

    async def publish(self, name: str, data: dict[str, Any]) -> None:
        response = await self._client.post(
            self.endpoint, json={"name": name, "data": data}
        )
        response.raise_for_status()
        logger.debug("Published event %s (status=%d)", name, response.status_code)

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("Telemetry client closed")


def build_event_publisher() -> EventPublisher:
    """Return the publisher matching the current settings."""
    if settings.telemetry_enabled:
        logger.info("Telemetry enabled (Inngest at %s)", settings.inngest_base_url)
        return InngestEventPublisher()
    logger.info("Telemetry disabled (no INNGEST_EVENT_KEY configured)")
    return NullEventPublisher()
