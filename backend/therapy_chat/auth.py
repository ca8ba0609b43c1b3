"""Caller identity supplied by the upstream authentication gateway.

Credentials are verified before requests reach this service; the gateway
forwards the verified user id in a header (``X-User-Id`` by default). This
module only reads it. A missing identity is reported as ``None`` and turned
into ``UnauthenticatedError`` by the pipelines.
"""

from __future__ import annotations

from fastapi import Request

from therapy_chat.config import settings


class HeaderAuthenticator:
    """Reads the verified caller identity from a request header."""

    def __init__(self, header_name: str | None = None) -> None:
        self.header_name = header_name or settings.auth_user_header

    def __call__(self, request: Request) -> str | None:
        user_id = request.headers.get(self.header_name, "").strip()
        return user_id or None


authenticator = HeaderAuthenticator()


def get_current_user(request: Request) -> str | None:
    """FastAPI dependency returning the caller identity, if any."""
    return authenticator(request)
