"""Language model adapter.

Every model call goes through :meth:`Oracle.complete`, which never raises:
it returns an :class:`OracleResult` that is either a success carrying a value
or a failure carrying a reason. Callers branch on ``result.ok`` and substitute
their own fallback on failure.
"""

from __future__ import annotations

import abc
import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from langchain_core.messages import HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from therapy_chat.config import settings
from therapy_chat.errors import OracleError

logger = logging.getLogger(__name__)

_CODE_FENCE_OPEN = re.compile(r"```(?:json)?\n?", re.IGNORECASE)
_CODE_FENCE_CLOSE = re.compile(r"\n?```")


@dataclass(frozen=True)
class OracleResult:
    """Success-with-value or failure-with-reason."""

    ok: bool
    value: Any = None
    reason: str = ""

    @classmethod
    def success(cls, value: Any) -> "OracleResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, reason: str) -> "OracleResult":
        return cls(ok=False, reason=reason)

    def then(self, step) -> "OracleResult":
        """Feed a successful value to ``step``; pass failures through untouched."""
        if not self.ok:
            return self
        return step(self.value)


def strip_code_fences(text: str) -> str:
    """Remove Markdown code fences the model sometimes wraps JSON in."""
    text = _CODE_FENCE_OPEN.sub("", text)
    return _CODE_FENCE_CLOSE.sub("", text).strip()


def decode_json_object(text: str) -> OracleResult:
    """Decode a JSON object from raw model output."""
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        return OracleResult.failure(f"invalid JSON: {exc}")
    if not isinstance(data, dict):
        return OracleResult.failure(
            f"expected a JSON object, got {type(data).__name__}"
        )
    return OracleResult.success(data)


class Oracle(abc.ABC):
    """Text-completion capability used for analysis, replies and topics."""

    @abc.abstractmethod
    async def complete(self, prompt: str) -> OracleResult:
        """Return the model's text for ``prompt`` or a failure."""


class GeminiOracle(Oracle):
    """Gemini via ``langchain-google-genai``.

    The chat model is built on first use so the service can boot (and serve
    fallbacks) without an API key.
    """

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
    ) -> None:
        self._model_name = model or settings.gemini_model
        self._api_key = api_key if api_key is not None else settings.google_api_key
        self._temperature = (
            temperature if temperature is not None else settings.oracle_temperature
        )
        self._timeout = timeout if timeout is not None else settings.oracle_timeout_seconds
        self._llm: ChatGoogleGenerativeAI | None = None

    def _get_llm(self) -> ChatGoogleGenerativeAI:
        if self._llm is None:
            if not self._api_key:
                raise OracleError("GOOGLE_API_KEY is not configured")
            self._llm = ChatGoogleGenerativeAI(
                model=self._model_name,
                google_api_key=self._api_key,
                temperature=self._temperature,
            )
            logger.info("Gemini oracle initialised with model=%s", self._model_name)
        return self._llm

    async def complete(self, prompt: str) -> OracleResult:
        try:
            llm = self._get_llm()
            response = await asyncio.wait_for(
                llm.ainvoke([HumanMessage(content=prompt)]),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Gemini call timed out after %.1fs", self._timeout)
            return OracleResult.failure(f"timed out after {self._timeout}s")
        except Exception as exc:
            logger.warning("Gemini call failed: %s", exc)
            return OracleResult.failure(str(exc) or type(exc).__name__)

        text = _content_to_text(response.content).strip()
        if not text:
            return OracleResult.failure("empty response")
        return OracleResult.success(text)


def _content_to_text(content: Any) -> str:
    """Flatten LangChain message content (plain string or list of parts)."""
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)
