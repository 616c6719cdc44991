"""
Ollama chat backend over HTTP (httpx).

Endpoints used:
- GET  /api/tags   liveness check and model listing
- POST /api/chat   streaming chat, newline-delimited JSON:

    {"message": {"role": "assistant", "content": "Hel"}, "done": false}
    {"message": {"role": "assistant", "content": "lo."}, "done": true}

Design notes:
- One AsyncClient per backend instance, closed by aclose().
- Connect and read timeouts bound every call; a hung backend surfaces as
  ChatBackendError instead of holding the session.
- Lines that are not valid JSON objects are skipped and counted.
"""

from __future__ import annotations

import json
from typing import Any, AsyncIterator, Sequence

import httpx

from adapters.llm.base import (
    ChatBackend,
    ChatBackendError,
    ChatBackendUnavailable,
    ChatFragment,
)
from context.conversation import Message
from context.serialization import serialize_messages
from observability.logger import log_event
from observability.metrics import count


class OllamaChatBackend(ChatBackend):
    """Streaming chat against a local or remote Ollama server."""

    def __init__(
        self,
        base_url: str,
        *,
        default_model: str,
        connect_timeout_s: float = 5.0,
        read_timeout_s: float = 60.0,
        health_timeout_s: float = 3.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._default_model = default_model
        self._health_timeout = httpx.Timeout(health_timeout_s)
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(read_timeout_s, connect=connect_timeout_s),
            transport=transport,
        )

    @property
    def default_model(self) -> str:
        return self._default_model

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    async def health(self) -> bool:
        try:
            response = await self._client.get("/api/tags", timeout=self._health_timeout)
        except httpx.HTTPError as exc:
            log_event({
                "event_type": "LLM_HEALTH_FAILED",
                "exception": type(exc).__name__,
                "message": str(exc),
            }, level="WARN")
            return False
        return response.status_code < 400

    async def list_models(self) -> list[str]:
        try:
            response = await self._client.get("/api/tags", timeout=self._health_timeout)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ChatBackendUnavailable(f"{type(exc).__name__}: {exc}") from exc

        models = payload.get("models") if isinstance(payload, dict) else None
        return [
            m["name"] for m in models or []
            if isinstance(m, dict) and isinstance(m.get("name"), str)
        ]

    # ------------------------------------------------------------------
    # Streaming chat
    # ------------------------------------------------------------------

    async def stream_chat(
        self,
        messages: Sequence[Message],
        *,
        model: str | None = None,
    ) -> AsyncIterator[ChatFragment]:
        body = {
            "model": model or self._default_model,
            "messages": serialize_messages(messages),
            "stream": True,
        }

        try:
            async with self._client.stream("POST", "/api/chat", json=body) as response:
                if response.status_code >= 400:
                    detail = (await response.aread()).decode("utf-8", errors="replace")
                    raise ChatBackendError(
                        f"chat backend returned {response.status_code}: {detail[:200]}"
                    )

                async for line in response.aiter_lines():
                    fragment = _decode_line(line)
                    if fragment is None:
                        continue
                    yield fragment
                    if fragment.done:
                        return
        except httpx.HTTPError as exc:
            raise ChatBackendError(f"{type(exc).__name__}: {exc}") from exc

    async def aclose(self) -> None:
        await self._client.aclose()


def _decode_line(line: str) -> ChatFragment | None:
    """
    Decode one NDJSON line.

    Returns None for blank or malformed lines.

    Raises:
        ChatBackendError if the line is an upstream error object.
    """
    line = line.strip()
    if not line:
        return None

    try:
        data: Any = json.loads(line)
    except ValueError:
        count("upstream_malformed_lines", details={"preview": line[:80]})
        return None

    if not isinstance(data, dict):
        count("upstream_malformed_lines", details={"preview": line[:80]})
        return None

    if "error" in data:
        raise ChatBackendError(str(data["error"]))

    message = data.get("message")
    content = message.get("content") if isinstance(message, dict) else None
    return ChatFragment(
        content=content if isinstance(content, str) else "",
        done=bool(data.get("done", False)),
    )
