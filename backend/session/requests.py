"""
Request parsing and validation.

Both transports (HTTP bodies and WebSocket messages) go through the same
parsers, so /stream and {"type": "synthesize"} validate identically.

Rules:
- Validation happens before any stream opens.
- Failures raise RequestError(status_code, message); HTTP renders it as a
  status + {"error": message}, the WebSocket gateway as an error frame.
- Defaults come from AppConfig, never from literals here.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

from config import AppConfig
from orchestrator.run_ids import new_conversation_id


class RequestError(Exception):
    """A request was rejected before streaming started."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@dataclass(frozen=True)
class StreamRequest:
    """Validated body of POST /stream (or a `synthesize` message)."""
    text: str
    voice: str
    steps: int
    speed: float


@dataclass(frozen=True)
class ConversationRequest:
    """Validated body of POST /conversation (or a `conversation` message)."""
    message: str
    conversation_id: str
    voice: str
    steps: int
    speed: float
    model: str | None = None
    system_prompt: str | None = None


def parse_stream_request(body: Any, *, config: AppConfig) -> StreamRequest:
    """
    Raises:
        RequestError(400) if `text` is missing, empty or not a string, or
        an optional field has the wrong type.
    """
    data = _as_mapping(body)
    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        raise RequestError(400, "Text is required")

    return StreamRequest(
        text=text,
        voice=_voice(data, config),
        steps=_steps(data, config),
        speed=_speed(data, config),
    )


def parse_conversation_request(body: Any, *, config: AppConfig) -> ConversationRequest:
    """
    Raises:
        RequestError(400) if `message` is missing, empty or not a string,
        or an optional field has the wrong type.
    """
    data = _as_mapping(body)
    message = data.get("message")
    if not isinstance(message, str) or not message.strip():
        raise RequestError(400, "Message is required")

    conversation_id = data.get("conversationId")
    if conversation_id is not None and (
        not isinstance(conversation_id, str) or not conversation_id.strip()
    ):
        raise RequestError(400, "conversationId must be a non-empty string")

    return ConversationRequest(
        message=message,
        conversation_id=conversation_id or new_conversation_id(),
        voice=_voice(data, config),
        steps=_steps(data, config),
        speed=_speed(data, config),
        model=_optional_str(data, "model"),
        system_prompt=_optional_str(data, "systemPrompt"),
    )


# ---------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------

def _as_mapping(body: Any) -> Mapping[str, Any]:
    if not isinstance(body, Mapping):
        raise RequestError(400, "Request body must be a JSON object")
    return body


def _voice(data: Mapping[str, Any], config: AppConfig) -> str:
    voice = data.get("voice")
    if voice is None:
        return config.default_voice
    if not isinstance(voice, str) or not voice.strip():
        raise RequestError(400, "voice must be a non-empty string")
    return voice.strip()


def _steps(data: Mapping[str, Any], config: AppConfig) -> int:
    steps = data.get("steps")
    if steps is None:
        return config.default_steps
    # bool is an int subclass
    if isinstance(steps, bool) or not isinstance(steps, int) or steps <= 0:
        raise RequestError(400, "steps must be a positive integer")
    return steps


def _speed(data: Mapping[str, Any], config: AppConfig) -> float:
    speed = data.get("speed")
    if speed is None:
        return config.default_speed
    if isinstance(speed, bool) or not isinstance(speed, (int, float)):
        raise RequestError(400, "speed must be a positive number")
    if not math.isfinite(speed) or speed <= 0:
        raise RequestError(400, "speed must be a positive number")
    return float(speed)


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise RequestError(400, f"{key} must be a string")
    return value or None
