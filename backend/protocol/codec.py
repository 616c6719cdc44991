"""
Stream event serialization shared by both transports.

Every StreamEvent maps to one self-describing JSON object:

    {"type": "chunk", "chunkIndex": 1, "totalChunks": 3,
     "duration": 1.42, "sampleRate": 44100}

Keys are camelCase; optional fields are omitted when unset.
Audio payloads travel inline as base64 text (no binary side channel).
"""

from __future__ import annotations

import json
from typing import Any

from orchestrator.events import (
    Audio,
    Chunk,
    ConversationEnd,
    ConversationStart,
    End,
    Error,
    Silence,
    Start,
    StreamEvent,
    TextChunk,
    event_type_of,
)


def encode_event(event: StreamEvent) -> dict[str, Any]:
    """
    Convert an event into its wire dict.

    Raises:
        TypeError for objects outside the StreamEvent union.
    """
    payload: dict[str, Any] = {"type": event_type_of(event).value}

    if isinstance(event, Start):
        _put(payload, "totalChunks", event.total_chunks)

    elif isinstance(event, Chunk):
        payload["chunkIndex"] = event.index
        _put(payload, "totalChunks", event.total_chunks)
        payload["duration"] = event.duration
        payload["sampleRate"] = event.sample_rate

    elif isinstance(event, Audio):
        payload["chunkIndex"] = event.index
        _put(payload, "text", event.text)
        payload["duration"] = event.duration
        payload["sampleRate"] = event.sample_rate
        payload["data"] = event.data

    elif isinstance(event, Silence):
        payload["duration"] = event.duration
        payload["data"] = event.data

    elif isinstance(event, TextChunk):
        payload["text"] = event.text
        payload["fullText"] = event.full_text

    elif isinstance(event, Error):
        payload["message"] = event.message
        _put(payload, "chunkIndex", event.index)

    elif isinstance(event, ConversationStart):
        payload["conversationId"] = event.conversation_id

    elif isinstance(event, ConversationEnd):
        payload["fullResponse"] = event.full_response

    elif isinstance(event, End):
        _put(payload, "totalDuration", event.total_duration)
        _put(payload, "totalChunks", event.total_chunks)

    return payload


def dumps_event(event: StreamEvent) -> str:
    """Compact JSON text of encode_event(event)."""
    return json.dumps(encode_event(event), ensure_ascii=False, separators=(",", ":"))


def _put(payload: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        payload[key] = value
