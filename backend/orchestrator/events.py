"""
Outbound stream event definitions.

Rules:
- Events describe facts that have occurred in one stream invocation.
- Events carry data only (no behavior, no transport knowledge).
- The set is closed: every transport serializer must handle every
  subclass of StreamEvent (see protocol/codec.py).
- Within one invocation events are delivered in emission order.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Wire discriminants of stream events.

    Values are the `type` field clients switch on.
    """

    START = "start"
    CHUNK = "chunk"
    AUDIO = "audio"
    SILENCE = "silence"
    TEXT_CHUNK = "text_chunk"
    ERROR = "error"
    CONVERSATION_START = "conversation_start"
    CONVERSATION_END = "conversation_end"
    END = "end"


# =============================================================================
# Events
# =============================================================================

@dataclass(frozen=True)
class Start:
    """Batch stream opened; total phrase count is known upfront."""
    total_chunks: int | None = None


@dataclass(frozen=True)
class Chunk:
    """Metadata for the audio of phrase `index`, sent before the audio."""
    index: int
    duration: float
    sample_rate: int
    total_chunks: int | None = None


@dataclass(frozen=True)
class Audio:
    """
    Encoded audio for one phrase.

    data is the base64 text of a complete PCM16 container.
    text is set for conversational phrases.
    """
    index: int
    data: str
    duration: float
    sample_rate: int
    text: str | None = None


@dataclass(frozen=True)
class Silence:
    """Encoded silence inserted between batch phrases."""
    duration: float
    data: str


@dataclass(frozen=True)
class TextChunk:
    """One upstream text fragment plus the response accumulated so far."""
    text: str
    full_text: str


@dataclass(frozen=True)
class Error:
    """
    In-stream failure.

    index is set when the failure belongs to a single phrase.
    """
    message: str
    index: int | None = None


@dataclass(frozen=True)
class ConversationStart:
    """Conversational turn opened for `conversation_id`."""
    conversation_id: str


@dataclass(frozen=True)
class ConversationEnd:
    """Upstream completed; full assistant response."""
    full_response: str


@dataclass(frozen=True)
class End:
    """Invocation completed normally."""
    total_duration: float | None = None
    total_chunks: int | None = None


StreamEvent = Union[
    Start,
    Chunk,
    Audio,
    Silence,
    TextChunk,
    Error,
    ConversationStart,
    ConversationEnd,
    End,
]

EVENT_TYPES: dict[type, EventType] = {
    Start: EventType.START,
    Chunk: EventType.CHUNK,
    Audio: EventType.AUDIO,
    Silence: EventType.SILENCE,
    TextChunk: EventType.TEXT_CHUNK,
    Error: EventType.ERROR,
    ConversationStart: EventType.CONVERSATION_START,
    ConversationEnd: EventType.CONVERSATION_END,
    End: EventType.END,
}


def event_type_of(event: StreamEvent) -> EventType:
    """Return the wire discriminant of `event`."""
    try:
        return EVENT_TYPES[type(event)]
    except KeyError as exc:
        raise TypeError(f"not a stream event: {type(event).__name__}") from exc
