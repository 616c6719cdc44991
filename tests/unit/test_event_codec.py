# pylint: disable=missing-module-docstring,missing-function-docstring

import json

import pytest

from orchestrator.events import (
    Audio,
    Chunk,
    ConversationEnd,
    ConversationStart,
    End,
    Error,
    EventType,
    Silence,
    Start,
    TextChunk,
    event_type_of,
)
from protocol.codec import dumps_event, encode_event
from protocol.sink import TransportClosed
from protocol.sse import SseEventSink


def test_chunk_uses_camel_case_keys() -> None:
    payload = encode_event(Chunk(index=1, duration=1.42, sample_rate=44100, total_chunks=3))

    assert payload == {
        "type": "chunk",
        "chunkIndex": 1,
        "totalChunks": 3,
        "duration": 1.42,
        "sampleRate": 44100,
    }


def test_audio_text_only_when_set() -> None:
    batch = encode_event(Audio(index=2, data="AAAA", duration=0.5, sample_rate=16000))
    convo = encode_event(Audio(index=2, data="AAAA", duration=0.5, sample_rate=16000, text="Hi."))

    assert "text" not in batch
    assert convo["text"] == "Hi."
    assert convo["data"] == "AAAA"


def test_error_chunk_index_is_optional() -> None:
    assert encode_event(Error(message="boom")) == {"type": "error", "message": "boom"}
    assert encode_event(Error(message="boom", index=4)) == {
        "type": "error", "message": "boom", "chunkIndex": 4,
    }


def test_conversation_events() -> None:
    assert encode_event(ConversationStart(conversation_id="c1")) == {
        "type": "conversation_start", "conversationId": "c1",
    }
    assert encode_event(TextChunk(text=" there", full_text="Hello there")) == {
        "type": "text_chunk", "text": " there", "fullText": "Hello there",
    }
    assert encode_event(ConversationEnd(full_response="Hello there.")) == {
        "type": "conversation_end", "fullResponse": "Hello there.",
    }


def test_start_and_end_omit_unset_totals() -> None:
    assert encode_event(Start()) == {"type": "start"}
    assert encode_event(End()) == {"type": "end"}
    assert encode_event(End(total_duration=1.5, total_chunks=2)) == {
        "type": "end", "totalDuration": 1.5, "totalChunks": 2,
    }


def test_silence_payload() -> None:
    assert encode_event(Silence(duration=0.3, data="UklGRg==")) == {
        "type": "silence", "duration": 0.3, "data": "UklGRg==",
    }


def test_dumps_event_is_compact_and_keeps_unicode() -> None:
    text = dumps_event(TextChunk(text="café", full_text="café"))

    assert " " not in text
    assert "café" in text
    assert json.loads(text)["type"] == "text_chunk"


def test_unknown_object_is_rejected() -> None:
    with pytest.raises(TypeError):
        event_type_of(object())  # type: ignore[arg-type]


def test_every_event_type_has_an_event() -> None:
    events = [
        Start(), Chunk(1, 0.1, 16000), Audio(1, "", 0.1, 16000), Silence(0.3, ""),
        TextChunk("a", "a"), Error("e"), ConversationStart("c"), ConversationEnd("r"), End(),
    ]

    assert {event_type_of(e) for e in events} == set(EventType)


# ---------------------------------------------------------------------
# SSE sink
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_sse_sink_yields_frames_until_closed() -> None:
    sink = SseEventSink()
    await sink.emit(Start(total_chunks=1))
    await sink.emit(End(total_duration=0.5, total_chunks=1))
    await sink.close()

    frames = [frame async for frame in sink.frames()]

    assert [json.loads(f["data"])["type"] for f in frames] == ["start", "end"]


@pytest.mark.asyncio
async def test_sse_sink_rejects_emit_after_detach_or_close() -> None:
    detached = SseEventSink()
    detached.detach()
    with pytest.raises(TransportClosed):
        await detached.emit(Start())

    closed = SseEventSink()
    await closed.close()
    await closed.close()
    with pytest.raises(TransportClosed):
        await closed.emit(Start())
