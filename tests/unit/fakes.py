# pylint: disable=missing-module-docstring,missing-function-docstring,missing-class-docstring

import asyncio
import json
from pathlib import Path
from typing import Any, AsyncIterator, Sequence

import numpy as np

from adapters.llm.base import ChatBackend, ChatBackendUnavailable, ChatFragment
from adapters.tts.base import SynthesisEngine, SynthesisResult
from context.conversation import Message
from orchestrator.events import StreamEvent
from protocol.sink import EventSink, TransportClosed


SAMPLE_RATE = 16000
PHRASE_DURATION_S = 0.25


# ---------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------

class FakeEngine(SynthesisEngine):
    """
    Returns a constant waveform twice as long as the reported duration,
    so callers must truncate.
    """

    def __init__(self, *, fail_on: Sequence[str] = ()) -> None:
        self.calls: list[tuple[list[str], Any, int, float]] = []
        self.fail_on = set(fail_on)

    @property
    def sample_rate(self) -> int:
        return SAMPLE_RATE

    def synthesize(
        self,
        phrases: Sequence[str],
        style: Any,
        total_steps: int,
        speed: float,
    ) -> SynthesisResult:
        self.calls.append((list(phrases), style, total_steps, speed))
        for text in phrases:
            if text in self.fail_on:
                raise RuntimeError(f"engine failed on {text!r}")

        n = int(SAMPLE_RATE * PHRASE_DURATION_S)
        return SynthesisResult(
            waveforms=[np.full(2 * n, 0.5, dtype=np.float32) for _ in phrases],
            durations=[PHRASE_DURATION_S for _ in phrases],
        )


class FakeChat(ChatBackend):
    """
    Scripted chat backend.

    `script` items are ChatFragments, or exceptions raised at that point.
    If `gate` is set, streaming waits on it before each fragment after the
    first one.
    """

    def __init__(
        self,
        script: Sequence[Any] = (),
        *,
        healthy: bool = True,
        models: Sequence[str] = ("llama3.2",),
    ) -> None:
        self.script = list(script)
        self.healthy = healthy
        self.models = list(models)
        self.requests: list[tuple[list[Message], str | None]] = []
        self.gate: asyncio.Event | None = None
        self.closed = False

    async def health(self) -> bool:
        return self.healthy

    async def list_models(self) -> list[str]:
        if not self.healthy:
            raise ChatBackendUnavailable("connection refused")
        return self.models

    async def stream_chat(
        self,
        messages: Sequence[Message],
        *,
        model: str | None = None,
    ) -> AsyncIterator[ChatFragment]:
        self.requests.append((list(messages), model))
        for i, item in enumerate(self.script):
            if i > 0 and self.gate is not None:
                await self.gate.wait()
            if isinstance(item, BaseException):
                raise item
            yield item

    async def aclose(self) -> None:
        self.closed = True


class RecordingSink(EventSink):
    def __init__(self, *, disconnect_after: int | None = None) -> None:
        self.events: list[StreamEvent] = []
        self.closed = 0
        self._disconnect_after = disconnect_after

    async def emit(self, event: StreamEvent) -> None:
        if self._disconnect_after is not None and len(self.events) >= self._disconnect_after:
            raise TransportClosed("peer gone")
        self.events.append(event)

    async def close(self) -> None:
        self.closed += 1

    def types(self) -> list[str]:
        return [type(e).__name__ for e in self.events]


def fragments(*parts: str) -> list[ChatFragment]:
    """Content fragments; the last one carries done=True."""
    return [
        ChatFragment(content=p, done=i == len(parts) - 1)
        for i, p in enumerate(parts)
    ]


def write_style(path: Path) -> Path:
    doc = {
        "style_ttl": {"dims": [1, 2, 3], "data": [[[0.1, 0.2, 0.3], [0.4, 0.5, 0.6]]]},
        "style_dp": {"dims": [1, 1, 2], "data": [[[1.0, 2.0]]]},
    }
    path.write_text(json.dumps(doc), encoding="utf-8")
    return path



def build_engine(onnx_dir: Path) -> FakeEngine:
    """Engine factory reachable as `fakes:build_engine`."""
    assert isinstance(onnx_dir, Path)
    return FakeEngine()


def build_wrong_type(_onnx_dir: Path) -> object:
    return object()


def build_failing(_onnx_dir: Path) -> FakeEngine:
    raise FileNotFoundError("model.onnx missing")
