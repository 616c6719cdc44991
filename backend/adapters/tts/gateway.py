"""
Synthesis gateway.

Role in the system:
- Receives one Phrase at a time from the orchestrator.
- Performs exactly one engine call per phrase (never batches phrases,
  so latency and failures stay per-phrase).
- Truncates the engine's waveform to sample_rate * duration samples.
- Encodes the samples into a PCM16 container and returns an Audio event.

Concurrency & cancellation:
- The engine is shared process-wide and not re-entrant; calls are
  serialized with one asyncio.Lock and run in a worker thread so the
  event loop keeps serving other sessions.
- Cancelling the awaiting task releases the lock immediately. The worker
  thread finishes its current phrase in the background and the result
  is discarded.
"""

from __future__ import annotations

import asyncio
import base64
from typing import Any

import numpy as np

from adapters.tts.base import SynthesisEngine
from audio.wav import encode_silence, encode_wav
from constants import samples_for_duration
from observability.logger import log_event
from observability.metrics import timed
from orchestrator.chunking import Phrase
from orchestrator.events import Audio, Silence


class SynthesisError(Exception):
    """The engine failed for one phrase."""

    def __init__(self, index: int, message: str) -> None:
        super().__init__(message)
        self.index = index


class SynthesisGateway:
    """
    Serialized, per-phrase access to the synthesis engine.

    One instance per engine (i.e. per process).
    """

    def __init__(self, engine: SynthesisEngine) -> None:
        self._engine = engine
        self._lock = asyncio.Lock()

    @property
    def sample_rate(self) -> int:
        return self._engine.sample_rate

    async def synthesize(
        self,
        phrase: Phrase,
        style: Any,
        *,
        total_steps: int,
        speed: float,
        stream_id: str | None = None,
        with_text: bool = False,
    ) -> Audio:
        """
        Synthesize one phrase into an Audio event.

        Raises:
            SynthesisError if the engine fails or returns no usable audio.
            asyncio.CancelledError if the caller is cancelled while waiting.
        """
        with timed(
            "synthesis_ms",
            stream_id=stream_id,
            details={"index": phrase.index, "chars": len(phrase.text)},
        ) as extra:
            async with self._lock:
                try:
                    result = await asyncio.to_thread(
                        self._engine.synthesize,
                        [phrase.text],
                        style,
                        total_steps,
                        speed,
                    )
                except Exception as exc:  # pylint: disable=broad-exception-caught
                    log_event({
                        "event_type": "SYNTHESIS_FAILED",
                        "stream_id": stream_id,
                        "index": phrase.index,
                        "exception": type(exc).__name__,
                        "message": str(exc),
                    }, level="WARN")
                    raise SynthesisError(phrase.index, str(exc) or type(exc).__name__) from exc

            waveform, duration = self._single(phrase.index, result)
            extra["duration_s"] = duration

        sample_rate = self._engine.sample_rate
        samples = waveform[: samples_for_duration(duration, sample_rate)]

        return Audio(
            index=phrase.index,
            data=_b64(encode_wav(samples, sample_rate)),
            duration=duration,
            sample_rate=sample_rate,
            text=phrase.text if with_text else None,
        )

    def silence(self, duration_s: float) -> Silence:
        """Encoded silence at the engine's sample rate."""
        return Silence(
            duration=duration_s,
            data=_b64(encode_silence(duration_s, self._engine.sample_rate)),
        )

    @staticmethod
    def _single(index: int, result: Any) -> tuple[np.ndarray, float]:
        try:
            waveform = np.asarray(result.waveforms[0], dtype=np.float32).reshape(-1)
            duration = float(result.durations[0])
        except (AttributeError, IndexError, TypeError, ValueError) as exc:
            raise SynthesisError(index, f"malformed engine result: {exc}") from exc

        if duration < 0:
            raise SynthesisError(index, f"negative duration {duration}")
        return waveform, duration


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")
