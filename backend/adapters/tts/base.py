"""
Speech synthesis engine contract.

This module defines the *interface only*. The engine itself (model
loading, inference) is an external collaborator plugged in through
TTS_ENGINE_FACTORY; nothing here knows how it works.

Key invariants:
- Phrasing is orchestrator-owned. The engine receives ready phrases and
  must not re-split them.
- The engine is synchronous and possibly slow. Callers run it off the
  event loop and serialize access (see adapters/tts/gateway.py).
- The engine may over-allocate waveform buffers; callers truncate to
  sample_rate * duration samples.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np


@dataclass(frozen=True)
class SynthesisResult:
    """
    Engine output for a batch of phrases, in input order.

    waveforms[i] holds float samples in [-1, 1] (possibly padded);
    durations[i] is the meaningful length of waveforms[i] in seconds.
    """
    waveforms: Sequence[np.ndarray]
    durations: Sequence[float]


class SynthesisEngine(ABC):
    """
    Abstract text-to-speech engine.

    Implementations are responsible for:
    - Turning phrases + style + step count + speed into waveforms
    - Reporting a fixed output sample rate

    Non-responsibilities:
    - No phrasing or chunking decisions
    - No container encoding
    - No concurrency control
    """

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """Output sample rate in Hz (fixed for the engine's lifetime)."""
        raise NotImplementedError

    @abstractmethod
    def synthesize(
        self,
        phrases: Sequence[str],
        style: Any,
        total_steps: int,
        speed: float,
    ) -> SynthesisResult:
        """
        Synthesize `phrases` with one shared style.

        Args:
            phrases: Non-empty texts, synthesized independently.
            style: Opaque handle from the voice style loader.
            total_steps: Quality/denoising step count (> 0).
            speed: Speaking-rate multiplier (> 0).

        Contract:
        - len(result.waveforms) == len(result.durations) == len(phrases)
        - Raises on failure; partial results are not returned.
        """
        raise NotImplementedError
