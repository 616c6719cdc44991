"""PCM conversion utilities."""
from __future__ import annotations

from typing import Sequence, Union

import numpy as np

from constants import PCM16_FULL_SCALE, samples_for_duration

Samples = Union[np.ndarray, Sequence[float]]


def float_to_pcm16le(samples: Samples) -> bytes:
    """
    Convert float samples to PCM16 little-endian mono bytes.

    Out-of-range values are clamped to [-1.0, 1.0], never rejected.
    Each sample maps to round(clamp(x) * 32767).
    No resampling. No channel mixing.
    """
    audio = np.asarray(samples, dtype=np.float64).reshape(-1)
    if audio.size == 0:
        return b""

    clipped = np.clip(audio, -1.0, 1.0)
    audio_i16 = np.rint(clipped * PCM16_FULL_SCALE).astype("<i2")
    return audio_i16.tobytes()


def pcm16le_to_float32(pcm_bytes: bytes) -> np.ndarray:
    """
    Convert PCM16 little-endian mono bytes to float32 in [-1.0, 1.0].

    Inverse of float_to_pcm16le up to quantisation.
    """
    if len(pcm_bytes) % 2 != 0:
        # Truncated sample; drop the dangling byte
        pcm_bytes = pcm_bytes[: len(pcm_bytes) - 1]

    audio_i16 = np.frombuffer(pcm_bytes, dtype="<i2")
    return audio_i16.astype(np.float32) / PCM16_FULL_SCALE


def silence(duration_s: float, sample_rate: int) -> np.ndarray:
    """Zero-valued samples covering `duration_s` at `sample_rate`."""
    return np.zeros(samples_for_duration(duration_s, sample_rate), dtype=np.float32)
