"""
Minimal RIFF/WAVE container framing.

Layout (44-byte header, little-endian):
    0   "RIFF"
    4   u32  36 + data_size
    8   "WAVE"
    12  "fmt "
    16  u32  16 (fmt chunk size)
    20  u16  1 (PCM)
    22  u16  channels (1)
    24  u32  sample_rate
    28  u32  byte_rate = sample_rate * channels * 2
    32  u16  block_align = channels * 2
    34  u16  bits_per_sample (16)
    36  "data"
    40  u32  data_size
    44  PCM16 samples

Usage example:

    wav_bytes = encode_wav(waveform, sample_rate=44_100)
    header = parse_wav_header(wav_bytes)
    assert header.data_size == 2 * len(waveform)
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from audio.pcm import Samples, float_to_pcm16le, silence
from constants import (
    WAV_BITS_PER_SAMPLE,
    WAV_CHANNELS,
    WAV_FMT_CHUNK_BYTES,
    WAV_FORMAT_PCM,
    WAV_HEADER_BYTES,
    WAV_SAMPLE_WIDTH_BYTES,
)

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


class WavFormatError(Exception):
    """Raised when a buffer is not a container this module produced."""


@dataclass(frozen=True)
class WavHeader:
    """Decoded fields of a 44-byte PCM header."""
    sample_rate: int
    channels: int
    bits_per_sample: int
    byte_rate: int
    block_align: int
    data_size: int

    @property
    def num_samples(self) -> int:
        """Number of samples per channel declared by the header."""
        return self.data_size // self.block_align

    @property
    def duration_s(self) -> float:
        """Playback duration declared by the header."""
        return self.num_samples / self.sample_rate


def wav_header(*, data_size: int, sample_rate: int) -> bytes:
    """Build the 44-byte header for `data_size` bytes of mono PCM16."""
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be > 0, got {sample_rate}")

    block_align = WAV_CHANNELS * WAV_SAMPLE_WIDTH_BYTES
    byte_rate = sample_rate * block_align

    return _HEADER.pack(
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        WAV_FMT_CHUNK_BYTES,
        WAV_FORMAT_PCM,
        WAV_CHANNELS,
        sample_rate,
        byte_rate,
        block_align,
        WAV_BITS_PER_SAMPLE,
        b"data",
        data_size,
    )


def encode_wav(samples: Samples, sample_rate: int) -> bytes:
    """
    Encode float samples into a playable mono PCM16 container.

    Pure and deterministic. An empty input yields a header-only buffer.
    """
    pcm = float_to_pcm16le(samples)
    return wav_header(data_size=len(pcm), sample_rate=sample_rate) + pcm


def encode_silence(duration_s: float, sample_rate: int) -> bytes:
    """Container holding `duration_s` seconds of zero samples."""
    return encode_wav(silence(duration_s, sample_rate), sample_rate)


def parse_wav_header(buf: bytes) -> WavHeader:
    """
    Decode the header of a buffer produced by encode_wav().

    Raises:
        WavFormatError if the buffer is too short or not RIFF/WAVE PCM.
    """
    if len(buf) < WAV_HEADER_BYTES:
        raise WavFormatError(f"buffer length {len(buf)} < {WAV_HEADER_BYTES}")

    (
        riff, _riff_size, wave, fmt, _fmt_size, audio_format, channels,
        sample_rate, byte_rate, block_align, bits, data, data_size,
    ) = _HEADER.unpack_from(buf, 0)

    if riff != b"RIFF" or wave != b"WAVE" or fmt != b"fmt " or data != b"data":
        raise WavFormatError("missing RIFF/WAVE chunk markers")

    if audio_format != WAV_FORMAT_PCM:
        raise WavFormatError(f"unsupported format tag {audio_format}")

    return WavHeader(
        sample_rate=sample_rate,
        channels=channels,
        bits_per_sample=bits,
        byte_rate=byte_rate,
        block_align=block_align,
        data_size=data_size,
    )
