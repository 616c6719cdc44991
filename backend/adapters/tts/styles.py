"""
Voice style files.

A style file is JSON holding two tensors:

    {
      "style_ttl": {"dims": [1, 50, 256], "data": [[[...]]]},
      "style_dp":  {"dims": [1, 8, 16],   "data": [[[...]]]}
    }

Loading several files stacks them along the batch axis. The resulting
VoiceStyle is opaque to everything except the synthesis engine.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import numpy as np

from observability.logger import log_event

STYLE_SUFFIX = ".json"


class StyleNotFoundError(Exception):
    """The named style file does not exist."""


class StyleLoadError(Exception):
    """The style file exists but could not be parsed."""


@dataclass(frozen=True)
class VoiceStyle:
    """Stacked style tensors for a batch of one or more voices."""
    name: str
    ttl: np.ndarray
    dp: np.ndarray


def load_voice_style(paths: Sequence[Path], *, name: str | None = None) -> VoiceStyle:
    """
    Load and stack style tensors from `paths`.

    Raises:
        StyleNotFoundError if a file is missing.
        StyleLoadError if a file is malformed or shapes disagree.
    """
    if not paths:
        raise StyleLoadError("no style files given")

    ttl_parts: list[np.ndarray] = []
    dp_parts: list[np.ndarray] = []

    for path in paths:
        if not path.is_file():
            raise StyleNotFoundError(f"Voice style not found: {path.stem}")
        try:
            doc = json.loads(path.read_text(encoding="utf-8"))
            ttl_parts.append(_tensor(doc["style_ttl"]))
            dp_parts.append(_tensor(doc["style_dp"]))
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise StyleLoadError(f"{path.name}: {type(exc).__name__}: {exc}") from exc

    try:
        ttl = np.concatenate(ttl_parts, axis=0)
        dp = np.concatenate(dp_parts, axis=0)
    except ValueError as exc:
        raise StyleLoadError(f"style shapes do not match: {exc}") from exc

    return VoiceStyle(name=name or paths[0].stem, ttl=ttl, dp=dp)


def _tensor(node: dict) -> np.ndarray:
    dims = [int(d) for d in node["dims"]]
    data = np.asarray(node["data"], dtype=np.float32)
    return data.reshape(dims)


class VoiceStyleLibrary:
    """
    Directory of style files.

    The default voice is loaded once and reused; any other voice is loaded
    per request (no cache).
    """

    def __init__(self, styles_dir: Path, *, default_voice: str) -> None:
        self._dir = styles_dir
        self._default_voice = normalize_voice_name(default_voice)
        self._default_style: VoiceStyle | None = None

    @property
    def default_voice(self) -> str:
        return self._default_voice

    def path_for(self, voice: str) -> Path:
        """
        Path of the style file for `voice` (with or without suffix).

        Raises:
            StyleNotFoundError for names that would leave the directory.
        """
        name = normalize_voice_name(voice)
        if not name or "/" in name or "\\" in name or name.startswith("."):
            raise StyleNotFoundError(f"Voice style not found: {voice}")
        return self._dir / f"{name}{STYLE_SUFFIX}"

    def list_voices(self) -> list[str]:
        """
        Sorted voice names available in the directory.

        Raises:
            OSError if the directory cannot be read.
        """
        return sorted(
            p.stem for p in self._dir.iterdir()
            if p.is_file() and p.suffix == STYLE_SUFFIX
        )

    async def exists(self, voice: str) -> bool:
        """Non-blocking existence check for a voice style file."""
        return await asyncio.to_thread(self.path_for(voice).is_file)

    async def load(self, voice: str | None) -> VoiceStyle:
        """
        Resolve `voice` to a style handle.

        Raises:
            StyleNotFoundError, StyleLoadError
        """
        name = normalize_voice_name(voice or self._default_voice)

        if name == self._default_voice and self._default_style is not None:
            return self._default_style

        if not await self.exists(name):
            raise StyleNotFoundError(f"Voice style not found: {name}")

        style = await asyncio.to_thread(load_voice_style, [self.path_for(name)], name=name)

        if name == self._default_voice:
            self._default_style = style

        log_event({
            "event_type": "VOICE_STYLE_LOADED",
            "voice": name,
            "ttl_shape": list(style.ttl.shape),
            "dp_shape": list(style.dp.shape),
        }, level="DEBUG")
        return style


def normalize_voice_name(voice: str) -> str:
    """Strip a trailing .json so 'M1' and 'M1.json' resolve alike."""
    voice = voice.strip()
    if voice.endswith(STYLE_SUFFIX):
        return voice[: -len(STYLE_SUFFIX)]
    return voice
