"""
Synthesis engine bootstrap.

The engine is an external collaborator. A deployment names its factory
as an import path in TTS_ENGINE_FACTORY:

    TTS_ENGINE_FACTORY="supertonic_onnx.engine:load_text_to_speech"

The factory is called once with the ONNX asset directory and must return
a SynthesisEngine. Loading is blocking, so callers run it in a thread.
"""

from __future__ import annotations

import importlib
import time
from pathlib import Path
from typing import Any, Callable

from adapters.tts.base import SynthesisEngine
from observability.logger import log_event


class EngineNotReadyError(Exception):
    """The engine has not finished (or never started) initialising."""


class EngineLoadError(Exception):
    """The configured engine factory could not produce an engine."""


def resolve_factory(path: str) -> Callable[[Path], Any]:
    """
    Import `module:callable` and return the callable.

    Raises:
        EngineLoadError if the path is malformed or does not resolve.
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise EngineLoadError(f"expected 'module:callable', got {path!r}")

    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attr)
    except (ImportError, AttributeError) as exc:
        raise EngineLoadError(f"cannot resolve {path!r}: {exc}") from exc

    if not callable(factory):
        raise EngineLoadError(f"{path!r} is not callable")
    return factory


def load_engine(factory_path: str, onnx_dir: Path) -> SynthesisEngine:
    """
    Build the engine through the configured factory (blocking).

    Raises:
        EngineLoadError on any failure.
    """
    factory = resolve_factory(factory_path)

    log_event({
        "event_type": "TTS_ENGINE_LOADING",
        "factory": factory_path,
        "onnx_dir": str(onnx_dir),
    })
    t0 = time.monotonic_ns()

    try:
        engine = factory(onnx_dir)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        raise EngineLoadError(f"{type(exc).__name__}: {exc}") from exc

    if not isinstance(engine, SynthesisEngine):
        raise EngineLoadError(
            f"factory returned {type(engine).__name__}, not a SynthesisEngine"
        )

    log_event({
        "event_type": "TTS_ENGINE_LOADED",
        "load_ms": (time.monotonic_ns() - t0) // 1_000_000,
        "sample_rate": engine.sample_rate,
    })
    return engine
