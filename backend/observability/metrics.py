"""
Metrics and timing helpers.

Responsibilities:
- Measure durations using monotonic time (immune to clock changes)
- Emit metrics as JSONL events via observability.logger
- Never aggregate: one metric = one log event

Design notes:
- Durations use monotonic time; event timestamps use wall-clock time
- Prefer the `timed()` context manager to avoid leaked timers
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator

from observability.logger import log_event


@contextmanager
def timed(
    name: str,
    *,
    stream_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[dict[str, Any]]:
    """
    Context manager for measuring durations safely.

    Guarantees:
    - Metric is emitted exactly once, also when the block raises
    - Exceptions inside the block are not suppressed

    The yielded dict is merged into `details`, so the block can attach
    results it only knows at the end:

        with timed("synthesis_ms", stream_id=sid) as extra:
            result = await engine_call()
            extra["duration_s"] = result.duration
    """
    extra: dict[str, Any] = {}
    start_ns = time.monotonic_ns()
    try:
        yield extra
    finally:
        observe_ms(
            name,
            elapsed_ms(start_ns),
            stream_id=stream_id,
            details={**(details or {}), **extra},
        )


def elapsed_ms(start_ns: int) -> int:
    """Milliseconds since a time.monotonic_ns() reading."""
    return (time.monotonic_ns() - start_ns) // 1_000_000


def observe_ms(
    name: str,
    value_ms: int,
    *,
    stream_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Emit one timer measurement taken by the caller."""
    log_event({
        "event_type": "METRIC_TIMER",
        "metric": name,
        "value_ms": value_ms,
        "stream_id": stream_id,
        "details": details or {},
    })


def count(
    name: str,
    *,
    value: int = 1,
    stream_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """
    Emit a single counter increment at DEBUG level.

    Used for conditions that are tolerated but should stay observable
    (e.g. skipped malformed upstream lines).
    """
    log_event({
        "event_type": "METRIC_COUNTER",
        "metric": name,
        "value": value,
        "stream_id": stream_id,
        "details": details or {},
    }, level="DEBUG")
