"""
JSONL event logger.

- Write one JSON object per line
- Output to stdout
- No buffering, no batching
- Level threshold applied before serialization
- No side effects beyond logging
"""

from __future__ import annotations

import json
import sys
import time
from datetime import datetime, timezone
from typing import Any, Mapping, Callable


LEVELS: dict[str, int] = {
    "DEBUG": 10,
    "INFO": 20,
    "WARN": 30,
    "ERROR": 40,
}


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print

_threshold: int = LEVELS["INFO"]
_json_lines: bool = True


def configure(*, level: str = "INFO", json_lines: bool = True) -> None:
    """
    Set the process-wide level threshold and output format.

    Unknown level names fall back to INFO.
    """
    global _threshold, _json_lines  # pylint: disable=global-statement
    _threshold = LEVELS.get(level.upper(), LEVELS["INFO"])
    _json_lines = json_lines


def is_enabled(level: str) -> bool:
    """Return True if events at `level` would be written."""
    return LEVELS.get(level, LEVELS["INFO"]) >= _threshold


def log_event(event: Mapping[str, Any], level: str = "INFO") -> None:
    """
    Write a single event to stdout.

    The caller supplies a flat dict with at least `event_type`.
    `ts_ms` and `level` are filled in when missing.

    This function:
    - Drops events below the configured level
    - Writes exactly one line
    - Flushes immediately (no buffering)
    - Never raises
    """
    if not is_enabled(level):
        return

    record: dict[str, Any] = {"ts_ms": int(time.time() * 1000), "level": level}
    record.update(event)

    if _json_lines:
        line = _to_json(record)
    else:
        line = _to_text(record)

    _print(line)


def flush() -> None:
    """Flush stdout; used before the process exits on a fatal error."""
    try:
        sys.stdout.flush()
    except (OSError, ValueError):
        pass


# ------------------------------------------------------------------
# Formatting
# ------------------------------------------------------------------

def _to_json(record: Mapping[str, Any]) -> str:
    try:
        return json.dumps(record, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        # Last-resort fallback; logging must never crash the runtime
        fallback: dict[str, Any] = {
            "ts_ms": record.get("ts_ms"),
            "level": "ERROR",
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(record),
        }
        return json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))


def _to_text(record: Mapping[str, Any]) -> str:
    ts_ms = record.get("ts_ms")
    if isinstance(ts_ms, (int, float)):
        stamp = datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).isoformat()
    else:
        stamp = "-"

    fields = " ".join(
        f"{key}={value!r}"
        for key, value in record.items()
        if key not in ("ts_ms", "level", "event_type")
    )
    return f"[{stamp}] [{record.get('level', 'INFO')}] {record.get('event_type', '-')} {fields}".rstrip()
