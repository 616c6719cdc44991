# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from typing import Any

import pytest

from observability import logger
from observability.metrics import count, timed


def test_log_event_emits_valid_jsonl(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """
    Contract:
    - log_event emits exactly one JSONL line
    - payload keys are preserved; ts_ms and level are added
    - output sink is patchable
    """
    captured: list[str] = []

    def fake_print(line: str) -> None:
        captured.append(line)

    # Patch the explicit output sink used by logger
    monkeypatch.setattr(logger, "_print", fake_print)

    payload: dict[str, Any] = {
        "event_type": "TEST",
        "value": 123,
    }

    logger.log_event(payload)

    # Exactly one line emitted
    assert len(captured) == 1

    decoded = json.loads(captured[0])

    assert {k: decoded[k] for k in payload} == payload
    assert decoded["level"] == "INFO"
    assert isinstance(decoded["ts_ms"], int)


def test_level_threshold_drops_lower_events(log_lines: list[str]) -> None:
    logger.configure(level="WARN")

    logger.log_event({"event_type": "QUIET"}, level="INFO")
    logger.log_event({"event_type": "LOUD"}, level="ERROR")

    assert [json.loads(line)["event_type"] for line in log_lines] == ["LOUD"]
    assert logger.is_enabled("DEBUG") is False


def test_unknown_level_falls_back_to_info() -> None:
    logger.configure(level="chatty")

    assert logger.is_enabled("INFO") is True
    assert logger.is_enabled("DEBUG") is False


def test_text_mode_line(log_lines: list[str]) -> None:
    logger.configure(level="DEBUG", json_lines=False)

    logger.log_event({"event_type": "HTTP_REQUEST", "path": "/health"}, level="WARN")

    line = log_lines[-1]
    assert "[WARN] HTTP_REQUEST" in line
    assert "path='/health'" in line


def test_unserializable_payload_does_not_raise(log_lines: list[str]) -> None:
    logger.log_event({"event_type": "BAD", "obj": object()})

    decoded = json.loads(log_lines[-1])
    assert decoded["event_type"] == "LOGGER_SERIALIZATION_ERROR"


def test_metrics_helpers_log_at_debug(log_lines: list[str]) -> None:
    count("upstream_malformed_lines", stream_id="strm_1")
    with timed("synthesis_ms", stream_id="strm_1") as extra:
        extra["duration_s"] = 0.5

    records = [json.loads(line) for line in log_lines]
    assert records[0]["metric"] == "upstream_malformed_lines"
    assert records[0]["level"] == "DEBUG"
    assert records[1]["metric"] == "synthesis_ms"
    assert records[1]["details"]["duration_s"] == 0.5
