# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from typing import Any

import pytest

from observability import logger
from observability import metrics


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    lines: list[str] = []
    # Patch the explicit output sink used by logger
    monkeypatch.setattr(logger, "_print", lines.append)
    return lines


def test_log_event_emits_valid_jsonl(captured: list[str]) -> None:
    """
    Contract:
    - log_event emits exactly one JSONL line
    - caller fields are serialized as-is
    - output sink is patchable
    """
    payload: dict[str, Any] = {
        "ts_ms": 42,
        "event_type": "TEST",
        "value": 123,
    }

    logger.log_event(payload)

    assert len(captured) == 1
    assert json.loads(captured[0]) == payload


def test_log_event_stamps_missing_timestamp(captured: list[str]) -> None:
    event = {"event_type": "TEST"}

    logger.log_event(event)

    decoded = json.loads(captured[0])
    assert isinstance(decoded["ts_ms"], int)
    # Caller's mapping is not mutated
    assert "ts_ms" not in event


def test_log_event_never_raises_on_unserializable_payload(captured: list[str]) -> None:
    logger.log_event({"event_type": "TEST", "blob": object()})

    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "LOGGER_SERIALIZATION_ERROR"


def test_timed_reports_duration_and_emits_one_metric(captured: list[str]) -> None:
    with metrics.timed("stt_latency", session_id="sess_test") as timer:
        pass

    assert timer.duration_ms >= 0
    assert len(captured) == 1
    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "METRIC_TIMER"
    assert decoded["metric"] == "stt_latency"
    assert decoded["session_id"] == "sess_test"


def test_timed_emits_metric_when_block_raises(captured: list[str]) -> None:
    with pytest.raises(RuntimeError):
        with metrics.timed("tts_latency"):
            raise RuntimeError("boom")

    assert len(captured) == 1
    decoded = json.loads(captured[0])
    assert decoded["metric"] == "tts_latency"
    assert decoded["failed"] is True
