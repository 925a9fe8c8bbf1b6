# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import json
from pathlib import Path
from typing import Any

import pytest

import session.gateway as gateway_mod
from orchestrator.enums.state import PipelineState
from session.connection_status import ConnectionStatus
from session.gateway import SessionGateway

from spec import STATUS_BUSY

from fakes import (
    FAKE_WAV,
    SPEECH_PAYLOAD,
    FakeResponder,
    FakeSTT,
    FakeTranscoder,
    FakeTTS,
    Outbox,
    engines_factory,
    make_config,
)


async def connected_gateway(
    tmp_path: Path,
    *,
    stt: FakeSTT | None = None,
    **config_overrides: Any,
) -> tuple[SessionGateway, Outbox]:
    outbox = Outbox()
    gw = SessionGateway(
        config=make_config(tmp_path, **config_overrides),
        responder=FakeResponder(),  # type: ignore[arg-type]
        send_json=outbox.send_json,
        send_bytes=outbox.send_bytes,
        engines_factory=engines_factory(FakeTranscoder(), stt or FakeSTT(), FakeTTS()),
    )
    await gw.on_ws_connect()
    return gw, outbox


# ---------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_connect_creates_session_and_logs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(gateway_mod, "log_event", emitted.append)

    gw, _ = await connected_gateway(tmp_path)

    assert gw.session is not None
    assert gw.session.session_id.startswith("sess_")
    assert gw.session.connection_status is ConnectionStatus.UP
    assert any(e["event_type"] == "SESSION_STARTED" for e in emitted)

    await gw.on_ws_disconnect(reason="test")


@pytest.mark.asyncio
async def test_sessions_get_distinct_ids(tmp_path: Path):
    first, _ = await connected_gateway(tmp_path)
    second, _ = await connected_gateway(tmp_path)

    assert first.session is not None and second.session is not None
    assert first.session.session_id != second.session.session_id

    await first.on_ws_disconnect()
    await second.on_ws_disconnect()


@pytest.mark.asyncio
async def test_disconnect_without_connect_is_harmless(tmp_path: Path):
    gw = SessionGateway(
        config=make_config(tmp_path),
        responder=FakeResponder(),  # type: ignore[arg-type]
        send_json=Outbox().send_json,
        send_bytes=Outbox().send_bytes,
    )

    await gw.on_ws_disconnect(reason="never_connected")


# ---------------------------------------------------------------------
# Control messages
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_ping_is_answered_with_pong(tmp_path: Path):
    gw, _ = await connected_gateway(tmp_path)

    result = await gw.on_json_message(json.dumps({"type": "ping"}))

    assert result.outbound_json == ({"type": "pong"},)
    await gw.on_ws_disconnect()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    ["not json", "[1, 2, 3]", '{"type": "mystery"}', '{"no_type": true}'],
)
async def test_unknown_or_malformed_frames_are_ignored(tmp_path: Path, payload: str):
    gw, outbox = await connected_gateway(tmp_path)

    result = await gw.on_json_message(payload)

    assert result.outbound_json == ()
    assert outbox.frames == []
    assert gw.pipeline is not None and gw.pipeline.state is PipelineState.IDLE
    await gw.on_ws_disconnect()


@pytest.mark.asyncio
async def test_ping_answered_while_cycle_in_flight(tmp_path: Path):
    stt = FakeSTT(blocking=True)
    gw, _ = await connected_gateway(tmp_path, stt=stt)

    await gw.on_binary_message(SPEECH_PAYLOAD)
    await stt.wait_started()

    result = await gw.on_json_message('{"type": "ping"}')
    assert result.outbound_json == ({"type": "pong"},)

    stt.release()
    await asyncio.wait_for(gw.join(), timeout=2)
    await gw.on_ws_disconnect()


# ---------------------------------------------------------------------
# Audio submissions
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_binary_frame_runs_one_cycle(tmp_path: Path):
    gw, outbox = await connected_gateway(tmp_path)

    result = await gw.on_binary_message(SPEECH_PAYLOAD)
    await asyncio.wait_for(gw.join(), timeout=2)

    assert result.outbound_json == ()
    assert outbox.frames[-1] == FAKE_WAV
    assert gw.session is not None and len(gw.session.history) == 2
    await gw.on_ws_disconnect()


@pytest.mark.asyncio
async def test_busy_session_queues_then_drops(tmp_path: Path):
    stt = FakeSTT(blocking=True)
    gw, outbox = await connected_gateway(tmp_path, stt=stt, max_pending_audio=1)

    await gw.on_binary_message(SPEECH_PAYLOAD)
    await stt.wait_started()

    queued = await gw.on_binary_message(SPEECH_PAYLOAD)
    dropped = await gw.on_binary_message(SPEECH_PAYLOAD)

    assert queued.outbound_json == ()
    assert dropped.outbound_json == ({"type": "status", "text": STATUS_BUSY},)

    stt.release()
    await asyncio.wait_for(gw.join(), timeout=2)

    # Two cycles ran, one after the other; the third frame never did
    assert stt.calls == 2
    assert outbox.frames.count(FAKE_WAV) == 2
    assert gw.session is not None and len(gw.session.history) == 4
    await gw.on_ws_disconnect()


@pytest.mark.asyncio
async def test_frame_taken_by_worker_counts_as_busy_before_pipeline_starts(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
):
    gw, _ = await connected_gateway(tmp_path, max_pending_audio=0)
    assert gw.pipeline is not None

    taken = asyncio.Event()
    gate = asyncio.Event()
    processed: list[bytes] = []

    async def slow_start(payload: bytes) -> None:
        # Pipeline state is still IDLE while this waits
        taken.set()
        await gate.wait()
        processed.append(payload)

    monkeypatch.setattr(gw.pipeline, "process_audio", slow_start)

    await gw.on_binary_message(SPEECH_PAYLOAD)
    await asyncio.wait_for(taken.wait(), timeout=2)
    assert gw.pipeline.state is PipelineState.IDLE

    dropped = await gw.on_binary_message(SPEECH_PAYLOAD)
    assert dropped.outbound_json == ({"type": "status", "text": STATUS_BUSY},)

    gate.set()
    await asyncio.wait_for(gw.join(), timeout=2)
    assert len(processed) == 1

    # Idle again: the next frame is accepted
    accepted = await gw.on_binary_message(SPEECH_PAYLOAD)
    assert accepted.outbound_json == ()
    await asyncio.wait_for(gw.join(), timeout=2)
    assert len(processed) == 2
    await gw.on_ws_disconnect()


@pytest.mark.asyncio
async def test_session_events_carry_session_context(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(gateway_mod, "log_event", emitted.append)

    gw, _ = await connected_gateway(tmp_path)
    await gw.on_ws_disconnect(reason="client_disconnect")

    started = next(e for e in emitted if e["event_type"] == "SESSION_STARTED")
    ended = next(e for e in emitted if e["event_type"] == "SESSION_ENDED")
    assert gw.session is not None
    assert started["session_id"] == ended["session_id"] == gw.session.session_id
    assert started["connection_status"] == "UP"
    assert ended["connection_status"] == "DOWN"
    assert ended["state"] == "IDLE"
    assert ended["duration_s"] >= 0
    assert ended["reason"] == "client_disconnect"


@pytest.mark.asyncio
async def test_zero_pending_drops_everything_while_busy(tmp_path: Path):
    stt = FakeSTT(blocking=True)
    gw, _ = await connected_gateway(tmp_path, stt=stt, max_pending_audio=0)

    await gw.on_binary_message(SPEECH_PAYLOAD)
    await stt.wait_started()

    dropped = await gw.on_binary_message(SPEECH_PAYLOAD)
    assert dropped.outbound_json == ({"type": "status", "text": STATUS_BUSY},)

    stt.release()
    await asyncio.wait_for(gw.join(), timeout=2)
    assert stt.calls == 1
    await gw.on_ws_disconnect()


# ---------------------------------------------------------------------
# Disconnect cleanup
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_disconnect_mid_cycle_cancels_and_cleans_up(tmp_path: Path):
    stt = FakeSTT(blocking=True)
    gw, outbox = await connected_gateway(tmp_path, stt=stt)

    await gw.on_binary_message(SPEECH_PAYLOAD)
    await stt.wait_started()
    await gw.on_binary_message(SPEECH_PAYLOAD)

    await asyncio.wait_for(gw.on_ws_disconnect(reason="client_disconnect"), timeout=2)

    assert gw.session is not None
    assert gw.session.connection_status is ConnectionStatus.DOWN
    assert gw.session.state is PipelineState.IDLE
    assert gw.session.temp_files == set()
    assert sorted(tmp_path.iterdir()) == []
    assert FAKE_WAV not in outbox.frames
    assert stt.calls == 1
