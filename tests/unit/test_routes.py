# pylint: disable=missing-module-docstring,missing-function-docstring

import importlib
import sys
from pathlib import Path

import dotenv
import pytest
from fastapi.testclient import TestClient

from server.app import create_app

from spec import STATUS_SPEAKING, STATUS_THINKING, STATUS_TOO_SHORT, STATUS_TRANSCRIBING

from fakes import (
    FAKE_WAV,
    SPEECH_PAYLOAD,
    FakeResponder,
    FakeSTT,
    FakeTranscoder,
    FakeTTS,
    engines_factory,
    make_config,
)


@pytest.fixture
def client(tmp_path: Path):
    app = create_app(make_config(tmp_path))
    app.state.responder = FakeResponder(voice="Noon.", detail="It is twelve noon.")
    app.state.engines_factory = engines_factory(FakeTranscoder(), FakeSTT(), FakeTTS())
    with TestClient(app) as test_client:
        yield test_client


def test_health(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_ws_ping_pong(client: TestClient):
    with client.websocket_connect("/ws") as ws:
        ws.send_text('{"type": "ping"}')
        assert ws.receive_json() == {"type": "pong"}


def test_ws_unknown_message_is_ignored(client: TestClient):
    with client.websocket_connect("/ws") as ws:
        ws.send_text('{"type": "hello"}')
        ws.send_text("garbage")
        ws.send_text('{"type": "ping"}')
        assert ws.receive_json() == {"type": "pong"}


def test_ws_short_audio_reports_status(client: TestClient):
    with client.websocket_connect("/ws") as ws:
        ws.send_bytes(b"\x00" * 10)
        assert ws.receive_json() == {"type": "status", "text": STATUS_TOO_SHORT}


def test_ws_full_cycle(client: TestClient):
    with client.websocket_connect("/ws") as ws:
        ws.send_bytes(SPEECH_PAYLOAD)

        assert ws.receive_json() == {"type": "status", "text": STATUS_TRANSCRIBING}
        transcript = ws.receive_json()
        assert transcript["type"] == "transcript"
        assert transcript["text"] == "what time is it"
        assert ws.receive_json() == {"type": "status", "text": STATUS_THINKING}
        response = ws.receive_json()
        assert response["type"] == "response"
        assert response["voice"] == "Noon."
        assert response["detail"] == "It is twelve noon."
        assert ws.receive_json() == {"type": "status", "text": STATUS_SPEAKING}
        assert ws.receive_bytes() == FAKE_WAV


def test_primary_endpoint_disabled_without_token(tmp_path: Path):
    app = create_app(make_config(tmp_path, gateway_token=""))
    assert app.state.responder.has_primary is False


def test_entry_point_loads_dotenv_once(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    calls: list[object] = []
    monkeypatch.setattr(dotenv, "load_dotenv", lambda *a, **kw: calls.append(a) or True)
    monkeypatch.setenv("OPENCLAW_CONFIG", str(tmp_path / "absent.json"))
    monkeypatch.delenv("OPENCLAW_TOKEN", raising=False)
    for name in ("server.main", "server.asgi"):
        monkeypatch.delitem(sys.modules, name, raising=False)

    main_mod = importlib.import_module("server.main")

    assert len(calls) == 1
    assert main_mod.config is sys.modules["server.asgi"].config
