"""
Session gateway (connection manager for one WebSocket).

Responsibilities:
- Owns VoiceSession lifecycle
- Tracks connection_status independently of pipeline state
- Answers control messages (ping -> pong)
- Queues inbound binary audio for the session's single pipeline worker
- Tears everything down on disconnect (worker cancelled, temp files released)

NOT responsible for:
- Pipeline sequencing (see session.pipeline)
- Socket I/O (outbound callbacks are injected by the route)
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Callable, TYPE_CHECKING

from uuid import uuid4

from adapters.asr.base import STTAdapter
from adapters.asr.sherpa_offline import SherpaOfflineSTTAdapter
from adapters.transcode.base import Transcoder
from adapters.transcode.ffmpeg import FfmpegTranscoder
from adapters.tts.base import TTSAdapter
from adapters.tts.sherpa_offline import SherpaOfflineTTSAdapter
from observability.logger import log_event
from orchestrator.response import ResponseOrchestrator
from session.connection_status import ConnectionStatus
from session.pipeline import EmitBinary, EmitJson, SessionPipeline
from session.voice_session import VoiceSession

from spec import STATUS_BUSY

if TYPE_CHECKING:
    from config import AppConfig


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _new_session_id() -> str:
    return f"sess_{uuid4().hex[:12]}"


# ------------------------------------------------------------------
# Gateway result / engines
# ------------------------------------------------------------------

@dataclass(frozen=True)
class GatewayResult:
    """
    Immediate replies for gateway boundary methods.

    outbound_json:
        JSON messages to send to client right away

    Pipeline events are not returned here; they are pushed through the
    injected emit callbacks as each stage completes.
    """
    outbound_json: tuple[dict[str, Any], ...] = ()


@dataclass(frozen=True)
class SessionEngines:
    """External engines bound to one session."""
    transcoder: Transcoder
    stt: STTAdapter
    tts: TTSAdapter


def build_engines(config: AppConfig, session_id: str) -> SessionEngines:
    """Subprocess-backed engines from explicit configuration."""
    return SessionEngines(
        transcoder=FfmpegTranscoder(
            ffmpeg_bin=config.ffmpeg_bin,
            timeout_s=config.engine_timeout_s,
        ),
        stt=SherpaOfflineSTTAdapter(
            runtime_dir=config.sherpa_runtime,
            model_dir=config.whisper_model_dir,
            model_prefix=config.whisper_model_prefix,
            timeout_s=config.engine_timeout_s,
        ),
        tts=SherpaOfflineTTSAdapter(
            runtime_dir=config.sherpa_runtime,
            model_dir=config.tts_model_dir,
            model_name=config.tts_model_name,
            speaker_id=config.tts_speaker_id,
            temp_dir=config.temp_dir,
            session_id=session_id,
            timeout_s=config.engine_timeout_s,
        ),
    )


EnginesFactory = Callable[["AppConfig", str], SessionEngines]


# ------------------------------------------------------------------
# SessionGateway
# ------------------------------------------------------------------

class SessionGateway:
    """
    One gateway == one voice session.

    Busy policy: audio arriving while a cycle runs is queued (FIFO) up to
    config.max_pending_audio frames; beyond that it is dropped with a
    status message. Cycles never overlap.
    """

    def __init__(
        self,
        *,
        config: AppConfig,
        responder: ResponseOrchestrator,
        send_json: EmitJson,
        send_bytes: EmitBinary,
        engines_factory: EnginesFactory = build_engines,
    ) -> None:
        self._config = config
        self._responder = responder
        self._send_json = send_json
        self._send_bytes = send_bytes
        self._engines_factory = engines_factory

        self.session: VoiceSession | None = None
        self.pipeline: SessionPipeline | None = None
        self._queue: asyncio.Queue[bytes] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._in_flight = False

    async def on_ws_connect(self) -> GatewayResult:
        """Called when a WebSocket connection is established."""
        session_id = _new_session_id()

        self.session = VoiceSession(session_id=session_id)
        self.session.connection_status = ConnectionStatus.UP

        engines = self._engines_factory(self._config, session_id)
        self.pipeline = SessionPipeline(
            session=self.session,
            transcoder=engines.transcoder,
            stt=engines.stt,
            tts=engines.tts,
            responder=self._responder,
            emit_json=self._send_json,
            emit_binary=self._send_bytes,
            temp_dir=self._config.temp_dir,
            debug_capture_path=self._config.debug_capture_path,
        )

        self._worker = asyncio.create_task(self._run_worker())

        log_event({
            "event_type": "SESSION_STARTED",
            **self.session.log_context(),
        })
        return GatewayResult()

    async def on_ws_disconnect(self, reason: str | None = None) -> None:
        """Called when the WebSocket disconnects. Idempotent."""
        if self.session is None:
            log_event({
                "event_type": "WS_DISCONNECT_WITHOUT_SESSION",
                "reason": reason,
            })
            return

        self.session.connection_status = ConnectionStatus.DOWN

        worker = self._worker
        self._worker = None
        if worker is not None and not worker.done():
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass

        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1

        self.session.release_all()

        log_event({
            "event_type": "SESSION_ENDED",
            **self.session.log_context(),
            "duration_s": round(time.time() - self.session.created_at, 3),
            "reason": reason,
            "dropped_pending_audio": dropped,
            "turns": len(self.session.history),
        })

    async def on_json_message(self, payload: str) -> GatewayResult:
        """Answer control messages. Only ping is recognized."""
        if self.session is None:
            log_event({
                "event_type": "MESSAGE_WITHOUT_SESSION",
                "payload_preview": payload[:100],
            })
            return GatewayResult()

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            log_event({
                "event_type": "JSON_DECODE_ERROR",
                "session_id": self.session.session_id,
                "error": str(e),
                "payload_preview": payload[:100],
            })
            return GatewayResult()

        msg_type = data.get("type") if isinstance(data, dict) else None

        if msg_type == "ping":
            return GatewayResult(outbound_json=({"type": "pong"},))

        log_event({
            "event_type": "UNKNOWN_MESSAGE_TYPE",
            "msg_type": msg_type,
            "session_id": self.session.session_id,
        })
        return GatewayResult()

    async def on_binary_message(self, payload: bytes) -> GatewayResult:
        """Queue one recording for the pipeline worker."""
        if self.session is None or self.pipeline is None:
            log_event({
                "event_type": "BINARY_WITHOUT_SESSION",
                "payload_len": len(payload),
            })
            return GatewayResult()

        busy = self._in_flight or not self._queue.empty()
        if busy and self._queue.qsize() >= self._config.max_pending_audio:
            log_event({
                "event_type": "AUDIO_DROPPED_BUSY",
                "session_id": self.session.session_id,
                "payload_len": len(payload),
                "pending": self._queue.qsize(),
                "state": self.pipeline.state.value,
            })
            return GatewayResult(outbound_json=({"type": "status", "text": STATUS_BUSY},))

        self._queue.put_nowait(payload)
        log_event({
            "event_type": "AUDIO_QUEUED",
            "session_id": self.session.session_id,
            "payload_len": len(payload),
            "pending": self._queue.qsize(),
        })
        return GatewayResult()

    async def join(self) -> None:
        """Wait until every queued recording has been processed."""
        await self._queue.join()

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    async def _run_worker(self) -> None:
        """Run queued cycles strictly one at a time."""
        assert self.pipeline is not None and self.session is not None
        while True:
            payload = await self._queue.get()
            self._in_flight = True
            try:
                await self.pipeline.process_audio(payload)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                log_event({
                    "event_type": "PIPELINE_CYCLE_CRASHED",
                    "session_id": self.session.session_id,
                    "exception": type(exc).__name__,
                    "message": str(exc),
                })
            finally:
                self._in_flight = False
                self._queue.task_done()
