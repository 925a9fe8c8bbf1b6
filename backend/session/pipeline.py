"""
Session pipeline (per-connection state machine).

Responsibilities:
- Run one audio submission through transcoder -> STT -> dedup ->
  response orchestrator -> TTS
- Emit status / transcript / response / error events and the synthesized
  audio to the client, in order
- Append user and assistant turns to the session history
- Own the per-request temp files and release them on every exit path

NOT responsible for:
- Serializing cycles (the gateway's worker runs one cycle at a time)
- Control frames (ping/pong is answered by the gateway)
- Retrying failed engines

Transitions:
    IDLE -> RECEIVING_AUDIO
    RECEIVING_AUDIO -> IDLE              (recording too short)
    RECEIVING_AUDIO -> TRANSCRIBING
    TRANSCRIBING -> IDLE                 (no speech)
    TRANSCRIBING -> AWAITING_RESPONSE
    AWAITING_RESPONSE -> SYNTHESIZING
    SYNTHESIZING -> IDLE
    RECEIVING_AUDIO | TRANSCRIBING | AWAITING_RESPONSE | SYNTHESIZING -> ERROR
    ERROR -> IDLE
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable

from adapters.asr.base import STTAdapter
from adapters.errors import EngineError
from adapters.transcode.base import Transcoder
from adapters.tts.base import TTSAdapter
from observability.logger import log_event
from observability.metrics import timed
from orchestrator.enums.state import PipelineState
from orchestrator.response import ResponseOrchestrator
from session.voice_session import VoiceSession
from transcript.dedup import deduplicate_transcript

from spec import (
    LOG_PREVIEW_CHARS,
    MIN_AUDIO_BYTES,
    STATUS_NO_SPEECH,
    STATUS_SPEAKING,
    STATUS_THINKING,
    STATUS_TOO_SHORT,
    STATUS_TRANSCRIBING,
)


EmitJson = Callable[[dict[str, Any]], Awaitable[None]]
EmitBinary = Callable[[bytes], Awaitable[None]]


_ALLOWED_TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.IDLE: frozenset({PipelineState.RECEIVING_AUDIO}),
    PipelineState.RECEIVING_AUDIO: frozenset({
        PipelineState.IDLE,
        PipelineState.TRANSCRIBING,
        PipelineState.ERROR,
    }),
    PipelineState.TRANSCRIBING: frozenset({
        PipelineState.IDLE,
        PipelineState.AWAITING_RESPONSE,
        PipelineState.ERROR,
    }),
    PipelineState.AWAITING_RESPONSE: frozenset({
        PipelineState.SYNTHESIZING,
        PipelineState.ERROR,
    }),
    PipelineState.SYNTHESIZING: frozenset({
        PipelineState.IDLE,
        PipelineState.ERROR,
    }),
    PipelineState.ERROR: frozenset({PipelineState.IDLE}),
}


@dataclass
class AudioClip:
    """One recording event and the files derived from it."""
    request_id: str
    raw_path: Path
    wav_path: Path | None = None

    def paths(self) -> tuple[Path, ...]:
        if self.wav_path is None:
            return (self.raw_path,)
        return (self.raw_path, self.wav_path)


class SessionPipeline:
    """
    One pipeline == one session.

    process_audio() must not be called concurrently for the same session;
    it raises RuntimeError if the pipeline is not IDLE.
    """

    def __init__(
        self,
        *,
        session: VoiceSession,
        transcoder: Transcoder,
        stt: STTAdapter,
        tts: TTSAdapter,
        responder: ResponseOrchestrator,
        emit_json: EmitJson,
        emit_binary: EmitBinary,
        temp_dir: Path,
        debug_capture_path: Path | None = None,
        min_audio_bytes: int = MIN_AUDIO_BYTES,
    ) -> None:
        self._session = session
        self._transcoder = transcoder
        self._stt = stt
        self._tts = tts
        self._responder = responder
        self._emit_json = emit_json
        self._emit_binary = emit_binary
        self._temp_dir = temp_dir
        self._debug_capture_path = debug_capture_path
        self._min_audio_bytes = min_audio_bytes

    @property
    def state(self) -> PipelineState:
        return self._session.state

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def process_audio(self, payload: bytes) -> None:
        """Run one full cycle for one binary audio frame."""
        self._transition(PipelineState.RECEIVING_AUDIO, reason="audio_received")

        log_event({
            "event_type": "AUDIO_RECEIVED",
            "session_id": self._session.session_id,
            "payload_len": len(payload),
        })

        if len(payload) < self._min_audio_bytes:
            try:
                await self._status(STATUS_TOO_SHORT)
            finally:
                self._transition(PipelineState.IDLE, reason="too_short")
            return

        request_id = self._session.next_request_id()
        clip = AudioClip(
            request_id=request_id,
            raw_path=self._session.track(self._temp_dir / f"voice-chat-input-{request_id}.audio"),
        )

        try:
            await self._run_cycle(clip, payload)

        except EngineError as exc:
            await self._fail(clip, exc)

        except asyncio.CancelledError:
            log_event({
                "event_type": "PIPELINE_CYCLE_CANCELLED",
                "session_id": self._session.session_id,
                "request_id": clip.request_id,
                "state": self._session.state.value,
            })
            raise

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "PIPELINE_UNEXPECTED_ERROR",
                "session_id": self._session.session_id,
                "request_id": clip.request_id,
                "state": self._session.state.value,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            await self._fail(clip, exc)

        finally:
            for path in clip.paths():
                self._session.release(path)
            if self._session.state is not PipelineState.IDLE:
                self._force_idle(reason="cycle_aborted")

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def _run_cycle(self, clip: AudioClip, payload: bytes) -> None:
        session_id = self._session.session_id

        await asyncio.to_thread(clip.raw_path.write_bytes, payload)
        await self._write_debug_capture(payload)

        # ---- TRANSCRIBING ----
        await self._status(STATUS_TRANSCRIBING)
        self._transition(PipelineState.TRANSCRIBING, reason="audio_persisted")

        with timed("stt_latency", session_id=session_id, details={"request_id": clip.request_id}) as stt_timer:
            clip.wav_path = self._session.track(await self._transcoder.convert(clip.raw_path))
            raw_text = await self._stt.transcribe(clip.wav_path)
            transcript = deduplicate_transcript(raw_text).strip()

        log_event({
            "event_type": "STT_PARSED",
            "session_id": session_id,
            "request_id": clip.request_id,
            "text": raw_text,
            "deduped": transcript if transcript != raw_text.strip() else None,
        })

        if not transcript:
            await self._status(STATUS_NO_SPEECH)
            self._transition(PipelineState.IDLE, reason="no_speech")
            return

        await self._emit_json({
            "type": "transcript",
            "text": transcript,
            "latencyMs": stt_timer.duration_ms,
        })
        self._session.history.add_user_turn(transcript)

        # ---- AWAITING_RESPONSE ----
        self._transition(PipelineState.AWAITING_RESPONSE, reason="transcript_ready")
        await self._status(STATUS_THINKING)

        with timed("response_latency", session_id=session_id, details={"request_id": clip.request_id}) as response_timer:
            envelope = await self._responder.get_response(
                transcript,
                self._session.history.turns,
                session_id=session_id,
            )

        log_event({
            "event_type": "RESPONSE_READY",
            "session_id": session_id,
            "request_id": clip.request_id,
            "source": envelope.source,
            "voice_preview": envelope.voice[:LOG_PREVIEW_CHARS],
            "detail_preview": envelope.detail[:LOG_PREVIEW_CHARS],
        })

        await self._emit_json({
            "type": "response",
            "voice": envelope.voice,
            "detail": envelope.detail,
            "latencyMs": response_timer.duration_ms,
        })
        self._session.history.add_assistant_turn(envelope.voice, envelope.detail)

        # ---- SYNTHESIZING ----
        self._transition(PipelineState.SYNTHESIZING, reason="response_ready")
        await self._status(STATUS_SPEAKING)

        with timed("tts_latency", session_id=session_id, details={"request_id": clip.request_id}):
            audio = await self._tts.synthesize(envelope.voice)

        log_event({
            "event_type": "TTS_AUDIO_READY",
            "session_id": session_id,
            "request_id": clip.request_id,
            "audio_bytes": len(audio),
        })

        await self._emit_binary(audio)
        self._transition(PipelineState.IDLE, reason="cycle_complete")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _fail(self, clip: AudioClip, exc: BaseException) -> None:
        log_event({
            "event_type": "PIPELINE_ERROR",
            "session_id": self._session.session_id,
            "request_id": clip.request_id,
            "state": self._session.state.value,
            "exception": type(exc).__name__,
            "message": str(exc),
        })
        self._transition(PipelineState.ERROR, reason=type(exc).__name__)
        await self._emit_json({"type": "error", "text": str(exc)})
        self._transition(PipelineState.IDLE, reason="error_reported")

    async def _status(self, text: str) -> None:
        await self._emit_json({"type": "status", "text": text})

    async def _write_debug_capture(self, payload: bytes) -> None:
        """Overwrite the last-capture file. Failures are logged, never fatal."""
        if self._debug_capture_path is None:
            return
        try:
            await asyncio.to_thread(self._debug_capture_path.write_bytes, payload)
        except OSError as e:
            log_event({
                "event_type": "DEBUG_CAPTURE_WRITE_ERROR",
                "session_id": self._session.session_id,
                "path": str(self._debug_capture_path),
                "error": str(e),
            })

    def _transition(self, new_state: PipelineState, *, reason: str) -> None:
        old_state = self._session.state
        if new_state not in _ALLOWED_TRANSITIONS[old_state]:
            raise RuntimeError(
                f"illegal pipeline transition {old_state.value} -> {new_state.value}"
            )
        self._session.state = new_state
        log_event({
            "event_type": "PIPELINE_STATE_TRANSITION",
            "session_id": self._session.session_id,
            "from": old_state.value,
            "to": new_state.value,
            "reason": reason,
        })

    def _force_idle(self, *, reason: str) -> None:
        """Reset after cancellation or a failure while reporting a failure."""
        log_event({
            "event_type": "PIPELINE_STATE_TRANSITION",
            "session_id": self._session.session_id,
            "from": self._session.state.value,
            "to": PipelineState.IDLE.value,
            "reason": reason,
        })
        self._session.state = PipelineState.IDLE
