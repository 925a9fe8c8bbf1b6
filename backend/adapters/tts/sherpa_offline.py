"""
sherpa-onnx offline VITS/Piper synthesizer.

Runs `sherpa-onnx-offline-tts` once per utterance and reads back the WAV it
writes. WAV is returned as-is because every browser can decode it.

Concurrency:
- One adapter instance per session.
- Output files are named <prefix>-<session_id>-<counter>-<ms>.wav so two
  sessions (or two calls in the same millisecond) never share a path.
"""

from __future__ import annotations

import asyncio
import itertools
from pathlib import Path

from adapters.errors import ProcessTimeoutError, TtsError
from adapters.process import library_path_env, run_process
from adapters.tts.base import TTSAdapter

from observability.logger import now_ms


class SherpaOfflineTTSAdapter(TTSAdapter):
    """Speech synthesis through the sherpa-onnx offline TTS CLI."""

    def __init__(
        self,
        *,
        runtime_dir: Path,
        model_dir: Path,
        model_name: str,
        speaker_id: int,
        temp_dir: Path,
        session_id: str,
        timeout_s: float | None = None,
    ) -> None:
        self._runtime_dir = runtime_dir
        self._model_dir = model_dir
        self._model_name = model_name
        self._speaker_id = speaker_id
        self._temp_dir = temp_dir
        self._session_id = session_id
        self._timeout_s = timeout_s
        self._counter = itertools.count(1)

    def next_output_path(self) -> Path:
        return self._temp_dir / (
            f"voice-chat-tts-{self._session_id}-{next(self._counter)}-{now_ms()}.wav"
        )

    def build_argv(self, text: str, output_path: Path) -> list[str]:
        model = self._model_dir
        return [
            str(self._runtime_dir / "bin" / "sherpa-onnx-offline-tts"),
            f"--vits-model={model / f'{self._model_name}.onnx'}",
            f"--vits-tokens={model / 'tokens.txt'}",
            f"--vits-data-dir={model / 'espeak-ng-data'}",
            f"--sid={self._speaker_id}",
            f"--output-filename={output_path}",
            text,
        ]

    async def synthesize(self, text: str) -> bytes:
        output_path = self.next_output_path()
        try:
            try:
                result = await run_process(
                    self.build_argv(text, output_path),
                    env=library_path_env(self._runtime_dir / "lib"),
                    timeout_s=self._timeout_s,
                )
            except ProcessTimeoutError as e:
                raise TtsError(f"TTS failed: {e}") from e
            except OSError as e:
                raise TtsError(f"TTS could not be started: {e}") from e

            if result.returncode != 0:
                raise TtsError(f"TTS failed (code {result.returncode}): {result.stderr}")

            try:
                return await asyncio.to_thread(output_path.read_bytes)
            except OSError as e:
                raise TtsError(f"TTS output unreadable: {e}") from e
        finally:
            output_path.unlink(missing_ok=True)
