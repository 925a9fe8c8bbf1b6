"""
sherpa-onnx offline Whisper recognizer.

Runs `sherpa-onnx-offline` once per utterance against a normalized WAV.

Output quirks:
- The binary writes everything (progress, timing AND the JSON result) to
  stderr, so stdout and stderr are scanned together.
- The result is a single JSON object on its own line with a "text" field;
  other lines may also start with "{" (config dumps), so each candidate is
  parsed and the first one with non-empty text wins.
"""

from __future__ import annotations

import json
from pathlib import Path

from adapters.asr.base import STTAdapter
from adapters.errors import ProcessTimeoutError, SttError
from adapters.process import library_path_env, run_process

from spec import STT_ERROR_TAIL_CHARS, WHISPER_TAIL_PADDINGS


class SherpaOfflineSTTAdapter(STTAdapter):
    """Whisper recognition through the sherpa-onnx offline CLI."""

    def __init__(
        self,
        *,
        runtime_dir: Path,
        model_dir: Path,
        model_prefix: str = "small.en",
        timeout_s: float | None = None,
    ) -> None:
        self._runtime_dir = runtime_dir
        self._model_dir = model_dir
        self._model_prefix = model_prefix
        self._timeout_s = timeout_s

    def build_argv(self, wav_path: Path) -> list[str]:
        model = self._model_dir
        prefix = self._model_prefix
        return [
            str(self._runtime_dir / "bin" / "sherpa-onnx-offline"),
            f"--whisper-encoder={model / f'{prefix}-encoder.onnx'}",
            f"--whisper-decoder={model / f'{prefix}-decoder.onnx'}",
            f"--tokens={model / f'{prefix}-tokens.txt'}",
            "--model-type=whisper",
            f"--whisper-tail-paddings={WHISPER_TAIL_PADDINGS}",
            str(wav_path),
        ]

    async def transcribe(self, wav_path: Path) -> str:
        try:
            result = await run_process(
                self.build_argv(wav_path),
                env=library_path_env(self._runtime_dir / "lib"),
                timeout_s=self._timeout_s,
            )
        except ProcessTimeoutError as e:
            raise SttError(f"STT failed: {e}") from e
        except OSError as e:
            raise SttError(f"STT could not be started: {e}") from e

        output = result.combined_output
        if result.returncode != 0:
            raise SttError(
                f"STT failed (code {result.returncode}): {output[-STT_ERROR_TAIL_CHARS:]}"
            )

        return parse_transcript(output)


def parse_transcript(output: str) -> str:
    """Return the text of the first JSON result line in output, or ""."""
    for line in output.strip().splitlines():
        candidate = line.strip()
        if not (candidate.startswith("{") and '"text"' in candidate):
            continue
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if not isinstance(parsed, dict):
            continue
        text = parsed.get("text")
        if isinstance(text, str) and text:
            return text.strip()

    return ""
