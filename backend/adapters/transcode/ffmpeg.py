"""
ffmpeg transcoder.

Browsers record in whatever container they like (webm/opus, mp4/aac, wav at
48 kHz). The recognizer only accepts 16 kHz mono PCM16 WAV, so every capture
passes through ffmpeg first.
"""

from __future__ import annotations

from pathlib import Path

from adapters.errors import ConversionError, ProcessTimeoutError
from adapters.process import run_process
from adapters.transcode.base import Transcoder

from spec import (
    CONVERSION_ERROR_TAIL_CHARS,
    TRANSCODE_CHANNELS,
    TRANSCODE_SAMPLE_FMT,
    TRANSCODE_SAMPLE_RATE_HZ,
)


class FfmpegTranscoder(Transcoder):
    """Transcoder backed by one ffmpeg process per call."""

    def __init__(self, *, ffmpeg_bin: str = "ffmpeg", timeout_s: float | None = None) -> None:
        self._ffmpeg_bin = ffmpeg_bin
        self._timeout_s = timeout_s

    async def convert(self, input_path: Path) -> Path:
        output_path = input_path.with_name(input_path.name + ".16k.wav")
        argv = [
            self._ffmpeg_bin,
            "-y", "-i", str(input_path),
            "-ar", str(TRANSCODE_SAMPLE_RATE_HZ),
            "-ac", str(TRANSCODE_CHANNELS),
            "-sample_fmt", TRANSCODE_SAMPLE_FMT,
            str(output_path),
        ]

        completed = False
        try:
            try:
                result = await run_process(argv, timeout_s=self._timeout_s)
            except ProcessTimeoutError as e:
                raise ConversionError(f"ffmpeg failed: {e}") from e
            except OSError as e:
                raise ConversionError(f"ffmpeg could not be started: {e}") from e

            if result.returncode != 0:
                raise ConversionError(
                    f"ffmpeg failed: {result.stderr[-CONVERSION_ERROR_TAIL_CHARS:]}"
                )
            completed = True
            return output_path
        finally:
            if not completed:
                output_path.unlink(missing_ok=True)
