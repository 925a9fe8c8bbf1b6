"""
STT adapter contract.

This module defines the *interface only*: no transcoding, deduplication,
retries or orchestration decisions live here.

Key invariants:
- Input is a normalized 16 kHz mono PCM16 WAV (the transcoder's output).
- "No speech" is NOT an error: it is reported as an empty string.
- Abnormal engine exits raise SttError.
- The adapter never deletes its input file; the pipeline owns it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class STTAdapter(ABC):
    """
    Abstract interface for a whole-file speech recognizer.

    Non-responsibilities:
    - No state machine logic
    - No hallucination repair (see transcript.dedup)
    - No direct interaction with WebSocket or UI
    """

    @abstractmethod
    async def transcribe(self, wav_path: Path) -> str:
        """
        Recognize speech in wav_path.

        Returns:
            The raw transcript, stripped, or "" when nothing was recognized.

        Raises:
            SttError on engine failure.
        """
        raise NotImplementedError
