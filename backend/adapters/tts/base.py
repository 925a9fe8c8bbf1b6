"""
TTS adapter contract.

This module defines the *interface only*: no text shaping, retries or
orchestration decisions live here.

Key invariants:
- Input is the voice-facing text only (never the detailed answer).
- Output is a complete WAV container held in memory.
- Any intermediate file is private to the call: uniquely named so concurrent
  sessions never collide, and removed on every exit path.
- Failures raise TtsError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class TTSAdapter(ABC):
    """
    Abstract interface for a whole-utterance speech synthesizer.

    Non-responsibilities:
    - No chunking
    - No state machine logic
    - No direct interaction with WebSocket or UI
    """

    @abstractmethod
    async def synthesize(self, text: str) -> bytes:
        """
        Synthesize text and return WAV bytes.

        Raises:
            TtsError on engine failure.
        """
        raise NotImplementedError
