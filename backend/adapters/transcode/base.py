"""
Transcoder contract.

This module defines the *interface only*.

Key invariants:
- Output is mono, 16 kHz, 16-bit PCM WAV (what the recognizer requires).
- Failures raise ConversionError carrying the tail of the tool's diagnostics.
- A failed conversion leaves no output file behind.
- The caller owns (and deletes) both the input file and a returned output file.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class Transcoder(ABC):
    """Normalizes arbitrary captured audio for the recognizer."""

    @abstractmethod
    async def convert(self, input_path: Path) -> Path:
        """
        Convert input_path to a normalized WAV and return its path.

        Raises:
            ConversionError on any failure.
        """
        raise NotImplementedError
