"""
Session pipeline state enumeration.

Rules:
- This enum defines ONLY the pipeline states.
- No behavior, no helper methods, no side effects.
- Allowed transitions are defined in session.pipeline.
"""

from __future__ import annotations

from enum import Enum


class PipelineState(str, Enum):
    """
    Per-session pipeline states.

    One audio submission drives one cycle:
    IDLE -> RECEIVING_AUDIO -> TRANSCRIBING -> AWAITING_RESPONSE
         -> SYNTHESIZING -> IDLE
    ERROR is transient and always resolves to IDLE.
    """

    IDLE = "IDLE"
    RECEIVING_AUDIO = "RECEIVING_AUDIO"
    TRANSCRIBING = "TRANSCRIBING"
    AWAITING_RESPONSE = "AWAITING_RESPONSE"
    SYNTHESIZING = "SYNTHESIZING"
    ERROR = "ERROR"
