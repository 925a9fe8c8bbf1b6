"""
SPEC-AS-CONSTANTS
-----------------
Single source of truth for all behavioral invariants in the system.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.

Deployment-specific values (paths, ports, tokens) live in config.py instead.
"""

from __future__ import annotations

from typing import Final

# =============================================================================
# Audio Ingest
# =============================================================================

# Anything smaller is a bare container header with no usable audio
MIN_AUDIO_BYTES: Final[int] = 1000

TRANSCODE_SAMPLE_RATE_HZ: Final[int] = 16_000
TRANSCODE_CHANNELS: Final[int] = 1
TRANSCODE_SAMPLE_FMT: Final[str] = "s16"

# =============================================================================
# Transcript Deduplication
# =============================================================================

DEDUP_MIN_TOKENS: Final[int] = 4
DEDUP_MIN_REPEAT_TOKENS: Final[int] = 2

# =============================================================================
# External Engines
# =============================================================================

WHISPER_TAIL_PADDINGS: Final[int] = 10

# Diagnostic tails carried in engine errors
CONVERSION_ERROR_TAIL_CHARS: Final[int] = 200
STT_ERROR_TAIL_CHARS: Final[int] = 500

# =============================================================================
# Response Orchestration
# =============================================================================

PRIMARY_TIMEOUT_S: Final[float] = 25.0
PRIMARY_MAX_TOKENS: Final[int] = 1000

SECONDARY_TIMEOUT_S: Final[float] = 20.0
SECONDARY_MAX_TOKENS: Final[int] = 300
SECONDARY_TEMPERATURE: Final[float] = 0.7

SUMMARY_TIMEOUT_S: Final[float] = 10.0
SUMMARY_MAX_TOKENS: Final[int] = 100
SUMMARY_TEMPERATURE: Final[float] = 0.3

# Primary answers longer than this get a spoken summary
SUMMARY_TRIGGER_CHARS: Final[int] = 100

# Local voice derivation when summarization fails
LOCAL_VOICE_MAX_CHARS: Final[int] = 200
LOCAL_VOICE_TRUNCATE_CHARS: Final[int] = 150
LOCAL_VOICE_ELLIPSIS: Final[str] = "..."

APOLOGY_TEXT: Final[str] = (
    "Both my brain and my backup brain are down. Try again in a moment?"
)

# =============================================================================
# Client-facing Status Text
# =============================================================================

STATUS_TOO_SHORT: Final[str] = "Recording too short — hold longer"
STATUS_TRANSCRIBING: Final[str] = "Transcribing..."
STATUS_NO_SPEECH: Final[str] = "No speech detected"
STATUS_THINKING: Final[str] = "Thinking..."
STATUS_SPEAKING: Final[str] = "Speaking..."
STATUS_BUSY: Final[str] = "Still working on your last message — try again in a moment"

# =============================================================================
# Logging
# =============================================================================

LOG_PREVIEW_CHARS: Final[int] = 50
