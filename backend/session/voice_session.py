"""
Voice session container.

- Owns conversation history, pipeline state and temp-file handles
- Owned and mutated by SessionGateway / SessionPipeline
- NOT a state machine (transitions live in session.pipeline)
"""

from __future__ import annotations

import itertools
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from context.conversation import ConversationHistory
from observability.logger import log_event
from orchestrator.enums.state import PipelineState
from session.connection_status import ConnectionStatus


# ---------------------------------------------------------------------
# VoiceSession
# ---------------------------------------------------------------------


@dataclass
class VoiceSession:
    """Mutable runtime container for a single voice session."""

    # ------------------------------------------------------------------
    # Identity / lifecycle
    # ------------------------------------------------------------------

    session_id: str
    created_at: float = field(default_factory=time.time)

    # ------------------------------------------------------------------
    # Conversation history (append-only, replayed to the LLM)
    # ------------------------------------------------------------------

    history: ConversationHistory = field(init=False)

    # ------------------------------------------------------------------
    # Pipeline / connection state
    # ------------------------------------------------------------------

    state: PipelineState = PipelineState.IDLE
    connection_status: ConnectionStatus = ConnectionStatus.DOWN

    # ------------------------------------------------------------------
    # In-flight temporary files
    # ------------------------------------------------------------------

    temp_files: set[Path] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.history = ConversationHistory(session_id=self.session_id)
        self._request_counter = itertools.count(1)

    # ------------------------------------------------------------------
    # Temp resources
    # ------------------------------------------------------------------

    def next_request_id(self) -> str:
        """Unique per request across all sessions: <session_id>-<n>."""
        return f"{self.session_id}-{next(self._request_counter)}"

    def track(self, path: Path) -> Path:
        self.temp_files.add(path)
        return path

    def release(self, path: Path) -> None:
        """Delete a tracked temp file (missing files are fine) and forget it."""
        self.temp_files.discard(path)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            log_event({
                "event_type": "TEMP_FILE_RELEASE_ERROR",
                "session_id": self.session_id,
                "path": str(path),
                "error": str(e),
            })

    def release_all(self) -> None:
        for path in list(self.temp_files):
            self.release(path)

    # ------------------------------------------------------------------
    # Observability helpers (read-only)
    # ------------------------------------------------------------------

    def log_context(self) -> dict[str, Any]:
        """Standard logging context for this session."""
        return {
            "session_id": self.session_id,
            "connection_status": self.connection_status.value,
            "state": self.state.value,
        }
