"""
Conversation history.

Responsibilities:
- Store ordered user/assistant turns (append-only)
- Validate each turn at construction time
- Provide the turns for LLM message building

Non-responsibilities:
- No truncation (history is replayed verbatim)
- No LLM formatting (see context.serialization)
- No orchestration decisions
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Literal

from observability.logger import log_event


Role = Literal["user", "assistant"]

_ROLES: tuple[str, ...] = ("user", "assistant")


@dataclass(frozen=True)
class Turn:
    """
    Single conversation turn.

    text:
        The voice-facing utterance (what was said / spoken back).
    detail:
        Full, unabridged content. Always equal to text for user turns;
        optional for assistant turns, and never shorter than text.
    """
    role: Role
    text: str
    detail: str | None = None

    def __post_init__(self) -> None:
        if self.role not in _ROLES:
            raise ValueError(f"unknown role: {self.role!r}")
        if not self.text or not self.text.strip():
            raise ValueError(f"{self.role} turn text must be non-empty")

        if self.role == "user":
            if self.detail is None:
                object.__setattr__(self, "detail", self.text)
            elif self.detail != self.text:
                raise ValueError("user turn detail must equal its text")
            return

        if self.detail is not None:
            if not self.detail.strip():
                raise ValueError("assistant turn detail must be non-empty when given")
            if len(self.detail) < len(self.text):
                raise ValueError("assistant turn detail is shorter than its text")

    @classmethod
    def user(cls, text: str) -> Turn:
        return cls(role="user", text=text)

    @classmethod
    def assistant(cls, text: str, detail: str | None = None) -> Turn:
        return cls(role="assistant", text=text, detail=detail)

    @property
    def full_content(self) -> str:
        """detail when present, else text."""
        return self.detail or self.text


class ConversationHistory:
    """
    Mutable, append-only turn list owned by one session.

    Invariants:
    - Turns are stored in insertion (chronological) order
    - Only the owning session's pipeline mutates it, one cycle at a time
    """

    def __init__(self, session_id: str | None = None) -> None:
        self._session_id = session_id
        self._turns: list[Turn] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def add_user_turn(self, text: str) -> Turn:
        """Append a user turn."""
        return self._append(Turn.user(text))

    def add_assistant_turn(self, text: str, detail: str | None = None) -> Turn:
        """Append an assistant turn (text = voice, detail = full answer)."""
        return self._append(Turn.assistant(text, detail))

    @property
    def turns(self) -> tuple[Turn, ...]:
        return tuple(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(tuple(self._turns))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _append(self, turn: Turn) -> Turn:
        self._turns.append(turn)
        log_event({
            "event_type": "history_turn_added",
            "session_id": self._session_id,
            "role": turn.role,
            "turn_index": len(self._turns) - 1,
            "char_count": len(turn.full_content),
        })
        return turn
