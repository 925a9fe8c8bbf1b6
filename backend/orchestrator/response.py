"""
Dual-response orchestration.

Produces a ResponseEnvelope for one user message:
- detail: the full answer (may contain markdown)
- voice: a short spoken-style version of it, fed to TTS

Fallback chain (first success wins):
1. Primary endpoint (full agent gateway), detailed system prompt,
   history with assistant detail. Skipped when not configured.
2. Secondary endpoint (local conversational model), voice system prompt,
   history with spoken text only. Its answer is both detail and voice.
3. Fixed apology text in both fields.

When the primary answered with more than SUMMARY_TRIGGER_CHARS, the
secondary is asked to compress it into 1-2 spoken sentences. If that fails
the voice text is derived locally from the first sentence.

get_response() never raises for endpoint failures.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Literal

from adapters.llm.base import ChatEndpoint
from adapters.llm.prompts import (
    DETAIL_SYSTEM_PROMPT_V1,
    SUMMARY_SYSTEM_PROMPT_V1,
    VOICE_SYSTEM_PROMPT_V1,
)
from context.conversation import Turn
from context.serialization import serialize_for_llm
from observability.logger import log_event

from spec import (
    APOLOGY_TEXT,
    LOCAL_VOICE_ELLIPSIS,
    LOCAL_VOICE_MAX_CHARS,
    LOCAL_VOICE_TRUNCATE_CHARS,
    PRIMARY_MAX_TOKENS,
    PRIMARY_TIMEOUT_S,
    SECONDARY_MAX_TOKENS,
    SECONDARY_TEMPERATURE,
    SECONDARY_TIMEOUT_S,
    SUMMARY_MAX_TOKENS,
    SUMMARY_TEMPERATURE,
    SUMMARY_TIMEOUT_S,
    SUMMARY_TRIGGER_CHARS,
)


ResponseSource = Literal["primary", "secondary", "apology"]

# First sentence: up to and including a terminator followed by whitespace or end
_FIRST_SENTENCE_RE = re.compile(r"^(.*?[.!?])(?=\s|$)", re.DOTALL)


@dataclass(frozen=True)
class ResponseEnvelope:
    """Dual response. Both fields are non-empty."""
    voice: str
    detail: str
    source: ResponseSource = "primary"


class ResponseOrchestrator:
    """
    Runs the fallback chain for one message at a time.

    Stateless between calls; one instance can serve every session.
    """

    def __init__(
        self,
        *,
        primary: ChatEndpoint | None,
        secondary: ChatEndpoint,
    ) -> None:
        self._primary = primary
        self._secondary = secondary

    @property
    def has_primary(self) -> bool:
        return self._primary is not None

    async def get_response(
        self,
        user_message: str,
        history: Iterable[Turn],
        *,
        session_id: str | None = None,
    ) -> ResponseEnvelope:
        turns = tuple(history)

        detail = await self._ask_primary(user_message, turns, session_id)
        if detail:
            voice = await self._voice_for(detail, session_id)
            return ResponseEnvelope(voice=voice, detail=detail, source="primary")

        answer = await self._ask_secondary(user_message, turns, session_id)
        if answer:
            return ResponseEnvelope(voice=answer, detail=answer, source="secondary")

        return ResponseEnvelope(voice=APOLOGY_TEXT, detail=APOLOGY_TEXT, source="apology")

    # ------------------------------------------------------------------
    # Chain steps
    # ------------------------------------------------------------------

    async def _ask_primary(
        self,
        user_message: str,
        turns: tuple[Turn, ...],
        session_id: str | None,
    ) -> str:
        if self._primary is None:
            log_event({
                "event_type": "RESPONSE_PRIMARY_SKIPPED",
                "session_id": session_id,
                "reason": "not_configured",
            })
            return ""

        messages = serialize_for_llm(
            system_prompt=DETAIL_SYSTEM_PROMPT_V1,
            history=turns,
            user_text=user_message,
            use_detail=True,
        )
        try:
            return (await self._primary.complete(
                messages,
                max_tokens=PRIMARY_MAX_TOKENS,
                timeout_s=PRIMARY_TIMEOUT_S,
            )).strip()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "RESPONSE_PRIMARY_FAILED",
                "session_id": session_id,
                "endpoint": self._primary.name,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            return ""

    async def _ask_secondary(
        self,
        user_message: str,
        turns: tuple[Turn, ...],
        session_id: str | None,
    ) -> str:
        messages = serialize_for_llm(
            system_prompt=VOICE_SYSTEM_PROMPT_V1,
            history=turns,
            user_text=user_message,
            use_detail=False,
        )
        try:
            return (await self._secondary.complete(
                messages,
                max_tokens=SECONDARY_MAX_TOKENS,
                timeout_s=SECONDARY_TIMEOUT_S,
                temperature=SECONDARY_TEMPERATURE,
            )).strip()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "RESPONSE_SECONDARY_FAILED",
                "session_id": session_id,
                "endpoint": self._secondary.name,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            return ""

    async def _voice_for(self, detail: str, session_id: str | None) -> str:
        """Spoken version of a primary answer."""
        if len(detail) <= SUMMARY_TRIGGER_CHARS:
            return detail

        messages = [
            {"role": "system", "content": SUMMARY_SYSTEM_PROMPT_V1},
            {"role": "user", "content": detail},
        ]
        try:
            summary = (await self._secondary.complete(
                messages,
                max_tokens=SUMMARY_MAX_TOKENS,
                timeout_s=SUMMARY_TIMEOUT_S,
                temperature=SUMMARY_TEMPERATURE,
            )).strip()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "RESPONSE_SUMMARY_FAILED",
                "session_id": session_id,
                "endpoint": self._secondary.name,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            return derive_voice_locally(detail)

        if not summary or len(summary) >= len(detail):
            log_event({
                "event_type": "RESPONSE_SUMMARY_REJECTED",
                "session_id": session_id,
                "summary_chars": len(summary),
                "detail_chars": len(detail),
            })
            return derive_voice_locally(detail)

        return summary


def derive_voice_locally(detail: str) -> str:
    """
    First sentence of detail, or a truncated prefix when that is too long.

    Never longer than detail.
    """
    match = _FIRST_SENTENCE_RE.match(detail)
    voice = match.group(1) if match else detail
    if len(voice) > LOCAL_VOICE_MAX_CHARS:
        voice = detail[:LOCAL_VOICE_TRUNCATE_CHARS] + LOCAL_VOICE_ELLIPSIS
    return voice
