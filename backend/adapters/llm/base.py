"""
Chat endpoint contract.

Purpose:
- Define the interface for one non-streaming chat completion.
- Keep fallback ordering, prompt choice and summarization OUT of the adapter.

Rules:
- This file contains NO logic.
- No retries.
- No knowledge of TTS, UI, or the session state machine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ChatEndpoint(ABC):
    """
    Abstract base class for an OpenAI-compatible chat endpoint.

    The endpoint is a *dumb pipe*: messages -> vendor -> reply text.

    Orchestrator responsibilities (NOT here):
    - Which endpoint to try, and in what order
    - Timeout budgets per call
    - Message construction
    - What to do when a call fails
    """

    name: str = "endpoint"

    @abstractmethod
    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        timeout_s: float,
        temperature: float | None = None,
    ) -> str:
        """
        Run one chat completion and return the reply text.

        Contract:
        - Returns non-empty text on success.
        - Raises (any exception) on transport error, HTTP error, timeout or
          an empty/malformed reply. The caller treats every raise the same.
        - Must NOT retry internally.
        - Must give up after timeout_s.
        """
        raise NotImplementedError
