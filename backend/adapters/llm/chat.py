"""OpenAI-compatible chat endpoint (OpenClaw gateway, Ollama, ...)."""
from __future__ import annotations

import asyncio
from typing import Any

from openai import AsyncOpenAI

from adapters.llm.base import ChatEndpoint


class EndpointError(RuntimeError):
    """Reply carried no usable text."""


class OpenAIChatEndpoint(ChatEndpoint):
    """
    Concrete chat endpoint over the `openai` async client.

    Design notes:
    - One instance per upstream, shared by all sessions (the client is
      safe for concurrent use).
    - The client is built with max_retries=0 so timeout_s is a real bound.
    """

    def __init__(
        self,
        *,
        client: Any,
        model: str,
        name: str,
    ) -> None:
        """
        Args:
            client:
                AsyncOpenAI (or compatible) client bound to the upstream.
            model:
                Model identifier string.
            name:
                Short label for logs ("primary", "secondary").
        """
        self._client = client
        self._model = model
        self.name = name

    @classmethod
    def build(
        cls,
        *,
        base_url: str,
        model: str,
        name: str,
        api_key: str | None = None,
    ) -> OpenAIChatEndpoint:
        """Build an endpoint with its own client. api_key is sent as a bearer token."""
        client = AsyncOpenAI(
            base_url=base_url,
            # Local servers ignore the key but the client requires one
            api_key=api_key or "not-needed",
            max_retries=0,
        )
        return cls(client=client, model=model, name=name)

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        max_tokens: int,
        timeout_s: float,
        temperature: float | None = None,
    ) -> str:
        kwargs: dict[str, Any] = dict(
            model=self._model,
            messages=messages,
            max_tokens=max_tokens,
            timeout=timeout_s,
        )
        if temperature is not None:
            kwargs["temperature"] = temperature

        response = await asyncio.wait_for(
            self._client.chat.completions.create(**kwargs),
            timeout=timeout_s,
        )

        text = self._extract_content(response)
        if not text:
            raise EndpointError(f"{self.name}: empty reply from {self._model}")
        return text

    @staticmethod
    def _extract_content(response: Any) -> str:
        """Extract choices[0].message.content (OpenAI format)."""
        try:
            return response.choices[0].message.content or ""
        except (AttributeError, IndexError, TypeError):
            return ""
