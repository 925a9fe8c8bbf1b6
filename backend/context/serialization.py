"""
Conversation history serialization for LLM consumption.

Responsibilities:
- Convert system prompt + history + current user text into the
  OpenAI chat message format.

Non-responsibilities:
- No turn storage
- No logging
- No orchestration decisions
"""

from __future__ import annotations

from typing import Iterable

from context.conversation import Turn


def serialize_for_llm(
    *,
    system_prompt: str,
    history: Iterable[Turn],
    user_text: str,
    use_detail: bool,
) -> list[dict[str, str]]:
    """
    Serialize history into LLM message format.

    Output format:
    [
        {"role": "system", "content": "..."},
        {"role": "user", "content": "..."},
        {"role": "assistant", "content": "..."},
        ...
        {"role": "user", "content": "<current user text>"},
    ]

    Rules:
    - System prompt is always first
    - History turns come next, in order. With use_detail, assistant turns
      contribute their full detail (falling back to text); otherwise only
      the spoken text.
    - The current user text is appended unless the last message already
      carries exactly that content (the pipeline records the user turn
      before asking for a response).
    """
    messages: list[dict[str, str]] = [{
        "role": "system",
        "content": system_prompt,
    }]

    for turn in history:
        content = turn.full_content if (use_detail and turn.role == "assistant") else turn.text
        messages.append({"role": turn.role, "content": content})

    if messages[-1]["content"] != user_text:
        messages.append({
            "role": "user",
            "content": user_text,
        })

    return messages
