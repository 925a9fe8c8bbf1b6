# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
from types import SimpleNamespace
from typing import Any

import pytest

from adapters.llm.chat import EndpointError, OpenAIChatEndpoint


class FakeCompletions:
    def __init__(self, reply: Any = None, delay_s: float = 0.0) -> None:
        self.reply = reply
        self.delay_s = delay_s
        self.kwargs: dict[str, Any] = {}

    async def create(self, **kwargs: Any) -> Any:
        self.kwargs = kwargs
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        return self.reply


def make_endpoint(completions: FakeCompletions) -> OpenAIChatEndpoint:
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAIChatEndpoint(client=client, model="qwen2.5:14b", name="secondary")


def reply(content: Any) -> Any:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


MESSAGES = [{"role": "user", "content": "hi"}]


@pytest.mark.asyncio
async def test_complete_returns_message_content():
    completions = FakeCompletions(reply("Hello there."))

    text = await make_endpoint(completions).complete(
        MESSAGES, max_tokens=300, timeout_s=5, temperature=0.7,
    )

    assert text == "Hello there."
    assert completions.kwargs["model"] == "qwen2.5:14b"
    assert completions.kwargs["max_tokens"] == 300
    assert completions.kwargs["temperature"] == 0.7
    assert completions.kwargs["messages"] == MESSAGES


@pytest.mark.asyncio
async def test_temperature_omitted_when_not_given():
    completions = FakeCompletions(reply("ok"))

    await make_endpoint(completions).complete(MESSAGES, max_tokens=10, timeout_s=5)

    assert "temperature" not in completions.kwargs


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [reply(None), reply(""), SimpleNamespace(choices=[]), None],
)
async def test_empty_or_malformed_reply_raises(response: Any):
    with pytest.raises(EndpointError):
        await make_endpoint(FakeCompletions(response)).complete(
            MESSAGES, max_tokens=10, timeout_s=5,
        )


@pytest.mark.asyncio
async def test_slow_upstream_times_out():
    completions = FakeCompletions(reply("late"), delay_s=5)

    with pytest.raises(asyncio.TimeoutError):
        await make_endpoint(completions).complete(MESSAGES, max_tokens=10, timeout_s=0.1)
