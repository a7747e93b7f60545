# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import os
import pytest

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

from dev_agent.src.llm.providers.anthropic import AnthropicProvider
from dev_agent.src.types.llm_types import (
    Message,
    TextContent,
    ToolResultContent,
    ToolUseContent,
)

pytestmark = pytest.mark.asyncio


def fake_response(*blocks, usage=None):
    return SimpleNamespace(
        id="msg_123",
        model="claude-test",
        content=list(blocks),
        usage=usage or SimpleNamespace(input_tokens=42, output_tokens=7),
        stop_reason="tool_use",
    )


@pytest.fixture
def client():
    client = Mock()
    client.messages.create = AsyncMock()
    return client


async def test_request_shape(client):
    client.messages.create.return_value = fake_response(
        SimpleNamespace(type="text", text="ok")
    )
    provider = AnthropicProvider(model="claude-test", max_tokens=512, client=client)
    history = [
        Message(role="user", content=[TextContent(text="hi")]),
        Message(
            role="assistant",
            content=[ToolUseContent(id="t1", name="read_file", input={"path": "a"})],
        ),
        Message(role="user", content=[ToolResultContent(tool_use_id="t1", content="A")]),
    ]
    tools = [{"name": "read_file", "description": "d", "input_schema": {}}]

    await provider.create_completion(history, system="be brief", tools=tools)

    kwargs = client.messages.create.call_args.kwargs
    assert kwargs["model"] == "claude-test"
    assert kwargs["max_tokens"] == 512
    assert kwargs["system"] == "be brief"
    assert kwargs["tools"] == tools
    assert kwargs["tool_choice"] == {"type": "auto"}
    assert kwargs["messages"] == [
        {"role": "user", "content": [{"type": "text", "text": "hi"}]},
        {
            "role": "assistant",
            "content": [
                {"type": "tool_use", "id": "t1", "name": "read_file", "input": {"path": "a"}}
            ],
        },
        {
            "role": "user",
            "content": [{"type": "tool_result", "tool_use_id": "t1", "content": "A"}],
        },
    ]


async def test_response_parsing(client):
    client.messages.create.return_value = fake_response(
        SimpleNamespace(type="text", text="Reading the file."),
        SimpleNamespace(type="tool_use", id="t9", name="read_file", input={"path": "x"}),
        SimpleNamespace(type="thinking", thinking="..."),
    )
    provider = AnthropicProvider(model="claude-test", client=client)

    completion = await provider.create_completion([], system="", tools=[])

    assert completion.id == "msg_123"
    assert completion.stop_reason == "tool_use"
    assert completion.content == [
        TextContent(text="Reading the file."),
        ToolUseContent(id="t9", name="read_file", input={"path": "x"}),
    ]
    assert completion.usage.input_tokens == 42
    assert completion.usage.output_tokens == 7


async def test_missing_usage_is_zero(client):
    client.messages.create.return_value = fake_response(
        SimpleNamespace(type="text", text="ok")
    )
    client.messages.create.return_value.usage = None
    provider = AnthropicProvider(model="claude-test", client=client)

    completion = await provider.create_completion([], system="", tools=[])

    assert completion.usage.total_tokens == 0


async def test_api_errors_propagate(client):
    client.messages.create.side_effect = RuntimeError("overloaded")
    provider = AnthropicProvider(model="claude-test", client=client)
    with pytest.raises(RuntimeError, match="overloaded"):
        await provider.create_completion([], system="", tools=[])


@pytest.mark.uses_llm
async def test_live_completion():
    if not os.environ.get("ANTHROPIC_API_KEY"):
        pytest.skip("ANTHROPIC_API_KEY is not set")
    provider = AnthropicProvider(model="claude-3-5-sonnet-20240620", max_tokens=64)
    completion = await provider.create_completion(
        [Message(role="user", content=[TextContent(text="Reply with the word: pong")])],
        system="You are terse.",
        tools=[],
    )
    assert "pong" in " ".join(b.text for b in completion.text_blocks).lower()
