# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Anthropic Messages API provider."""

import logging

from typing import Any
from anthropic import AsyncAnthropic

from .base_provider import BaseProvider
from ...types.llm_types import (
    Completion,
    ContentTypes,
    Message,
    TextContent,
    TokenUsage,
    ToolResultContent,
    ToolUseContent,
)

logger = logging.getLogger(__name__)
logger.setLevel(logging.WARNING)


class AnthropicProvider(BaseProvider):
    """Provider implementation for Anthropic's Claude models."""

    def __init__(
        self,
        model: str,
        max_tokens: int = 4096,
        api_key: str | None = None,
        client: AsyncAnthropic | None = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.client = client or AsyncAnthropic(api_key=api_key or None)

    def _content_mapping(self, block: ContentTypes) -> dict:
        if isinstance(block, TextContent):
            return {"type": "text", "text": block.text}
        elif isinstance(block, ToolUseContent):
            return {
                "type": "tool_use",
                "id": block.id,
                "name": block.name,
                "input": block.input,
            }
        elif isinstance(block, ToolResultContent):
            return {
                "type": "tool_result",
                "tool_use_id": block.tool_use_id,
                "content": block.content,
            }
        else:
            raise ValueError(f"Unhandled content type in provider Anthropic: {block}")

    def _prepare_messages(self, messages: list[Message]) -> list[dict]:
        return [
            {
                "role": msg.role,
                "content": [self._content_mapping(block) for block in msg.content],
            }
            for msg in messages
        ]

    def _parse_block(self, block: Any) -> ContentTypes | None:
        match block.type:
            case "text":
                return TextContent(text=block.text)
            case "tool_use":
                return ToolUseContent(
                    id=block.id, name=block.name, input=dict(block.input or {})
                )
            case _:
                logger.warning(f"Ignoring unsupported content block: {block.type}")
                return None

    def _create_token_usage(self, usage_data: Any) -> TokenUsage:
        if not usage_data:
            logger.warning("Missing usage information in API response. Setting to 0")
            return TokenUsage()
        return TokenUsage(
            input_tokens=getattr(usage_data, "input_tokens", 0) or 0,
            output_tokens=getattr(usage_data, "output_tokens", 0) or 0,
        )

    async def create_completion(
        self,
        messages: list[Message],
        system: str,
        tools: list[dict],
    ) -> Completion:
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=system,
            messages=self._prepare_messages(messages),
            tools=tools,
            tool_choice={"type": "auto"},
        )

        content = []
        for block in response.content:
            parsed = self._parse_block(block)
            if parsed is not None:
                content.append(parsed)

        return Completion(
            id=response.id,
            model=response.model,
            content=content,
            usage=self._create_token_usage(response.usage),
            stop_reason=response.stop_reason,
        )
