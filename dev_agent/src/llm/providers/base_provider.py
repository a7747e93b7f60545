# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Base provider interface for LLM interactions."""

from abc import ABC, abstractmethod

from ...types.llm_types import Completion, Message


class BaseProvider(ABC):
    """Abstract base class for LLM providers."""

    model: str
    max_tokens: int

    @abstractmethod
    async def create_completion(
        self,
        messages: list[Message],
        system: str,
        tools: list[dict],
    ) -> Completion:
        """Send the full conversation and return the model's reply.

        Args:
            messages: The conversation history, alternating user / assistant
            system: The system prompt
            tools: Tool definitions, as returned by `BaseTool.to_tool_schema`

        Returns:
            The reply's content blocks and token usage.
        """
        pass
