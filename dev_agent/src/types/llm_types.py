# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from typing import Annotated, Any, Literal, Union
from pydantic import BaseModel, Field


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str

    def __str__(self) -> str:
        return self.text


class ToolUseContent(BaseModel):
    """A tool call emitted by the model"""

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)

    def __str__(self) -> str:
        return f"Tool call {self.name} (id: {self.id}): {self.input}"


class ToolResultContent(BaseModel):
    """The result of a tool call, sent back to the model in a user turn"""

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str

    def __str__(self) -> str:
        return f"Tool result (id: {self.tool_use_id}): {self.content}"


ContentTypes = Annotated[
    Union[TextContent, ToolUseContent, ToolResultContent],
    Field(discriminator="type"),
]


class Message(BaseModel):
    """A message in a conversation with an LLM."""

    role: Literal["user", "assistant"]
    content: list[ContentTypes]

    def __str__(self) -> str:
        parts = [f"Message from role={self.role}"]
        for c in self.content:
            parts.append(f"{'-'*10}\n{c}")
        return "\n".join(parts)


class TokenUsage(BaseModel):
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
        )


class ModelPricing(BaseModel):
    """USD prices per million tokens"""

    input_cost_per_million: float = 3.0
    output_cost_per_million: float = 15.0


class Completion(BaseModel):
    """A completion response from an LLM."""

    id: str
    model: str
    content: list[ContentTypes]
    usage: TokenUsage = Field(default_factory=TokenUsage)
    stop_reason: str | None = None

    @property
    def text_blocks(self) -> list[TextContent]:
        return [c for c in self.content if isinstance(c, TextContent)]

    @property
    def tool_uses(self) -> list[ToolUseContent]:
        return [c for c in self.content if isinstance(c, ToolUseContent)]


class RequestResult(BaseModel):
    """The outcome of one orchestration run (or side-channel request).

    Token counts are summed over every request issued during the run.
    """

    did_complete_task: bool
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    content: list[TextContent] = Field(default_factory=list)
    budget_exceeded: bool = False

    @property
    def text(self) -> str:
        return "\n".join(c.text for c in self.content)
