# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
The conversation loop.

Each iteration sends the full history to the LLM, surfaces the reply's text,
executes its tool calls in order and feeds the results back as the next user
turn. The loop ends when the model's `attempt_completion` is accepted, when
a reply contains no tool calls, when the request budget runs out, or when a
request fails.
"""

import json
import logging

from typing import Callable, Sequence

from ..events.channel import InteractionChannel
from ..llm.metering import calculate_cost, record_usage
from ..llm.providers.base_provider import BaseProvider
from ..llm.providers.perplexity import PerplexityProvider
from ..tools.executor import ToolExecutor
from ..types.common import ToolName
from ..types.event_types import EventType
from ..types.llm_types import (
    ContentTypes,
    Message,
    ModelPricing,
    RequestResult,
    TextContent,
    ToolResultContent,
    ToolUseContent,
)

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

USER_SATISFIED = "The user is satisfied with the result."
DUPLICATE_COMPLETION = (
    "attempt_completion was already called in this response. Only the first "
    "call is presented to the user; this one was ignored."
)


def budget_exceeded_message(max_requests: int) -> str:
    return (
        f"The maximum number of requests for this task ({max_requests}) has been "
        "reached. Stop here: the user can resume the task with further "
        "instructions."
    )


class ConversationOrchestrator:
    """Owns the conversation history and drives the request/tool loop."""

    def __init__(
        self,
        provider: BaseProvider,
        channel: InteractionChannel,
        system_prompt: str,
        pricing: ModelPricing | None = None,
        side_channel_factory: Callable[[str], PerplexityProvider] = PerplexityProvider,
        history: list[Message] | None = None,
    ):
        self.provider = provider
        self.channel = channel
        self.system_prompt = system_prompt
        self.pricing = pricing or ModelPricing()
        self.side_channel_factory = side_channel_factory
        self.history: list[Message] = history if history is not None else []

    def _append_user_turn(self, content: Sequence[ContentTypes]) -> None:
        """Add a user turn, merging it into a trailing user turn left by an
        earlier run so that roles keep alternating."""
        if self.history and self.history[-1].role == "user":
            self.history[-1].content.extend(content)
        else:
            self.history.append(Message(role="user", content=list(content)))

    def _request_summary(self, user_content: Sequence[ContentTypes]) -> str:
        """The api_req_started payload. History, system prompt and tools are
        elided; only the new user turn is shown."""
        return json.dumps(
            {
                "request": {
                    "model": self.provider.model,
                    "max_tokens": self.provider.max_tokens,
                    "system": "(see system prompt)",
                    "messages": [
                        {"conversation_history": "..."},
                        {
                            "role": "user",
                            "content": [block.model_dump() for block in user_content],
                        },
                    ],
                    "tools": "(see tool definitions)",
                    "tool_choice": {"type": "auto"},
                }
            }
        )

    async def _execute_tools(
        self, tool_uses: list[ToolUseContent], executor: ToolExecutor
    ) -> tuple[list[ToolResultContent], bool]:
        """Run a reply's tool calls, with the first attempt_completion last.

        Returns:
            The tool results, and whether the user accepted the completion.
        """
        results: list[ToolResultContent] = []
        completion_call: ToolUseContent | None = None

        for tool_use in tool_uses:
            if tool_use.name == ToolName.ATTEMPT_COMPLETION.value:
                if completion_call is None:
                    completion_call = tool_use
                else:
                    results.append(
                        ToolResultContent(
                            tool_use_id=tool_use.id, content=DUPLICATE_COMPLETION
                        )
                    )
                continue

            output = await executor.execute(tool_use.name, tool_use.input)
            results.append(ToolResultContent(tool_use_id=tool_use.id, content=output))

        did_complete_task = False
        if completion_call is not None:
            output = await executor.execute(completion_call.name, completion_call.input)
            if output == "":
                did_complete_task = True
                output = USER_SATISFIED
            results.append(
                ToolResultContent(tool_use_id=completion_call.id, content=output)
            )

        return results, did_complete_task

    async def run(
        self,
        user_content: Sequence[ContentTypes],
        request_count: int,
        max_requests: int | None,
        executor: ToolExecutor,
    ) -> RequestResult:
        """Run the loop until completion, a reply without tool calls, the
        request budget or a failure.

        Args:
            user_content: The content of the next user turn
            request_count: Requests already issued for this task
            max_requests: The request budget for this task (None is unlimited)
            executor: Runs the model's tool calls

        Returns:
            The outcome, with token counts summed over every request made. A
            failed request yields RequestResult(True, 0, 0).
        """
        pending: list[ContentTypes] = list(user_content)
        input_tokens = 0
        output_tokens = 0

        try:
            while True:
                if max_requests is not None and request_count >= max_requests:
                    message = budget_exceeded_message(max_requests)
                    self._append_user_turn([*pending, TextContent(text=message)])
                    await self.channel.say(EventType.ERROR, message)
                    return RequestResult(
                        did_complete_task=False,
                        input_tokens=input_tokens,
                        output_tokens=output_tokens,
                        budget_exceeded=True,
                    )

                self._append_user_turn(pending)
                await self.channel.say(
                    EventType.API_REQ_STARTED, self._request_summary(pending)
                )

                logger.info(f"Awaiting completion for request {request_count}...")
                completion = await self.provider.create_completion(
                    messages=self.history,
                    system=self.system_prompt,
                    tools=executor.tool_schemas(),
                )
                request_count += 1

                usage = completion.usage
                input_tokens += usage.input_tokens
                output_tokens += usage.output_tokens
                record_usage(self.provider.model, usage, self.pricing)
                await self.channel.say(
                    EventType.API_REQ_FINISHED,
                    json.dumps(
                        {
                            "tokensIn": usage.input_tokens,
                            "tokensOut": usage.output_tokens,
                            "cost": calculate_cost(
                                usage.input_tokens, usage.output_tokens, self.pricing
                            ),
                        }
                    ),
                )

                assistant_blocks: list[ContentTypes] = []
                for block in completion.content:
                    if isinstance(block, TextContent):
                        await self.channel.say(EventType.TEXT, block.text)
                        assistant_blocks.append(block)
                    elif isinstance(block, ToolUseContent):
                        assistant_blocks.append(block)
                if assistant_blocks:
                    self.history.append(Message(role="assistant", content=assistant_blocks))

                tool_results, did_complete_task = await self._execute_tools(
                    completion.tool_uses, executor
                )

                if did_complete_task:
                    # Answer every tool call so the history stays well formed
                    self._append_user_turn(tool_results)
                if did_complete_task or not tool_results:
                    return RequestResult(
                        did_complete_task=did_complete_task,
                        input_tokens=input_tokens,
                        output_tokens=output_tokens,
                    )

                pending = list(tool_results)

        except Exception as e:
            logger.exception("API request failed")
            await self.channel.say(EventType.ERROR, f"API request failed:\n{e}")
            return RequestResult(did_complete_task=True, input_tokens=0, output_tokens=0)

    async def ask_side_channel(self, question: str, api_key: str) -> RequestResult:
        """Ask a one-off question through the side-channel backend.

        The conversation history is left untouched.

        Raises:
            MissingCredentialsError: if `api_key` is empty (before any I/O).
        """
        provider = self.side_channel_factory(api_key)
        payload = provider.build_payload(question)

        try:
            await self.channel.say(
                EventType.API_REQ_STARTED,
                json.dumps({"type": "Perplexity API Request", "request": payload}),
            )
            answer = await provider.ask(question, payload)
            await self.channel.say(
                EventType.API_REQ_FINISHED,
                json.dumps(
                    {
                        "type": "Perplexity API Response",
                        "tokensIn": answer.usage.input_tokens,
                        "tokensOut": answer.usage.output_tokens,
                        "response": answer.raw,
                    }
                ),
            )
            await self.channel.say(EventType.TEXT, answer.content)
        except Exception as e:
            logger.error(f"Perplexity API request failed: {e}")
            await self.channel.say(
                EventType.ERROR, f"Perplexity API request failed:\n{e}"
            )
            return RequestResult(did_complete_task=True, input_tokens=0, output_tokens=0)

        return RequestResult(
            did_complete_task=True,
            input_tokens=answer.usage.input_tokens,
            output_tokens=answer.usage.output_tokens,
            content=[TextContent(text=answer.content)],
        )
