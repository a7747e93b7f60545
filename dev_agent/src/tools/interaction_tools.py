# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tools that hand control back to the human supervising the task."""

from pydantic import Field

from .base_tool import BaseTool
from .execute_command import ExecuteCommand
from ..types.common import ToolName
from ..types.event_types import AskType, EventType


class AskFollowupQuestion(BaseTool):
    TOOL_NAME = ToolName.ASK_FOLLOWUP_QUESTION
    TOOL_DESCRIPTION = """Ask the user a question to gather additional information needed to complete the task.

Use this when you encounter ambiguities, need clarification or require more details to proceed effectively. Use it judiciously: prefer finding answers with the other tools first."""

    question: str = Field(
        ...,
        description="The question to ask the user. It should be clear and specific.",
        min_length=1,
    )

    async def run(self) -> str:
        answer = await self._executor.channel.ask(AskType.FOLLOWUP, self.question)
        text = answer.text or ""
        await self.say(EventType.USER_FEEDBACK, text)
        return f'User\'s response:\n"{text}"'


class AttemptCompletion(BaseTool):
    TOOL_NAME = ToolName.ATTEMPT_COMPLETION
    TOOL_DESCRIPTION = """Present the result of your work to the user once you believe the task is complete.

Optionally provide a CLI command that showcases the result (for instance opening a page or running the program). The user may accept the result, or respond with feedback that you should use to improve it before attempting completion again."""

    result: str = Field(
        ...,
        description="The result of the task. Formulate it as final, without ending in a question or an offer of further help.",
    )
    command: str | None = Field(
        default=None,
        description="An optional CLI command that demonstrates the result",
    )

    async def run(self) -> str:
        payload = self.result
        if self.command:
            await self.say(EventType.COMPLETION_RESULT, self.result)
            # The demo command goes through the regular approval gate; its
            # output only matters to the user.
            await ExecuteCommand(self._executor, command=self.command).run()
            payload = ""

        answer = await self._executor.channel.ask(AskType.COMPLETION_RESULT, payload)
        if answer.approved:
            return ""

        feedback = answer.text or ""
        await self.say(EventType.USER_FEEDBACK, feedback)
        return (
            "The user is not pleased with the results. Use the feedback they "
            "provided to successfully complete the task, and then attempt "
            f'completion again.\nUser\'s feedback:\n"{feedback}"'
        )
