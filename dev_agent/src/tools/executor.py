# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
The tool executor: validates a tool call, gates it on human approval and runs
it against the local filesystem, shell and git.

Every call ends in a string for the model. Rejections, failures and invalid
calls are reported as text; nothing raised by a tool reaches the caller.
"""

import logging

from pathlib import Path
from pydantic import ValidationError

from .base_tool import BaseTool, tool_registry
from .file_tools import ReadFile, WriteToFile
from .directory_tools import ListFiles
from .execute_command import CommandExecutionError, ExecuteCommand, run_shell_command
from .interaction_tools import AskFollowupQuestion, AttemptCompletion
from .git_tools import CommitChanges, CreateBranch
from ..events.channel import InteractionChannel
from ..types.common import ToolName
from ..types.event_types import AskType, EventType
from ..types.tool_types import AutoApprovalPolicy

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class ToolExecutor:
    def __init__(
        self,
        channel: InteractionChannel,
        policy: AutoApprovalPolicy | None = None,
        cwd: Path | str | None = None,
        command_timeout: float | None = None,
    ):
        self.channel = channel
        self.policy = policy or AutoApprovalPolicy()
        self.cwd = Path(cwd).resolve() if cwd is not None else Path.cwd()
        self.command_timeout = command_timeout

    def update_auto_approval(self, policy: AutoApprovalPolicy) -> None:
        """Swap in a new policy; it applies from the next dispatch on"""
        logger.info(f"Auto-approval policy updated: {policy}")
        self.policy = policy

    def should_auto_approve(self, tool_name: ToolName) -> bool:
        return self.policy.allows(tool_name)

    async def request_approval(
        self, tool_name: ToolName, kind: AskType, payload: str
    ) -> bool:
        if self.should_auto_approve(tool_name):
            return True
        answer = await self.channel.ask(kind, payload)
        return answer.approved

    def tool_schemas(self) -> list[dict]:
        """Tool definitions for the LLM API, one per ToolName, in enum order"""
        return [tool_registry[name].to_tool_schema() for name in ToolName]

    def _build(self, name: ToolName, tool_input: dict) -> BaseTool:
        match name:
            case ToolName.WRITE_TO_FILE:
                return WriteToFile(self, **tool_input)
            case ToolName.READ_FILE:
                return ReadFile(self, **tool_input)
            case ToolName.LIST_FILES:
                return ListFiles(self, **tool_input)
            case ToolName.EXECUTE_COMMAND:
                return ExecuteCommand(self, **tool_input)
            case ToolName.ASK_FOLLOWUP_QUESTION:
                return AskFollowupQuestion(self, **tool_input)
            case ToolName.ATTEMPT_COMPLETION:
                return AttemptCompletion(self, **tool_input)
            case ToolName.CREATE_BRANCH:
                return CreateBranch(self, **tool_input)
            case ToolName.COMMIT_CHANGES:
                return CommitChanges(self, **tool_input)

    async def execute(self, tool_name: str, tool_input: dict) -> str:
        """Run one tool call and return the text result for the model"""
        name = ToolName.parse(tool_name)
        if name is None:
            logger.warning(f"Model called unknown tool {tool_name}")
            return f"Unknown tool: {tool_name}"

        try:
            tool = self._build(name, tool_input or {})
        except (ValidationError, TypeError) as e:
            details = e.json() if isinstance(e, ValidationError) else str(e)
            message = f"Invalid arguments for {tool_name}: {details}"
            logger.error(message)
            await self.channel.say(EventType.ERROR, message)
            return message

        logger.info(f"Executing {tool_name}")
        try:
            return await tool.run()
        except Exception as e:
            logger.exception(f"Unexpected error in {tool_name}")
            await self.channel.say(EventType.ERROR, f"Error executing {tool_name}:\n{e}")
            return f"Error executing {tool_name}: {e}"

    async def list_files(self, path: str | Path, show_approval: bool = True) -> str:
        return await ListFiles(self, path=str(path)).run(show_approval=show_approval)

    async def run_command(self, command: str) -> str:
        """Run a command in the working directory without asking, streaming
        each output line to the channel.

        Raises:
            CommandExecutionError: if the command fails.
        """

        async def forward(line: str) -> None:
            await self.channel.say(EventType.COMMAND_OUTPUT, line)

        return await run_shell_command(
            command, self.cwd, on_line=forward, timeout=self.command_timeout
        )

    async def run_approved_command(self, command: str) -> str:
        """Like `run_command`, but behind the execute_command approval gate.

        Raises:
            CommandExecutionError: if the command is rejected or fails.
        """
        if not await self.request_approval(
            ToolName.EXECUTE_COMMAND, AskType.COMMAND, command
        ):
            raise CommandExecutionError(command, "was not approved by the user")
        return await self.run_command(command)

