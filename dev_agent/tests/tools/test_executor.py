# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for tool dispatch, argument validation and the approval gate."""
import pytest

from unittest.mock import AsyncMock, patch

from dev_agent.src.events.event_bus import EventBus
from dev_agent.src.tools import ReadFile, tool_registry
from dev_agent.src.tools.execute_command import CommandExecutionError
from dev_agent.src.types.common import ToolName
from dev_agent.src.types.event_types import AskType, EventType
from dev_agent.src.types.tool_types import AutoApprovalPolicy


class TestToolSchemas:
    def test_one_schema_per_tool_in_order(self, make_executor, approving_channel):
        schemas = make_executor(approving_channel).tool_schemas()
        assert [s["name"] for s in schemas] == [name.value for name in ToolName]

    def test_schema_shape(self):
        schema = tool_registry[ToolName.WRITE_TO_FILE].to_tool_schema()

        assert schema["description"]
        input_schema = schema["input_schema"]
        assert input_schema["type"] == "object"
        assert sorted(input_schema["required"]) == ["content", "path"]
        assert "title" not in input_schema
        assert "title" not in input_schema["properties"]["path"]

    def test_optional_arguments_are_not_required(self):
        schema = tool_registry[ToolName.ATTEMPT_COMPLETION].to_tool_schema()
        assert schema["input_schema"]["required"] == ["result"]


@pytest.mark.parametrize(
    "tool_name, allowed",
    [
        (ToolName.READ_FILE, {"non_destructive"}),
        (ToolName.LIST_FILES, {"non_destructive"}),
        (ToolName.WRITE_TO_FILE, {"write_to_file"}),
        (ToolName.EXECUTE_COMMAND, {"execute_command"}),
        (ToolName.ASK_FOLLOWUP_QUESTION, set()),
        (ToolName.ATTEMPT_COMPLETION, set()),
        (ToolName.CREATE_BRANCH, set()),
        (ToolName.COMMIT_CHANGES, set()),
    ],
)
def test_policy_flag_per_tool(tool_name, allowed):
    for flag in ("non_destructive", "write_to_file", "execute_command"):
        policy = AutoApprovalPolicy(**{flag: True})
        assert policy.allows(tool_name) == (flag in allowed)


@pytest.mark.asyncio
class TestExecute:
    async def test_unknown_tool(self, make_executor, approving_channel):
        executor = make_executor(approving_channel)
        assert await executor.execute("rm_rf", {}) == "Unknown tool: rm_rf"

    async def test_missing_argument(self, make_executor, approving_channel):
        executor = make_executor(approving_channel)

        result = await executor.execute("read_file", {})

        assert result.startswith("Invalid arguments for read_file: ")
        assert "path" in result
        bus = await EventBus.get_instance()
        assert len(bus.get_events_by_type(EventType.ERROR)) == 1
        assert bus.get_events_by_type(EventType.ASK) == []

    async def test_unexpected_argument(self, make_executor, approving_channel):
        executor = make_executor(approving_channel)
        result = await executor.execute("read_file", {"path": "a", "mode": "rb"})
        assert result.startswith("Invalid arguments for read_file: ")

    async def test_wrong_argument_type(self, make_executor, approving_channel):
        executor = make_executor(approving_channel)
        result = await executor.execute("execute_command", {"command": ["ls"]})
        assert result.startswith("Invalid arguments for execute_command: ")

    async def test_unexpected_exception_becomes_text(self, make_executor, approving_channel):
        executor = make_executor(approving_channel)

        with patch.object(ReadFile, "run", AsyncMock(side_effect=RuntimeError("boom"))):
            result = await executor.execute("read_file", {"path": "a"})

        assert result == "Error executing read_file: boom"

    async def test_policy_update_applies_to_next_call(
        self, tmp_path, make_executor, rejecting_channel
    ):
        (tmp_path / "a.txt").write_text("a")
        executor = make_executor(rejecting_channel)
        assert await executor.execute("read_file", {"path": "a.txt"}) != "a"

        executor.update_auto_approval(AutoApprovalPolicy(non_destructive=True))

        assert await executor.execute("read_file", {"path": "a.txt"}) == "a"


@pytest.mark.asyncio
class TestApprovalGate:
    async def test_auto_approved_skips_the_channel(self, make_executor):
        channel = AsyncMock()
        executor = make_executor(channel, policy=AutoApprovalPolicy(write_to_file=True))

        assert await executor.request_approval(ToolName.WRITE_TO_FILE, AskType.TOOL, "{}")
        channel.ask.assert_not_called()

    async def test_followups_are_never_auto_approved(self, make_executor):
        policy = AutoApprovalPolicy(
            non_destructive=True, write_to_file=True, execute_command=True
        )
        executor = make_executor(AsyncMock(), policy=policy)
        assert not executor.should_auto_approve(ToolName.ASK_FOLLOWUP_QUESTION)
        assert not executor.should_auto_approve(ToolName.ATTEMPT_COMPLETION)

    async def test_run_approved_command_rejected(self, tmp_path, make_executor, rejecting_channel):
        executor = make_executor(rejecting_channel)

        with pytest.raises(CommandExecutionError) as exc_info:
            await executor.run_approved_command("touch marker")

        assert "not approved" in str(exc_info.value)
        assert not (tmp_path / "marker").exists()

    async def test_run_command_does_not_ask(self, tmp_path, make_executor, rejecting_channel):
        executor = make_executor(rejecting_channel)
        await executor.run_command("touch marker")
        assert (tmp_path / "marker").exists()
