# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import pytest

from dev_agent.src.events.event_bus import EventBus
from dev_agent.src.tools.git_tools import sanitize_branch_name
from dev_agent.src.types.event_types import EventType
from dev_agent.src.types.tool_types import AutoApprovalPolicy


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("feature/Login Page", "feature/login-page"),
        ("fix_bug-12", "fix_bug-12"),
        ("wip: refactor!", "wip--refactor-"),
        ("-foo", "foo"),
        ("--force", "force"),
        (" spaced", "spaced"),
    ],
)
def test_sanitize_branch_name(raw, expected):
    assert sanitize_branch_name(raw) == expected


@pytest.mark.asyncio
class TestCreateBranch:
    async def test_name_that_is_only_dashes(self, make_executor, approving_channel):
        executor = make_executor(approving_channel)

        result = await executor.execute("create_branch", {"branch_name": "--"})

        assert result.startswith("Error creating branch: ")
        bus = await EventBus.get_instance()
        assert bus.get_events_by_type(EventType.ASK) == []
        assert bus.get_events_by_type(EventType.COMMAND_OUTPUT) == []

    async def test_creates_and_switches(self, git_repo, git, make_executor, approving_channel):
        executor = make_executor(approving_channel)

        result = await executor.execute("create_branch", {"branch_name": "Feature/New UI"})

        assert result == "Created and switched to new branch: feature/new-ui"
        assert git(git_repo, "rev-parse", "--abbrev-ref", "HEAD").strip() == "feature/new-ui"

    async def test_rejected(self, git_repo, git, make_executor, rejecting_channel):
        executor = make_executor(rejecting_channel)

        result = await executor.execute("create_branch", {"branch_name": "topic"})

        assert result.startswith("Error creating branch: ")
        assert "not approved" in result
        assert "topic" not in git(git_repo, "branch", "--list")

    async def test_existing_branch(self, git_repo, git, make_executor, approving_channel):
        git(git_repo, "branch", "topic")
        executor = make_executor(approving_channel)

        result = await executor.execute("create_branch", {"branch_name": "topic"})

        assert result.startswith("Error creating branch: ")
        bus = await EventBus.get_instance()
        assert len(bus.get_events_by_type(EventType.ERROR)) == 1


@pytest.mark.asyncio
class TestCommitChanges:
    async def test_commits_everything(self, git_repo, git, make_executor, approving_channel):
        (git_repo / "app.py").write_text("print('hi')\n")
        executor = make_executor(approving_channel)
        message = "Add app; don't break $HOME"

        result = await executor.execute("commit_changes", {"message": message})

        assert result == f'Changes committed successfully with message: "{message}"'
        assert git(git_repo, "log", "-1", "--pretty=%s").strip() == message
        assert git(git_repo, "status", "--porcelain").strip() == ""

    async def test_nothing_to_commit(self, git_repo, make_executor, approving_channel):
        executor = make_executor(approving_channel)
        result = await executor.execute("commit_changes", {"message": "noop"})
        assert result.startswith("Error committing changes: ")

    async def test_auto_approved_commands_skip_the_prompt(self, git_repo, make_executor, rejecting_channel):
        (git_repo / "notes.md").write_text("notes\n")
        executor = make_executor(
            rejecting_channel, policy=AutoApprovalPolicy(execute_command=True)
        )

        result = await executor.execute("commit_changes", {"message": "notes"})

        assert result.startswith("Changes committed successfully")
        bus = await EventBus.get_instance()
        assert bus.get_events_by_type(EventType.ASK) == []
