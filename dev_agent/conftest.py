# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import shutil
import subprocess

import pytest

from uuid import uuid4

from dev_agent.src.events.channel import AutoAnswerChannel
from dev_agent.src.events.event_bus import EventBus
from dev_agent.src.llm.metering import reset_meter
from dev_agent.src.llm.providers.base_provider import BaseProvider
from dev_agent.src.tools.executor import ToolExecutor
from dev_agent.src.types.llm_types import Completion, Message, TokenUsage
from dev_agent.src.types.tool_types import AutoApprovalPolicy


# Custom command-line options for the markers
def pytest_addoption(parser):
    parser.addoption(
        "--run-llm",
        action="store_true",
        default=False,
        help="Run tests marked with 'uses_llm'",
    )
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run tests marked with 'slow'",
    )


# Skip tests based on markers unless the corresponding option is provided
def pytest_collection_modifyitems(config, items):
    if not config.getoption("--run-llm"):
        skip_llm = pytest.mark.skip(reason="need --run-llm option to run")
        for item in items:
            if "uses_llm" in item.keywords:
                item.add_marker(skip_llm)
    if not config.getoption("--run-slow"):
        skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)


@pytest.fixture(autouse=True)
def fresh_process_state():
    """Each test gets its own EventBus singleton and an empty token meter."""
    EventBus._instance = None
    EventBus._lock = None
    reset_meter()
    yield
    EventBus._instance = None
    EventBus._lock = None
    reset_meter()


@pytest.fixture
def approving_channel():
    return AutoAnswerChannel(approve=True, followup_answer="blue")


@pytest.fixture
def rejecting_channel():
    return AutoAnswerChannel(approve=False)


class ScriptedProvider(BaseProvider):
    """Replays canned completions (or raises canned exceptions) in order,
    keeping a snapshot of the conversation sent with each request."""

    def __init__(self, replies: list[Completion | Exception]):
        self.model = "scripted-model"
        self.max_tokens = 1024
        self.replies = list(replies)
        self.requests: list[list[Message]] = []
        self.tools: list[dict] = []

    async def create_completion(self, messages, system, tools) -> Completion:
        self.requests.append([m.model_copy(deep=True) for m in messages])
        self.tools = tools
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def make_completion(*blocks, input_tokens: int = 100, output_tokens: int = 20) -> Completion:
    return Completion(
        id=f"msg_{uuid4().hex[:6]}",
        model="scripted-model",
        content=list(blocks),
        usage=TokenUsage(input_tokens=input_tokens, output_tokens=output_tokens),
    )


@pytest.fixture
def scripted_provider():
    return ScriptedProvider


@pytest.fixture
def completion():
    return make_completion


@pytest.fixture
def make_executor(tmp_path):
    """Build a ToolExecutor rooted in a temporary working directory."""

    def _make(channel, policy: AutoApprovalPolicy | None = None, **kwargs):
        return ToolExecutor(channel, policy=policy, cwd=tmp_path, **kwargs)

    return _make


def _git(repo, *args) -> str:
    completed = subprocess.run(
        ["git", *args], cwd=repo, check=True, capture_output=True, text=True
    )
    return completed.stdout


@pytest.fixture
def git_repo(tmp_path):
    """A git repository with one commit, in the executor's working directory."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    _git(tmp_path, "init", "-q")
    _git(tmp_path, "config", "user.email", "agent@example.com")
    _git(tmp_path, "config", "user.name", "Test Agent")
    _git(tmp_path, "config", "commit.gpgsign", "false")
    (tmp_path / "README.md").write_text("# scratch\n")
    _git(tmp_path, "add", ".")
    _git(tmp_path, "commit", "-q", "-m", "initial")
    return tmp_path


@pytest.fixture
def git():
    return _git
