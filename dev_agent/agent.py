# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
The main entrypoint to the system.
"""

import shlex
import logging

from uuid import uuid4
from pathlib import Path
from functools import partial

from .src.config import Settings, settings
from .src.events import ConsoleChannel, EventBus, InteractionChannel
from .src.agents.orchestrator import ConversationOrchestrator
from .src.llm.metering import calculate_cost, get_total_cost, get_total_usage
from .src.llm.providers import AnthropicProvider, BaseProvider, PerplexityProvider
from .src.prompts import build_system_prompt
from .src.tools.executor import ToolExecutor
from .src.types.llm_types import RequestResult, TextContent

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_MESSAGE = "Task completed by dev-agent"


class Agent:
    """
    The Agent class acts as the 'root' of the application state: it wires one
    conversation to its channel, tool executor and LLM provider. Tasks started
    on the same instance share a conversation history.
    """

    def __init__(
        self,
        workdir: Path | None = None,
        logdir: Path | None = None,
        channel: InteractionChannel | None = None,
        provider: BaseProvider | None = None,
        config: Settings = settings,
    ):
        self.config = config
        self.workdir = Path(workdir or Path.cwd()).resolve()
        self.workdir.mkdir(parents=True, exist_ok=True)
        self.logdir = logdir if logdir else Path.home() / ".dev_agent" / "logs"

        self.task_id = f"task_{uuid4().hex[:8]}"
        self.channel = channel or ConsoleChannel(
            publisher_id=self.task_id, timeout=config.APPROVAL_TIMEOUT
        )
        self.executor = ToolExecutor(
            self.channel,
            policy=config.auto_approval_policy(),
            cwd=self.workdir,
            command_timeout=config.COMMAND_TIMEOUT,
        )
        self.provider = provider or AnthropicProvider(
            model=config.MODEL,
            max_tokens=config.MAX_TOKENS,
            api_key=config.ANTHROPIC_API_KEY,
        )
        self.orchestrator = ConversationOrchestrator(
            provider=self.provider,
            channel=self.channel,
            system_prompt=build_system_prompt(self.workdir),
            pricing=config.model_pricing(),
            side_channel_factory=partial(
                PerplexityProvider,
                model=config.SIDE_CHANNEL_MODEL,
                url=config.SIDE_CHANNEL_URL,
            ),
        )

    async def _initial_user_content(self, task: str) -> str:
        listing = await self.executor.list_files(self.workdir, show_approval=False)
        return f"""<task>
{task}
</task>

<potentially_relevant_details>
Working directory: {self.workdir}
Files in the working directory:
{listing}
</potentially_relevant_details>"""

    async def _run(self, text: str) -> RequestResult:
        result = await self.orchestrator.run(
            [TextContent(text=text)],
            request_count=0,
            max_requests=self.config.MAX_REQUESTS_PER_TASK,
            executor=self.executor,
        )

        cost = calculate_cost(
            result.input_tokens, result.output_tokens, self.config.model_pricing()
        )
        logger.info(
            f"Run finished (complete={result.did_complete_task}, "
            f"budget_exceeded={result.budget_exceeded}): "
            f"{result.input_tokens} tokens in, {result.output_tokens} tokens out, ${cost:.4f}"
        )
        total = get_total_usage()
        logger.info(
            f"Session total: {total.total_tokens} tokens, ${get_total_cost():.4f}"
        )

        event_bus = await EventBus.get_instance()
        await event_bus.save_state(self.logdir / self.task_id)
        return result

    async def start_task(self, task: str) -> RequestResult:
        """Start the agent off on a new task in the working directory.

        The first user turn carries the task and a listing of the working
        directory.
        """
        logger.info(f"Starting {self.task_id} in {self.workdir}")
        return await self._run(await self._initial_user_content(task))

    async def resume_task(self, feedback: str) -> RequestResult:
        """Continue the same conversation with new instructions from the user"""
        return await self._run(feedback)

    async def ask(self, question: str) -> RequestResult:
        """Ask a one-off research question through the side channel.

        Raises:
            MissingCredentialsError: if PERPLEXITY_API_KEY is not set.
        """
        return await self.orchestrator.ask_side_channel(
            question, self.config.PERPLEXITY_API_KEY
        )

    def update_auto_approval(
        self,
        non_destructive: bool | None = None,
        write_to_file: bool | None = None,
        execute_command: bool | None = None,
    ) -> None:
        changes = dict(
            non_destructive=non_destructive,
            write_to_file=write_to_file,
            execute_command=execute_command,
        )
        policy = self.executor.policy.model_copy(
            update={k: v for k, v in changes.items() if v is not None}
        )
        self.executor.update_auto_approval(policy)

    async def commit_task(self, message: str = DEFAULT_COMMIT_MESSAGE) -> str:
        """Stage and commit everything in the working directory.

        This is the user accepting the task's result, so it is not gated on
        approval.

        Raises:
            CommandExecutionError: if either git command fails.
        """
        await self.executor.run_command("git add .")
        return await self.executor.run_command(f"git commit -m {shlex.quote(message)}")
