# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Main entrypoint when running the agent with `python -m dev_agent`.
"""

import sys
import logging
import asyncio
import argparse

from pathlib import Path
from dotenv import load_dotenv

from .agent import Agent
from .src.config import Settings
from .src.events import AutoAnswerChannel
from .src.llm.providers import MissingCredentialsError

logger = logging.getLogger(__name__)


def setup_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dev_agent")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a coding task")
    run_parser.add_argument("task", type=str, help="The task to carry out")
    run_parser.add_argument(
        "--workdir",
        type=str,
        default=".",
        help="The directory the agent works in (files are resolved and commands run here)",
    )
    run_parser.add_argument(
        "--logdir",
        type=str,
        default=None,
        help="Where the event transcript of the task is saved",
    )
    run_parser.add_argument(
        "--max-requests",
        type=int,
        default=None,
        help="Maximum LLM requests for this task (defaults to MAX_REQUESTS_PER_TASK)",
    )
    run_parser.add_argument(
        "--auto-approve-read",
        action="store_true",
        help="Do not ask before reading files or listing directories",
    )
    run_parser.add_argument(
        "--auto-approve-write",
        action="store_true",
        help="Do not ask before writing files",
    )
    run_parser.add_argument(
        "--auto-approve-commands",
        action="store_true",
        help="Do not ask before executing commands",
    )
    run_parser.add_argument(
        "--yes",
        action="store_true",
        help="Answer every prompt automatically (approve everything, accept completion)",
    )

    ask_parser = subparsers.add_parser("ask", help="Ask a one-off research question")
    ask_parser.add_argument("question", type=str)

    return parser


def build_config(args: argparse.Namespace) -> Settings:
    config = Settings()
    if args.command != "run":
        return config

    overrides = {}
    if args.max_requests is not None:
        overrides["MAX_REQUESTS_PER_TASK"] = args.max_requests
    if args.auto_approve_read:
        overrides["AUTO_APPROVE_NON_DESTRUCTIVE"] = True
    if args.auto_approve_write:
        overrides["AUTO_APPROVE_WRITE_TO_FILE"] = True
    if args.auto_approve_commands:
        overrides["AUTO_APPROVE_EXECUTE_COMMAND"] = True
    return config.model_copy(update=overrides)


async def run_task(args: argparse.Namespace, config: Settings) -> int:
    channel = None
    if args.yes:
        channel = AutoAnswerChannel(
            approve=True, followup_answer="Proceed as you see fit."
        )

    agent = Agent(
        workdir=Path(args.workdir),
        logdir=Path(args.logdir) if args.logdir else None,
        channel=channel,
        config=config,
    )
    result = await agent.start_task(args.task)
    if result.budget_exceeded:
        print("Stopped: the request budget for this task was exhausted.")
        return 1
    return 0 if result.did_complete_task else 1


async def ask_question(args: argparse.Namespace, config: Settings) -> int:
    agent = Agent(config=config)
    try:
        result = await agent.ask(args.question)
    except MissingCredentialsError as e:
        print(f"Error: {e}. Set PERPLEXITY_API_KEY in your environment or .env file.")
        return 2
    # The console channel has already printed the answer
    return 0 if result.content else 1


def main() -> int:
    load_dotenv()
    args = setup_parser().parse_args()
    config = build_config(args)

    logging.captureWarnings(True)
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s - %(levelname)s - %(filename)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    match args.command:
        case "run":
            return asyncio.run(run_task(args, config))
        case "ask":
            return asyncio.run(ask_question(args, config))
    return 2


if __name__ == "__main__":
    sys.exit(main())
