# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import os
import signal
import asyncio
import logging

from pathlib import Path
from typing import Awaitable, Callable
from pydantic import Field

from .base_tool import BaseTool
from ..types.common import ToolName
from ..types.event_types import AskType, EventType

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

COMMAND_REJECTED = "Command execution was not approved by the user."

# Per-line limit for the stream reader. Longer lines (minified files, progress
# bars) are cut at the limit and marked.
STREAM_LIMIT = 1024 * 1024
LINE_TRUNCATED = " [line truncated]"


class CommandExecutionError(RuntimeError):
    """A shell command could not be spawned or read, timed out or exited non-zero."""

    def __init__(self, command: str, reason: str, output: str = ""):
        self.command = command
        self.reason = reason
        self.output = output
        message = f"Command '{command}' {reason}"
        if output:
            message += f"\n{output}"
        super().__init__(message)


def _kill_process_tree(process: asyncio.subprocess.Process) -> None:
    """Kill the shell and everything it started, so no grandchild keeps the
    output pipe open."""
    try:
        if hasattr(os, "killpg"):
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass


async def run_shell_command(
    command: str,
    cwd: Path,
    on_line: Callable[[str], Awaitable[None]] | None = None,
    timeout: float | None = None,
) -> str:
    """Run a shell command, streaming merged stdout/stderr line by line.

    Args:
        command: The shell command to run
        cwd: The directory to run the command from
        on_line: Awaited for every output line, before the next one is read
        timeout: Seconds after which the process is killed (None waits forever)

    Returns:
        The full output, one line per output line, newline terminated.

    Raises:
        CommandExecutionError: on spawn failure, timeout, unreadable output or
            non-zero exit. The process group is killed if it is still running.
    """
    try:
        process = await asyncio.create_subprocess_shell(
            command,
            cwd=str(cwd),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            limit=STREAM_LIMIT,
            start_new_session=True,
        )
    except OSError as e:
        raise CommandExecutionError(command, f"could not be started: {e}") from e

    lines: list[str] = []

    async def next_line() -> str | None:
        """The next output line, or None once the output is exhausted.

        A line longer than STREAM_LIMIT is cut at the limit and the rest of it
        is read and dropped.
        """
        kept: list[bytes] = []
        size = 0
        while True:
            try:
                data = (await process.stdout.readuntil(b"\n"))[:-1]
                at_end = True
            except asyncio.IncompleteReadError as e:
                if not e.partial and not size:
                    return None
                data, at_end = e.partial, True
            except asyncio.LimitOverrunError as e:
                data, at_end = await process.stdout.read(e.consumed), False
            if size < STREAM_LIMIT:
                kept.append(data[: STREAM_LIMIT - size])
            size += len(data)
            if at_end or not data:
                break
        line = b"".join(kept).decode(errors="replace").rstrip("\r")
        if size > STREAM_LIMIT:
            line += LINE_TRUNCATED
        return line

    async def drain() -> int:
        while (line := await next_line()) is not None:
            lines.append(line)
            if on_line is not None:
                await on_line(line)
        return await process.wait()

    try:
        returncode = await asyncio.wait_for(drain(), timeout)
    except asyncio.TimeoutError:
        raise CommandExecutionError(
            command, f"timed out after {timeout} seconds", "\n".join(lines)
        )
    except (OSError, ValueError) as e:
        raise CommandExecutionError(
            command, f"output could not be read: {e}", "\n".join(lines)
        ) from e
    finally:
        if process.returncode is None:
            _kill_process_tree(process)
            await process.wait()

    output = "".join(f"{line}\n" for line in lines)
    if returncode != 0:
        raise CommandExecutionError(
            command, f"failed with exit code {returncode}", output.rstrip("\n")
        )
    return output


class ExecuteCommand(BaseTool):
    """Tool for executing shell commands in the working directory."""

    TOOL_NAME = ToolName.EXECUTE_COMMAND
    TOOL_DESCRIPTION = """Execute a CLI command in the working directory.

Use this for system operations such as running tests, builds, package managers or other scripts. Output (stdout and stderr, merged) is streamed to the user and returned to you once the command exits.

The command must terminate on its own: interactive programs and long-running servers are not supported."""

    command: str = Field(
        ...,
        description="The shell command to execute. It must be valid for the current operating system.",
        min_length=1,
    )

    async def run(self) -> str:
        if not await self.request_approval(AskType.COMMAND, self.command):
            return COMMAND_REJECTED

        try:
            output = await self._executor.run_command(self.command)
        except CommandExecutionError as e:
            logger.error(f"Command failed: {e}")
            await self.say(EventType.ERROR, f"Error executing command:\n{e}")
            return f"Error executing command:\n{e}"
        return f"Command executed successfully. Output:\n{output}"
