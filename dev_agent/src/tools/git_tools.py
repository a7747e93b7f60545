# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import re
import shlex
import logging

from pydantic import Field

from .base_tool import BaseTool
from .execute_command import CommandExecutionError
from ..types.common import ToolName

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

_INVALID_BRANCH_CHARS = re.compile(r"[^a-zA-Z0-9\-_/]")


def sanitize_branch_name(branch_name: str) -> str:
    # Leading dashes would be read by git as an option
    return _INVALID_BRANCH_CHARS.sub("-", branch_name).lower().lstrip("-")


class CreateBranch(BaseTool):
    TOOL_NAME = ToolName.CREATE_BRANCH
    TOOL_DESCRIPTION = """Create a new git branch in the working directory's repository and switch to it.

Characters other than letters, digits, '-', '_' and '/' are replaced with '-', leading dashes are dropped, and the name is lower-cased."""

    branch_name: str = Field(
        ..., description="The name of the branch to create", min_length=1
    )

    async def run(self) -> str:
        name = sanitize_branch_name(self.branch_name)
        if not name:
            return await self.report_error(
                "Error creating branch", f"'{self.branch_name}' is not a valid branch name"
            )
        try:
            await self._executor.run_approved_command(f"git checkout -b {name}")
        except CommandExecutionError as e:
            return await self.report_error("Error creating branch", e)
        logger.info(f"Switched to new branch {name}")
        return f"Created and switched to new branch: {name}"


class CommitChanges(BaseTool):
    TOOL_NAME = ToolName.COMMIT_CHANGES
    TOOL_DESCRIPTION = """Stage every change in the working directory (git add .) and commit it with the given message."""

    message: str = Field(..., description="The commit message", min_length=1)

    async def run(self) -> str:
        try:
            await self._executor.run_approved_command("git add .")
            await self._executor.run_approved_command(
                f"git commit -m {shlex.quote(self.message)}"
            )
        except CommandExecutionError as e:
            return await self.report_error("Error committing changes", e)
        return f'Changes committed successfully with message: "{self.message}"'

