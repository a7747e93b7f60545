# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import os
import logging

from pydantic import Field

from .base_tool import REJECTED, BaseTool
from ..types.common import ToolName
from ..types.event_types import AskType
from ..types.tool_types import ToolPreview

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

MAX_ENTRIES = 500


class ListFiles(BaseTool):
    """Tool to list the immediate contents of a directory."""

    TOOL_NAME = ToolName.LIST_FILES
    TOOL_DESCRIPTION = """List the files and directories directly inside the specified directory.

Hidden entries are included and directories are marked with a trailing path separator. The listing is not recursive and is capped at 500 entries."""

    path: str = Field(
        ...,
        description="The directory to list (relative to the working directory, or absolute)",
        min_length=1,
    )

    async def run(self, show_approval: bool = True) -> str:
        try:
            dir_path = self.resolve_path(self.path)
            root = dir_path.anchor or os.sep

            if str(dir_path) == root:
                # Never enumerate the filesystem root
                listing = root
            else:
                entries = sorted(
                    entry.name + os.sep if entry.is_dir() else entry.name
                    for entry in dir_path.iterdir()
                )
                listing = "\n".join(entries[:MAX_ENTRIES])
        except Exception as e:
            return await self.report_error("Error listing files and directories", e)

        if show_approval:
            preview = ToolPreview(tool="listFiles", path=self.path, content=listing)
            if not await self.request_approval(AskType.TOOL, preview.to_payload()):
                return REJECTED
        return listing
