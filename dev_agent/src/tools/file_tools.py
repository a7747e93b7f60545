# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import logging

from pydantic import Field

from .base_tool import REJECTED, BaseTool
from ..utils.diffs import compute_diff
from ..types.common import ToolName
from ..types.event_types import AskType
from ..types.tool_types import ToolPreview

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class ReadFile(BaseTool):
    TOOL_NAME = ToolName.READ_FILE
    TOOL_DESCRIPTION = """Read the contents of a file at the specified path.

Use this to examine existing code, configuration or text files. Relative paths are resolved against the working directory. Only read plain text files; binary formats will not decode."""

    path: str = Field(
        ...,
        description="The path of the file to read (relative to the working directory, or absolute)",
        min_length=1,
    )

    async def run(self) -> str:
        try:
            file_path = self.resolve_path(self.path)
            content = file_path.read_text(encoding="utf-8")
        except Exception as e:
            return await self.report_error("Error reading file", e)

        preview = ToolPreview(tool="readFile", path=self.path, content=content)
        if not await self.request_approval(AskType.TOOL, preview.to_payload()):
            return REJECTED
        return content


class WriteToFile(BaseTool):
    TOOL_NAME = ToolName.WRITE_TO_FILE
    TOOL_DESCRIPTION = """Write content to a file at the specified path.

If the file exists it is overwritten with the provided content; otherwise it is created, along with any missing parent directories. Always provide the COMPLETE intended content of the file, without truncation or placeholders."""

    path: str = Field(
        ...,
        description="The path of the file to write to (relative to the working directory, or absolute)",
        min_length=1,
    )
    content: str = Field(..., description="The full content to write to the file")

    async def run(self) -> str:
        try:
            file_path = self.resolve_path(self.path)

            if file_path.exists():
                original = file_path.read_text(encoding="utf-8")
                file_diff = compute_diff(self.path, original, self.content)
                preview = ToolPreview(
                    tool="editedExistingFile",
                    path=self.path,
                    diff=file_diff.render_lines(),
                )
                if not await self.request_approval(AskType.TOOL, preview.to_payload()):
                    return REJECTED

                file_path.write_text(self.content, encoding="utf-8")
                logger.info(f"Applied changes to {file_path}")
                return f"Changes applied to {self.path}:\n{file_diff.patch}"

            preview = ToolPreview(
                tool="newFileCreated", path=self.path, content=self.content
            )
            if not await self.request_approval(AskType.TOOL, preview.to_payload()):
                return REJECTED

            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(self.content, encoding="utf-8")
            logger.info(f"Created {file_path}")
            return f"New file created and content written to {self.path}"

        except Exception as e:
            return await self.report_error("Error writing file", e)
