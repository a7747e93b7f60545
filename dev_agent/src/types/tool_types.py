# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from abc import ABC, abstractmethod
from typing import ClassVar
from pydantic import BaseModel, ConfigDict

from .common import ToolName


class AutoApprovalPolicy(BaseModel):
    """Which tool groups may skip the human approval prompt.

    Instances are immutable snapshots: the settings provider swaps in a new
    one rather than mutating flags in place.
    """

    model_config = ConfigDict(frozen=True)

    non_destructive: bool = False
    write_to_file: bool = False
    execute_command: bool = False

    def allows(self, tool_name: ToolName) -> bool:
        match tool_name:
            case ToolName.READ_FILE | ToolName.LIST_FILES:
                return self.non_destructive
            case ToolName.WRITE_TO_FILE:
                return self.write_to_file
            case ToolName.EXECUTE_COMMAND:
                return self.execute_command
            case _:
                return False


class ToolPreview(BaseModel):
    """The structured payload shown to the human when a tool asks for approval"""

    tool: str
    path: str
    diff: str | None = None
    content: str | None = None

    def to_payload(self) -> str:
        return self.model_dump_json(exclude_none=True)


class ToolInterface(BaseModel, ABC):
    """Abstract interface for all tools"""

    # Class variables
    TOOL_NAME: ClassVar[ToolName]
    TOOL_DESCRIPTION: ClassVar[str]

    model_config = ConfigDict(extra="forbid")

    @abstractmethod
    async def run(self) -> str:
        """Execute the tool's functionality, returning the text fed back to the model"""
        pass

    @classmethod
    @abstractmethod
    def to_tool_schema(cls) -> dict:
        """The tool definition sent to the LLM API"""
        pass
