# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import logging

from pathlib import Path
from typing import TYPE_CHECKING, ClassVar
from pydantic import PrivateAttr

from ..types.common import ToolName
from ..types.event_types import AskType, EventType
from ..types.tool_types import ToolInterface

if TYPE_CHECKING:
    from .executor import ToolExecutor

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

REJECTED = "This operation was not approved by the user."

# Populated by BaseTool.__init_subclass__
tool_registry: dict[ToolName, type["BaseTool"]] = {}


class BaseTool(ToolInterface):
    """Abstract base class for all tools.

    A tool instance is one validated call: its fields are the model-supplied
    arguments, and the executor that created it provides the working
    directory, the interaction channel and the auto-approval policy.
    """

    # Class variables for tool metadata
    TOOL_NAME: ClassVar[ToolName]
    TOOL_DESCRIPTION: ClassVar[str]

    _executor: "ToolExecutor" = PrivateAttr()

    def __init__(self, executor: "ToolExecutor", **data):
        super().__init__(**data)
        self._executor = executor

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        # Skip registering the BaseTool class itself.
        if cls.__name__ != "BaseTool":
            tool_registry[cls.TOOL_NAME] = cls

    @classmethod
    def to_tool_schema(cls) -> dict:
        schema = cls.model_json_schema()
        schema.pop("title", None)
        for prop in schema.get("properties", {}).values():
            prop.pop("title", None)
        return {
            "name": cls.TOOL_NAME.value,
            "description": cls.TOOL_DESCRIPTION.strip(),
            "input_schema": schema,
        }

    def resolve_path(self, path: str) -> Path:
        """Resolve a model-supplied path against the executor's working directory"""
        return (self._executor.cwd / Path(path).expanduser()).resolve()

    async def request_approval(self, kind: AskType, payload: str) -> bool:
        return await self._executor.request_approval(self.TOOL_NAME, kind, payload)

    async def say(self, kind: EventType, payload: str) -> None:
        await self._executor.channel.say(kind, payload)

    async def report_error(self, prefix: str, error: Exception | str) -> str:
        """Log and surface a tool failure, returning the text for the model"""
        logger.error(f"{self.TOOL_NAME.value} failed: {error}")
        await self.say(EventType.ERROR, f"{prefix}:\n{error}")
        return f"{prefix}: {error}"
