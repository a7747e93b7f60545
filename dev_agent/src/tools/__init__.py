# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
A module of Agent tools
"""

from .base_tool import BaseTool, tool_registry
from .file_tools import ReadFile, WriteToFile
from .directory_tools import ListFiles
from .execute_command import CommandExecutionError, ExecuteCommand
from .interaction_tools import AskFollowupQuestion, AttemptCompletion
from .git_tools import CommitChanges, CreateBranch
from .executor import ToolExecutor
