# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from enum import Enum


class ToolName(str, Enum):
    """The closed set of tools the model may call"""

    WRITE_TO_FILE = "write_to_file"
    READ_FILE = "read_file"
    LIST_FILES = "list_files"
    EXECUTE_COMMAND = "execute_command"
    ASK_FOLLOWUP_QUESTION = "ask_followup_question"
    ATTEMPT_COMPLETION = "attempt_completion"
    CREATE_BRANCH = "create_branch"
    COMMIT_CHANGES = "commit_changes"

    @classmethod
    def parse(cls, name: str) -> "ToolName | None":
        try:
            return cls(name)
        except ValueError:
            return None
