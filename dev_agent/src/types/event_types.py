# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from enum import Enum
from datetime import datetime
from dataclasses import field, dataclass


class EventType(Enum):
    # Fire-and-forget status messages ("say")
    API_REQ_STARTED = "api_req_started"
    API_REQ_FINISHED = "api_req_finished"
    TEXT = "text"
    ERROR = "error"
    COMMAND_OUTPUT = "command_output"
    USER_FEEDBACK = "user_feedback"
    COMPLETION_RESULT = "completion_result"

    # Human-in-the-loop prompts and their answers
    ASK = "ask"
    ASK_RESPONSE = "ask_response"


class AskType(str, Enum):
    TOOL = "tool"
    COMMAND = "command"
    FOLLOWUP = "followup"
    COMPLETION_RESULT = "completion_result"


class AskResponse(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    ANSWERED = "answered"


@dataclass
class AskResult:
    response: AskResponse
    text: str | None = None

    @property
    def approved(self) -> bool:
        return self.response == AskResponse.APPROVED


@dataclass
class Event:
    """Base class for all events in the stream"""

    type: EventType
    content: str
    metadata: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
