# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Interaction channels: how the agent talks to the human supervising it.

`say` is fire-and-forget status output; `ask` suspends until the human (or an
auto-answer policy) responds. Every call is also published to the EventBus so
that a task's full transcript can be saved alongside its logs.
"""

import uuid
import asyncio
import logging

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from .event_bus import EventBus
from ..types.event_types import AskResponse, AskResult, AskType, Event, EventType

logger = logging.getLogger(__name__)


class InteractionChannel(ABC):
    """The two primitives the core needs from the outside world"""

    @abstractmethod
    async def ask(self, kind: AskType, payload: str) -> AskResult:
        pass

    @abstractmethod
    async def say(self, kind: EventType, payload: str) -> None:
        pass


class EventBusChannel(InteractionChannel):
    """Channel base that records every interaction on the EventBus.

    Subclasses only implement `_resolve`, which obtains the answer to an ask.
    A timed-out ask resolves as rejected.
    """

    def __init__(self, publisher_id: str = "dev_agent", timeout: float | None = None):
        self.publisher_id = publisher_id
        self.timeout = timeout

    async def _publish(self, event_type: EventType, content: str, **metadata) -> None:
        event_bus = await EventBus.get_instance()
        await event_bus.publish(
            Event(type=event_type, content=content, metadata=metadata),
            self.publisher_id,
        )

    async def say(self, kind: EventType, payload: str) -> None:
        if kind == EventType.ERROR:
            logger.error(payload)
        else:
            logger.debug(f"[{kind.value}] {payload}")
        await self._publish(kind, payload)

    async def ask(self, kind: AskType, payload: str) -> AskResult:
        await self._publish(EventType.ASK, payload, ask_type=kind.value)
        try:
            result = await asyncio.wait_for(self._resolve(kind, payload), self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"No answer to {kind.value} ask within {self.timeout}s")
            result = AskResult(response=AskResponse.REJECTED)
        await self._publish(
            EventType.ASK_RESPONSE,
            result.text or "",
            ask_type=kind.value,
            response=result.response.value,
        )
        return result

    @abstractmethod
    async def _resolve(self, kind: AskType, payload: str) -> AskResult:
        pass


@dataclass
class AskRequest:
    """A pending question, waiting for `QueueChannel.respond`"""

    id: str
    kind: AskType
    payload: str
    future: asyncio.Future = field(repr=False)


class QueueChannel(EventBusChannel):
    """Message-passing channel.

    Each ask is put on `requests` with a fresh id; a front end consumes the
    queue and answers with `respond(request_id, response, text)`.

    An ask that times out stays on the queue with its future cancelled.
    Front ends should skip requests whose `future.done()` is true, or use
    `next_request()`, which does so. Answering an expired ask is ignored.
    """

    def __init__(self, publisher_id: str = "dev_agent", timeout: float | None = None):
        super().__init__(publisher_id=publisher_id, timeout=timeout)
        self.requests: asyncio.Queue[AskRequest] = asyncio.Queue()
        self._pending: dict[str, AskRequest] = {}
        self._expired: set[str] = set()

    async def next_request(self) -> AskRequest:
        """The next ask still waiting for an answer"""
        while True:
            request = await self.requests.get()
            if not request.future.done():
                return request

    async def _resolve(self, kind: AskType, payload: str) -> AskResult:
        request = AskRequest(
            id=uuid.uuid4().hex,
            kind=kind,
            payload=payload,
            future=asyncio.get_running_loop().create_future(),
        )
        self._pending[request.id] = request
        await self.requests.put(request)
        try:
            return await request.future
        finally:
            self._pending.pop(request.id, None)
            if not request.future.done():
                request.future.cancel()
            if request.future.cancelled():
                self._expired.add(request.id)

    def respond(
        self, request_id: str, response: AskResponse, text: str | None = None
    ) -> None:
        """Answer a pending ask.

        Raises:
            KeyError: if the id is unknown or the ask was already answered.
        """
        if request_id in self._expired:
            logger.warning(f"Ignoring answer to expired ask {request_id}")
            return
        request = self._pending.get(request_id)
        if request is None:
            raise KeyError(f"No pending ask with id {request_id}")
        if not request.future.done():
            request.future.set_result(AskResult(response=response, text=text))

    @property
    def pending(self) -> list[str]:
        return list(self._pending)


class AutoAnswerChannel(EventBusChannel):
    """Answers every ask without a human, for non-interactive runs and tests.

    Follow-up questions get `followup_answer`; every other ask is approved or
    rejected according to `approve`. `responses` overrides the answer per ask
    kind.
    """

    def __init__(
        self,
        approve: bool = True,
        followup_answer: str = "",
        responses: dict[AskType, AskResult] | None = None,
        publisher_id: str = "dev_agent",
    ):
        super().__init__(publisher_id=publisher_id)
        self.approve = approve
        self.followup_answer = followup_answer
        self.responses = responses or {}

    async def _resolve(self, kind: AskType, payload: str) -> AskResult:
        if kind in self.responses:
            return self.responses[kind]
        if kind == AskType.FOLLOWUP:
            return AskResult(response=AskResponse.ANSWERED, text=self.followup_answer)
        return AskResult(
            response=AskResponse.APPROVED if self.approve else AskResponse.REJECTED
        )


class ConsoleChannel(EventBusChannel):
    """Terminal front end used by the CLI"""

    async def say(self, kind: EventType, payload: str) -> None:
        await super().say(kind, payload)
        match kind:
            case EventType.TEXT | EventType.COMPLETION_RESULT:
                print(payload)
            case EventType.COMMAND_OUTPUT:
                print(f"  | {payload}")
            case EventType.ERROR:
                print(f"[error] {payload}")
            case EventType.USER_FEEDBACK:
                print(f"> {payload}")
            case _:
                # api_req_* bookkeeping only goes to the log
                pass

    async def _resolve(self, kind: AskType, payload: str) -> AskResult:
        if payload:
            print(payload)
        if kind == AskType.FOLLOWUP:
            prompt = "Your answer: "
        else:
            prompt = f"Approve {kind.value}? [y/N or type feedback] "
        answer = (await asyncio.to_thread(input, prompt)).strip()

        if kind != AskType.FOLLOWUP and answer.lower() in ("y", "yes"):
            return AskResult(response=AskResponse.APPROVED)
        if not answer or answer.lower() in ("n", "no"):
            return AskResult(response=AskResponse.REJECTED)
        return AskResult(response=AskResponse.ANSWERED, text=answer)
