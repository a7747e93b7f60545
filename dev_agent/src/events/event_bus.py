# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Event bus module: a process-wide record of every say/ask interaction."""

import json
import asyncio
import logging

from collections import defaultdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Any, ClassVar
from pydantic import BaseModel, ConfigDict, PrivateAttr

from ..types.event_types import EventType, Event

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


class EventEncoder(json.JSONEncoder):
    """JSON encoder for handling special types in event serialization."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Event):
            return {
                "type": obj.type.value,
                "content": obj.content,
                "metadata": obj.metadata,
                "timestamp": obj.timestamp.isoformat(),
            }
        elif hasattr(obj, "model_dump"):
            # Pydantic models (Message, TokenUsage, AskResult payloads, ...)
            return obj.model_dump()
        elif hasattr(obj, "__dataclass_fields__"):
            return {field: getattr(obj, field) for field in obj.__dataclass_fields__}
        elif isinstance(obj, Enum):
            return obj.value
        elif isinstance(obj, datetime):
            return obj.isoformat()
        elif isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


class EventBus(BaseModel):
    """
    Centralized store of the interaction events emitted while running tasks.

    Features:
    - Global publish/subscribe system
    - Per-publisher event storage
    - Event querying by publisher or type
    - Transcript persistence
    """

    _instance: ClassVar[Optional["EventBus"]] = None
    _lock: ClassVar[Optional[asyncio.Lock]] = None

    _subscribers: Dict[EventType, List[Callable]] = PrivateAttr(
        default_factory=lambda: defaultdict(list)
    )
    _event_store: Dict[str, List[Event]] = PrivateAttr(default_factory=dict)
    _metadata: Dict[str, str | None] = PrivateAttr(
        default_factory=lambda: {
            "version": "1.0",
            "created_at": datetime.now().isoformat(),
            "last_saved": None,
        }
    )

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __new__(cls, *args, **kwargs) -> "EventBus":
        raise TypeError(
            "EventBus should not be instantiated directly. "
            "Use 'await EventBus.get_instance()' instead."
        )

    @classmethod
    async def get_instance(cls) -> "EventBus":
        """Get or create the singleton instance.

        Returns:
            The global EventBus instance.
        """
        if not cls._lock:
            cls._lock = asyncio.Lock()

        async with cls._lock:
            if not cls._instance:
                instance = super(EventBus, cls).__new__(cls)
                instance.__init__()
                cls._instance = instance
            return cls._instance

    async def publish(self, event: Event, publisher_id: str) -> None:
        """Publish an event to the bus.

        Args:
            event: The event to publish
            publisher_id: ID of the publishing task or component
        """
        logger.debug(f"New event from {publisher_id}: {event.type}")
        event.metadata["publisher_id"] = publisher_id

        if publisher_id not in self._event_store:
            self._event_store[publisher_id] = []
        self._event_store[publisher_id].append(event)

        for callback in self._subscribers[event.type]:
            try:
                await callback(event)
            except Exception as e:
                # A broken subscriber must not take down the agent loop
                logger.error(f"Error in event subscriber {callback}: {e}")

    def subscribe(
        self,
        event_type: EventType | set[EventType] | list[EventType] | tuple[EventType],
        callback: Callable,
    ) -> None:
        """Subscribe an async callback to one or more event types."""
        if isinstance(event_type, (set, list, tuple)):
            for et in event_type:
                self._subscribers[et].append(callback)
        else:
            self._subscribers[event_type].append(callback)

    def unsubscribe(
        self,
        event_type: EventType | set[EventType] | list[EventType] | tuple[EventType],
        callback: Callable,
    ) -> None:
        if isinstance(event_type, (set, list, tuple)):
            for et in event_type:
                if callback in self._subscribers[et]:
                    self._subscribers[et].remove(callback)
        elif callback in self._subscribers[event_type]:
            self._subscribers[event_type].remove(callback)

    def get_events(self, publisher_id: str) -> List[Event]:
        return self._event_store.get(publisher_id, [])

    def get_events_by_type(self, event_type: EventType) -> List[Event]:
        """Get all events of a specific type across all publishers, in time order."""
        events = []
        for publisher_events in self._event_store.values():
            events.extend([e for e in publisher_events if e.type == event_type])
        return sorted(events, key=lambda e: e.timestamp)

    def clear(self) -> None:
        """Clear all events and subscribers (mainly for testing)."""
        self._event_store.clear()
        self._subscribers.clear()

    async def save_state(self, directory: Path) -> None:
        """Save the current transcript to disk.

        Args:
            directory: The directory to save state in
        """
        directory.mkdir(parents=True, exist_ok=True)

        self._metadata["last_saved"] = datetime.now().isoformat()
        (directory / "metadata.json").write_text(json.dumps(self._metadata, indent=2))

        event_store_dir = directory / "event_store"
        event_store_dir.mkdir(exist_ok=True)
        for publisher_id, events in self._event_store.items():
            publisher_dir = event_store_dir / publisher_id
            publisher_dir.mkdir(exist_ok=True)
            (publisher_dir / "events.json").write_text(
                json.dumps(events, indent=2, cls=EventEncoder)
            )

    @staticmethod
    def _deserialize_event(data: dict) -> Event:
        return Event(
            type=EventType(data["type"]),
            content=data["content"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            metadata=data["metadata"],
        )

    @classmethod
    async def load_state(cls, directory: Path) -> "EventBus":
        """Load a transcript written by `save_state` into the singleton.

        Args:
            directory: The directory to load state from

        Returns:
            EventBus instance with loaded state
        """
        instance = await cls.get_instance()

        metadata_file = directory / "metadata.json"
        if metadata_file.exists():
            instance._metadata = json.loads(metadata_file.read_text())

        event_store_dir = directory / "event_store"
        if event_store_dir.exists():
            for publisher_dir in event_store_dir.iterdir():
                events_file = publisher_dir / "events.json"
                if publisher_dir.is_dir() and events_file.exists():
                    events_data = json.loads(events_file.read_text())
                    instance._event_store[publisher_dir.name] = [
                        cls._deserialize_event(e) for e in events_data
                    ]

        return instance
