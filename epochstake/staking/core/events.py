# MIT License
# Copyright (c) 2025 Hashborn

"""
Event system for staking lifecycle events.

Provides a simple pub/sub mechanism for the off-chain audit surface:
epoch started/ended, deposit created, unstake requested, withdrawn,
commission collected, reward claimed.
"""
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List, Union
import logging

from ...protocol.types.common import EventType

logger = logging.getLogger(__name__)


def _event_name(event_type: Union[EventType, str]) -> str:
    return event_type.value if isinstance(event_type, EventType) else event_type


class EventBus:
    """
    Synchronous fan-out of committed staking events.

    The engine only emits after a call has committed, so listeners never
    observe effects that were rolled back. A listener that raises is logged
    and skipped; the remaining listeners still receive the event.
    """

    def __init__(self):
        self._listeners: DefaultDict[str, List[Callable[..., Any]]] = defaultdict(list)

    def subscribe(self, event_type: Union[EventType, str], callback: Callable[..., Any]) -> None:
        """Register `callback(**payload)` for an event type."""
        name = _event_name(event_type)
        self._listeners[name].append(callback)
        logger.debug(f"Listener registered for {name} ({len(self._listeners[name])} total)")

    def listener_count(self, event_type: Union[EventType, str]) -> int:
        return len(self._listeners.get(_event_name(event_type), ()))

    def emit(self, event_type: Union[EventType, str], **data: Any) -> int:
        """
        Deliver an event payload to every listener of its type.

        Returns:
            Number of listeners that handled the event without raising
        """
        name = _event_name(event_type)
        delivered = 0
        for callback in list(self._listeners.get(name, ())):
            try:
                callback(**data)
                delivered += 1
            except Exception as e:
                logger.error(f"Listener for {name} failed: {e}", exc_info=True)
        logger.debug(f"Event {name} delivered to {delivered} listener(s)")
        return delivered
