"""
Ordered asynchronous event bus connecting the store and the automation modules.
"""

import logging
from collections.abc import Callable, Coroutine
from typing import Any

from models.events import AutomationEvent

logger_event_bus = logging.getLogger(__name__)

EventCallback = Callable[[AutomationEvent], Coroutine[Any, Any, None]]


class EventBus:
    """
    Publish/subscribe channel. Subscribers of one event type are awaited one
    after another in subscription order, so delivery is ordered per publish.
    """

    def __init__(self):
        self.subscribers: dict[str, list[EventCallback]] = {}

    def subscribe(self, event_type: str, callback: EventCallback) -> None:
        """Subscribe to an event type."""
        if not callable(callback):
            raise TypeError("Callback must be a callable async function.")
        if event_type not in self.subscribers:
            self.subscribers[event_type] = []
        if callback not in self.subscribers[event_type]:
            self.subscribers[event_type].append(callback)
            logger_event_bus.debug(f"Callback {_callback_name(callback)} subscribed to {event_type}")
        else:
            logger_event_bus.warning(f"Callback {_callback_name(callback)} already subscribed to {event_type}")

    def unsubscribe(self, event_type: str, callback: EventCallback) -> None:
        """Unsubscribe a specific callback from an event type."""
        if event_type in self.subscribers:
            try:
                self.subscribers[event_type].remove(callback)
                logger_event_bus.debug(f"Callback {_callback_name(callback)} unsubscribed from {event_type}")
                if not self.subscribers[event_type]:
                    del self.subscribers[event_type]
            except ValueError:
                logger_event_bus.warning(
                    f"Callback {_callback_name(callback)} not found for event type {event_type}"
                )

    async def publish(self, event: AutomationEvent) -> None:
        """Publish an event to subscribers, in subscription order."""
        if not isinstance(event, AutomationEvent):
            logger_event_bus.error(f"Attempted to publish invalid event type: {type(event)}")
            return

        logger_event_bus.debug(f"Event published: {event.event_type} from {event.source.value}")
        # Copy so handlers may (un)subscribe while we iterate
        for callback in list(self.subscribers.get(event.event_type, [])):
            try:
                await callback(event)
            except Exception as e:
                logger_event_bus.error(
                    f"Error in subscriber callback '{_callback_name(callback)}' for event {event.event_type}: {e}",
                    exc_info=False,
                )


def _callback_name(callback: Any) -> str:
    return getattr(callback, "__name__", type(callback).__name__)
