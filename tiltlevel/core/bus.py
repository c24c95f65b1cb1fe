"""
Event bus for the tilt level engine.

This module provides the event bus that delivers engine outputs to
collaborators such as the leveling UI, audio feedback and data loggers.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Callable, Awaitable, Set
from .events import EventType, BaseEvent

# Subscribers are coroutines taking the published event
EventHandler = Callable[[BaseEvent], Awaitable[None]]


class EventBus:
    """
    Central event bus for delivering typed events to subscribers.

    The event bus is responsible for:
    - Rejecting objects that are not typed events
    - Routing events to subscribers
    - Handling errors during event delivery
    - Keeping a per-type count of published events
    """

    def __init__(self):
        self.subscribers: Dict[str, List[EventHandler]] = {}
        self.wildcard_subscribers: List[EventHandler] = []
        self.published_counts: Dict[str, int] = {}
        self.logger = logging.getLogger(__name__)

    async def publish(self, event: BaseEvent, sender: str) -> None:
        """
        Publish an event to all subscribers.

        Args:
            event: The event to publish
            sender: Name of the component publishing the event
        """
        if not isinstance(event, BaseEvent):
            self.logger.error(f"Refusing to publish non-event object: {type(event).__name__}")
            return

        # Set producer name if not set
        if not event.producer_name:
            event.producer_name = sender

        event_type = EventType(event.type).value
        self.published_counts[event_type] = self.published_counts.get(event_type, 0) + 1

        specific_subscribers = self.subscribers.get(event_type, [])
        all_subscribers = specific_subscribers + self.wildcard_subscribers

        if not all_subscribers:
            self.logger.debug(f"No subscribers for event type: {event_type}")
            return

        tasks = [
            asyncio.create_task(self._deliver_event(subscriber, event))
            for subscriber in all_subscribers
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        for result in results:
            if isinstance(result, Exception):
                self.logger.error(f"Error in event handler: {result}", exc_info=result)

    async def _deliver_event(self, handler: EventHandler, event: BaseEvent) -> None:
        """
        Deliver an event to a single handler with error handling.

        Args:
            handler: The event handler function
            event: The event to deliver
        """
        try:
            await handler(event)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Handler failures must not stop delivery to the other subscribers
            self.logger.error(f"Error delivering event {event.type} to {handler.__qualname__}: {e}")

    def subscribe(self, event_type: Optional[EventType], handler: EventHandler) -> None:
        """
        Subscribe a handler to events of a specific type, or all events if None.

        Args:
            event_type: The event type to subscribe to, or None for all events
            handler: The handler coroutine to call when events arrive
        """
        if event_type is None:
            self.wildcard_subscribers.append(handler)
            self.logger.debug(f"Handler {handler.__qualname__} subscribed to all events")
            return

        key = EventType(event_type).value
        self.subscribers.setdefault(key, []).append(handler)
        self.logger.debug(f"Handler {handler.__qualname__} subscribed to {key}")

    def unsubscribe(self, event_type: Optional[EventType], handler: EventHandler) -> None:
        """
        Unsubscribe a handler from events of a specific type, or all events if None.

        Args:
            event_type: The event type to unsubscribe from, or None for all events
            handler: The handler to unsubscribe
        """
        if event_type is None:
            if handler in self.wildcard_subscribers:
                self.wildcard_subscribers.remove(handler)
                self.logger.debug(f"Handler {handler.__qualname__} unsubscribed from all events")
            return

        key = EventType(event_type).value
        handlers = self.subscribers.get(key)
        if handlers and handler in handlers:
            handlers.remove(handler)
            if not handlers:
                del self.subscribers[key]
            self.logger.debug(f"Handler {handler.__qualname__} unsubscribed from {key}")

    def get_subscribers(self, event_type: EventType) -> Set[EventHandler]:
        """Handlers that would receive an event of this type, wildcards included."""
        specific = set(self.subscribers.get(EventType(event_type).value, []))
        return specific.union(self.wildcard_subscribers)
