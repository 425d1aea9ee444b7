"""
In-memory event bus implementation.

This is a simple in-memory implementation suitable for a modular monolith.
Handlers run synchronously in the publishing thread, in subscription order.
"""

import logging
from typing import Dict, List, Type

from core.domain.events import DomainEvent, EventBus, EventHandler

logger = logging.getLogger(__name__)


class InMemoryEventBus(EventBus):
    """
    In-memory event bus implementation.

    A failing handler is logged and does not prevent the remaining
    handlers from running.
    """

    def __init__(self):
        """Initialize the event bus."""
        self._handlers: Dict[Type[DomainEvent], List[EventHandler]] = {}

    def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        """
        Subscribe to a domain event type.

        Args:
            event_type: The type of event to subscribe to
            handler: The handler to call when event is published
        """
        handlers = self._handlers.setdefault(event_type, [])
        if any(type(existing) is type(handler) for existing in handlers):
            return
        handlers.append(handler)
        logger.debug(
            "Subscribed %s to %s", handler.__class__.__name__, event_type.__name__
        )

    def publish(self, event: DomainEvent) -> None:
        """
        Publish a domain event.

        Args:
            event: The domain event to publish
        """
        event_type = type(event)
        handlers = self._handlers.get(event_type, [])

        if not handlers:
            logger.debug("No handlers registered for %s", event_type.__name__)
            return

        logger.info("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))

        for handler in handlers:
            self._handle_event(handler, event)

    def _handle_event(self, handler: EventHandler, event: DomainEvent) -> None:
        """
        Handle an event with a specific handler.

        Args:
            handler: The handler to use
            event: The event to handle
        """
        try:
            handler.handle(event)
            logger.debug(
                "Successfully handled %s with %s",
                event.event_type,
                handler.__class__.__name__,
            )
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error(
                "Error handling %s with %s: %s",
                event.event_type,
                handler.__class__.__name__,
                e,
                exc_info=True,
            )

    def clear(self) -> None:
        """Remove all subscriptions."""
        self._handlers.clear()


# Global event bus instance
event_bus = InMemoryEventBus()
