"""
In-process event bus for quote events.

Handlers are invoked synchronously, in subscription order, after the
mutation that produced the event has been committed. A handler that
raises is logged and skipped; remaining handlers still run and the
publisher never sees the exception.
"""

import logging
from typing import Callable, Dict, List, Type

from .events import QuoteMutated

logger = logging.getLogger(__name__)

EventHandler = Callable[[QuoteMutated], None]


class EventBus:
    """
    Simple in-process event bus.

    Events are delivered to handlers registered for their exact type.
    """

    def __init__(self):
        self._handlers: Dict[Type[QuoteMutated], List[EventHandler]] = {}

    def subscribe(self, event_type: Type[QuoteMutated], handler: EventHandler) -> None:
        """
        Subscribe to events of a specific type.

        Args:
            event_type: Type of event to subscribe to
            handler: Callback function to invoke
        """
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Subscribed handler to {event_type.__name__}")

    def publish(self, event: QuoteMutated) -> None:
        """Deliver an event to all matching handlers."""
        handlers = self._handlers.get(type(event), [])

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Error in event handler for {event.event_type.value}: {e}",
                    exc_info=True,
                    extra={"quote_id": event.quote_id, "event_id": str(event.event_id)},
                )

