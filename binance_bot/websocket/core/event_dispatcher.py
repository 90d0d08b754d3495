"""
Event dispatcher for routing stream events to subscribers.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

FILL_EVENT = "fill"


class EventDispatcher:
    """
    Dispatches stream events to registered handlers.

    Handlers run one after another in registration order so that event
    ordering from the transport is preserved. A failing handler is logged
    and does not stop the others.
    """

    def __init__(self):
        """Initialize event dispatcher."""
        self.event_handlers: Dict[str, List[Callable]] = {
            FILL_EVENT: []
        }

    def register_handler(self, event_type: str, handler: Callable):
        """
        Register a handler for a specific event type.

        Args:
            event_type: Type of event to handle
            handler: Sync or async callable receiving the event
        """
        if event_type not in self.event_handlers:
            self.event_handlers[event_type] = []

        if handler not in self.event_handlers[event_type]:
            self.event_handlers[event_type].append(handler)
            logger.debug(f"Registered handler for event type: {event_type}")

    def unregister_handler(self, event_type: str, handler: Callable):
        """
        Unregister a handler for a specific event type.

        Args:
            event_type: Type of event
            handler: Handler to unregister
        """
        if event_type in self.event_handlers and handler in self.event_handlers[event_type]:
            self.event_handlers[event_type].remove(handler)
            logger.debug(f"Unregistered handler for event type: {event_type}")

    async def dispatch(self, event_type: str, event: Any) -> int:
        """
        Dispatch an event to all registered handlers.

        Args:
            event_type: Type of event
            event: Event payload

        Returns:
            int: Number of handlers that completed without error
        """
        handlers = list(self.event_handlers.get(event_type, []))

        if not handlers:
            logger.debug(f"No handlers registered for event type: {event_type}")
            return 0

        delivered = 0
        for handler in handlers:
            if await self._execute_handler(handler, event_type, event):
                delivered += 1
        return delivered

    async def _execute_handler(self, handler: Callable, event_type: str, event: Any) -> bool:
        try:
            result = handler(event)
            if asyncio.iscoroutine(result):
                await result
            return True
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error in event handler for {event_type}: {e}")
            return False

    def get_registered_handlers(self) -> Dict[str, int]:
        """
        Get count of registered handlers for each event type.

        Returns:
            Dict: Event type to handler count mapping
        """
        return {event_type: len(handlers) for event_type, handlers in self.event_handlers.items()}
