"""
Event Bus implementation for pub/sub event handling.

The bus is an ordinary object: the composition root creates one and
passes it to publishers and subscribers. There is no module-level
instance, so separate engines and tests never share subscriptions.
"""

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from .base_event import BaseEvent
from .event_types import EventCategory, EventType

logger = logging.getLogger("workflow-engine.events.event_bus")

Handler = Callable[[BaseEvent], Awaitable[Any]]


class EventHandler:
    """Wrapper for event handler with metadata."""

    def __init__(
        self,
        handler: Handler,
        priority: int = 0,
        event_type: Optional[EventType] = None,
        event_category: Optional[EventCategory] = None
    ):
        self.handler = handler
        self.priority = priority
        self.event_type = event_type
        self.event_category = event_category

    def __repr__(self):
        return f"EventHandler(handler={getattr(self.handler, '__name__', self.handler)}, priority={self.priority})"


class EventBusStats:
    """Statistics for event bus operations."""

    def __init__(self):
        self.total_published: int = 0
        self.successful_handlers: int = 0
        self.failed_handlers: int = 0
        self.last_event_time: Optional[datetime] = None


class EventBus:
    """
    Event bus for asynchronous communication between components.

    Features:
    - Subscribe to events by type or category
    - Wildcard subscriptions (all events)
    - Handler priorities
    - Handler errors are logged and counted, never propagated
    - Middleware support
    """

    def __init__(self):
        self._subscribers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._category_subscribers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._wildcard_subscribers: List[EventHandler] = []
        self._middleware: List[Callable[[BaseEvent], Awaitable[Optional[BaseEvent]]]] = []
        self._stats = EventBusStats()
        self._pending: Set[asyncio.Task] = set()
        self._lock = asyncio.Lock()

    def subscribe(
        self,
        event_type: Optional[EventType] = None,
        event_category: Optional[EventCategory] = None,
        handler: Optional[Handler] = None,
        priority: int = 0
    ):
        """
        Subscribe to events.

        Args:
            event_type: Specific event type to subscribe to
            event_category: Event category to subscribe to
            handler: Async function to handle events
            priority: Handler priority (higher = executed first)

        Returns:
            Unsubscribe function or decorator

        Examples:
            # Direct subscription
            bus.subscribe(event_type=EventType.EXECUTION_FAILED, handler=on_failure)

            # Decorator usage
            @bus.subscribe(event_category=EventCategory.MODEL)
            async def on_model_event(event):
                pass
        """
        if handler is None:
            def decorator(func: Handler):
                self._add_subscriber(event_type, event_category, func, priority)
                return func
            return decorator

        self._add_subscriber(event_type, event_category, handler, priority)

        def unsubscribe():
            self.unsubscribe(event_type, event_category, handler)
        return unsubscribe

    def _add_subscriber(
        self,
        event_type: Optional[EventType],
        event_category: Optional[EventCategory],
        handler: Handler,
        priority: int
    ):
        event_handler = EventHandler(
            handler=handler,
            priority=priority,
            event_type=event_type,
            event_category=event_category
        )

        if event_type:
            bucket = self._subscribers[EventType(event_type).value]
        elif event_category:
            bucket = self._category_subscribers[EventCategory(event_category).value]
        else:
            bucket = self._wildcard_subscribers
        bucket.append(event_handler)
        bucket.sort(key=lambda h: h.priority, reverse=True)

        logger.debug(
            f"Subscribed {getattr(handler, '__name__', handler)} to "
            f"{'type=' + str(event_type) if event_type else ''}"
            f"{'category=' + str(event_category) if event_category else ''}"
            f"{'wildcard' if not event_type and not event_category else ''}"
        )

    def unsubscribe(
        self,
        event_type: Optional[EventType],
        event_category: Optional[EventCategory],
        handler: Handler
    ):
        """Unsubscribe a handler from events."""
        if event_type:
            key = EventType(event_type).value
            self._subscribers[key] = [h for h in self._subscribers[key] if h.handler != handler]
        elif event_category:
            key = EventCategory(event_category).value
            self._category_subscribers[key] = [
                h for h in self._category_subscribers[key] if h.handler != handler
            ]
        else:
            self._wildcard_subscribers = [h for h in self._wildcard_subscribers if h.handler != handler]

        logger.debug(f"Unsubscribed {getattr(handler, '__name__', handler)}")

    async def publish(
        self,
        event: BaseEvent,
        wait_for_handlers: bool = True
    ) -> Optional[List[Any]]:
        """
        Publish an event to all subscribers.

        Args:
            event: Event to publish
            wait_for_handlers: If True, run handlers in priority order and
                return their results; otherwise schedule them and return

        Returns:
            List of handler results if wait_for_handlers=True, else None
        """
        async with self._lock:
            self._stats.total_published += 1
            self._stats.last_event_time = datetime.now(timezone.utc)

        for middleware in self._middleware:
            event = await middleware(event)
            if event is None:
                logger.debug("Event cancelled by middleware")
                return None

        handlers = self._get_handlers_for_event(event)
        if not handlers:
            logger.debug(f"No handlers for event {event.event_type}")
            return None

        logger.debug(f"Publishing event {event.event_type} to {len(handlers)} handlers")

        if wait_for_handlers:
            return await self._execute_handlers_sync(event, handlers)

        task = asyncio.create_task(self._execute_handlers_async(event, handlers))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return None

    def _get_handlers_for_event(self, event: BaseEvent) -> List[EventHandler]:
        handlers: List[EventHandler] = []
        handlers.extend(self._subscribers.get(getattr(event.event_type, "value", event.event_type), []))
        handlers.extend(self._category_subscribers.get(getattr(event.event_category, "value", event.event_category), []))
        handlers.extend(self._wildcard_subscribers)
        handlers.sort(key=lambda h: h.priority, reverse=True)
        return handlers

    async def _execute_handlers_sync(
        self,
        event: BaseEvent,
        handlers: List[EventHandler]
    ) -> List[Any]:
        results = []
        for handler in handlers:
            results.append(await self._execute_single_handler(event, handler))
        return results

    async def _execute_handlers_async(
        self,
        event: BaseEvent,
        handlers: List[EventHandler]
    ):
        await asyncio.gather(
            *(self._execute_single_handler(event, handler) for handler in handlers),
            return_exceptions=True
        )

    async def _execute_single_handler(
        self,
        event: BaseEvent,
        handler: EventHandler
    ) -> Any:
        try:
            result = await handler.handler(event)
            async with self._lock:
                self._stats.successful_handlers += 1
            return result
        except Exception as e:
            logger.error(
                f"Error in event handler {getattr(handler.handler, '__name__', handler.handler)} "
                f"for event {event.event_type}: {e}",
                exc_info=True
            )
            async with self._lock:
                self._stats.failed_handlers += 1
            return None

    def add_middleware(self, middleware: Callable[[BaseEvent], Awaitable[Optional[BaseEvent]]]):
        """
        Add middleware for event processing.

        Middleware can modify an event or cancel it by returning None.
        """
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {getattr(middleware, '__name__', middleware)}")

    async def drain(self):
        """Wait for handlers scheduled with wait_for_handlers=False."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def get_stats(self) -> EventBusStats:
        return self._stats

    async def clear(self):
        """Clear all subscriptions (for testing)."""
        async with self._lock:
            self._subscribers.clear()
            self._category_subscribers.clear()
            self._wildcard_subscribers.clear()
            self._middleware.clear()
        logger.debug("Event bus cleared")
