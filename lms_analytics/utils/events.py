from typing import Any, Awaitable, Callable, Dict, List
import asyncio
import logging

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], Awaitable[None]]

class EventBus:
    """In-process publish/subscribe used by write paths.

    A write that changes a course, user or lesson publishes
    ``<entity>_updated`` with ``{"entity_id": ...}``; cache invalidation
    subscribes to those events.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = {}

    def subscribe(self, event_type: str, handler: Handler):
        self._handlers.setdefault(event_type, []).append(handler)

    async def publish(self, event_type: str, data: Dict[str, Any]):
        handlers = list(self._handlers.get(event_type, []))
        if not handlers:
            return

        results = await asyncio.gather(*(handler(data) for handler in handlers), return_exceptions=True)
        for handler, result in zip(handlers, results):
            if isinstance(result, Exception):
                logger.error(f"Error in event handler {handler.__name__}: {result}")

event_bus = EventBus()
