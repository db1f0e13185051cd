"""EventBus: in-process notifications between services

Rules:
- services do not import each other for side effects; they subscribe here
- events carry identifiers only (item ids, submitter keys), never records
- propagation depth is capped at MAX_DEPTH, counted per thread
"""

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from item_catalog.core.logging import get_logger

logger = get_logger(__name__)

MAX_DEPTH = 5


@dataclass
class CatalogEvent:
    """Event payload container

    Args:
        event_type: one of EventTypes (e.g. "item_created")
        data: ids only
        source: emitting service name
    """

    event_type: str
    data: Dict[str, Any]
    source: str

    _depth: int = field(default=0, repr=False)


EventHandler = Callable[[CatalogEvent], None]


class EventBus:
    """Synchronous event bus

    Usage:
        bus = EventBus()
        bus.subscribe(EventTypes.ITEM_MERGED, cache.on_catalog_changed)
        bus.emit(CatalogEvent(event_type=EventTypes.ITEM_MERGED, data={"item_id": "abc"}, source="ingest"))
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        # Request handlers run on a threadpool; each thread nests its own emits.
        self._local = threading.local()

    @property
    def _current_depth(self) -> int:
        return getattr(self._local, "depth", 0)

    @_current_depth.setter
    def _current_depth(self, value: int) -> None:
        self._local.depth = value

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)
        logger.debug("EventBus subscribe: %s -> %s", event_type, handler.__qualname__)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
            except ValueError:
                logger.warning(
                    "Handler not registered: %s -> %s", event_type, handler.__qualname__
                )

    def emit(self, event: CatalogEvent) -> None:
        """Call every handler for the event type, in subscription order.

        A failing handler is logged and does not stop the others; events
        emitted deeper than MAX_DEPTH are dropped.
        """
        if self._current_depth >= MAX_DEPTH:
            logger.warning(
                "EventBus depth limit (%d) reached: %s:%s dropped",
                MAX_DEPTH,
                event.source,
                event.event_type,
            )
            return

        event._depth = self._current_depth
        handlers = self._handlers.get(event.event_type, [])
        if not handlers:
            logger.debug("EventBus: no subscribers for %s", event.event_type)
            return

        self._current_depth += 1
        try:
            for handler in list(handlers):
                try:
                    handler(event)
                except Exception:
                    logger.exception(
                        "EventBus handler error: %s (event=%s)",
                        handler.__qualname__,
                        event.event_type,
                    )
        finally:
            self._current_depth -= 1

    def clear(self) -> None:
        """Drop all subscriptions (tests)."""
        self._handlers.clear()
        self._current_depth = 0

    @property
    def handler_count(self) -> int:
        return sum(len(h) for h in self._handlers.values())
