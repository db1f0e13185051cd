"""In-process TTL cache for catalog list queries

Best-effort and per-process: every catalog write clears it through the
EventBus, and entries expire after `ttl_seconds` regardless.
"""

import json
import threading
import time
from typing import Any, Callable, Optional

from item_catalog.core.event_bus import CatalogEvent, EventBus
from item_catalog.core.event_types import EventTypes
from item_catalog.core.logging import get_logger

logger = get_logger(__name__)


def cache_key(**params: Any) -> str:
    """Stable key for a set of query parameters (None values included)."""
    return json.dumps(params, sort_keys=True, default=str)


class ReadCache:
    def __init__(self, ttl_seconds: float = 3600, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        # Shared by every request thread; writes clear it from other threads.
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at >= self._ttl:
                self._entries.pop(key, None)
                return None
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def bind(self, bus: EventBus) -> None:
        """Clear on every event that changes catalog contents."""
        for event_type in EventTypes.CATALOG_CHANGES:
            bus.subscribe(event_type, self.on_catalog_changed)

    def on_catalog_changed(self, event: CatalogEvent) -> None:
        if self._entries:
            logger.debug("Read cache cleared (%s)", event.event_type)
        self.clear()
