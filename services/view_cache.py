from collections import OrderedDict
from threading import Lock
from typing import Any, Callable, Dict, List, Tuple
import logging

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, ...]

DEFAULT_MAX_ENTRIES = 1024


class ViewCache:
    """
    In-process cache of read views.

    Keys are tuples such as ``("orders", "user", user_id)``. Invalidating a key
    drops every entry whose key starts with it, so ``("orders",)`` clears all
    order lists at once. At most ``max_entries`` views are kept; the least
    recently used one is evicted first.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        self.max_entries = max_entries
        self._entries: "OrderedDict[CacheKey, Any]" = OrderedDict()
        self._listeners: List[Callable[[CacheKey], None]] = []
        self._lock = Lock()

    def get(self, key: CacheKey) -> Any:
        with self._lock:
            if key not in self._entries:
                return None
            self._entries.move_to_end(key)
            return self._entries[key]

    def set(self, key: CacheKey, value: Any):
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted view {evicted}")

    def get_or_load(self, key: CacheKey, loader: Callable[[], Any]) -> Any:
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
                return self._entries[key]
        value = loader()
        if value is not None:
            self.set(key, value)
        return value

    def invalidate(self, *keys: CacheKey) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                stale = [k for k in self._entries if k[:len(key)] == key]
                for k in stale:
                    del self._entries[k]
                removed += len(stale)
        for key in keys:
            for listener in self._listeners:
                listener(key)
        return removed

    def subscribe(self, listener: Callable[[CacheKey], None]):
        self._listeners.append(listener)

    def __contains__(self, key: CacheKey) -> bool:
        with self._lock:
            return key in self._entries


def order_view_keys(order_id: str, user_id: str, restaurant_id: str) -> List[CacheKey]:
    return [
        ("order", order_id),
        ("orders", "user", user_id),
        ("orders", "restaurant", restaurant_id),
    ]


def invalidate_order_views(cache: ViewCache, order: Dict[str, Any]):
    """Drop every cached view that shows this order."""
    keys = order_view_keys(str(order["_id"]), order["user_id"], order["restaurant_id"])
    cache.invalidate(*keys)
    logger.debug(f"Invalidated views for order {order['_id']}")
