"""In-process keyed store for per-user manual-control and learning state."""

import threading
from typing import Any, Dict, List, Optional

import structlog

log = structlog.get_logger(__name__)


class InMemoryKeyedStore:
    """Dictionary-backed store with get/set/append by key.

    Keys are plain strings; callers namespace them with a prefix
    ("activity:u1", "feedback:u1"). Values are stored as given, so callers
    must not mutate a returned list in place. State lives only as long as
    the store instance.
    """

    def __init__(self):
        self._data: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def append(self, key: str, item: Any, max_length: Optional[int] = None) -> int:
        """Append item to the list at key, evicting the oldest beyond max_length.

        Returns:
            Length of the list after the append
        """
        with self._lock:
            items: List[Any] = list(self._data.get(key, []))
            items.append(item)
            if max_length is not None and len(items) > max_length:
                evicted = len(items) - max_length
                items = items[evicted:]
                log.debug("keyed_store_evicted", key=key, evicted=evicted)
            self._data[key] = items
            return len(items)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        with self._lock:
            return [key for key in self._data if key.startswith(prefix)]
