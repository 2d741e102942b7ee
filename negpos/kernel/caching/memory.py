import collections
import threading
from typing import Callable, Generic, Hashable, Optional, TypeVar
from negpos.kernel.system.logging import get_logger

logger = get_logger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class BoundedCache(Generic[K, V]):
    """
    Thread-safe LRU cache bounded by entry count and by total cost in bytes.
    The cost of each entry is reported by `cost_fn` when it is stored.
    """

    def __init__(
        self,
        max_items: int,
        max_bytes: int,
        cost_fn: Callable[[V], int],
        name: str = "cache",
    ) -> None:
        self.max_items = max(1, max_items)
        self.max_bytes = max(1, max_bytes)
        self.name = name
        self._cost_fn = cost_fn
        self._entries: "collections.OrderedDict[K, V]" = collections.OrderedDict()
        self._costs: dict[K, int] = {}
        self._lock = threading.Lock()
        self._total_bytes = 0

    def get(self, key: K) -> Optional[V]:
        with self._lock:
            if key not in self._entries:
                return None
            self._entries.move_to_end(key)
            return self._entries[key]

    def put(self, key: K, value: V) -> None:
        cost = max(0, int(self._cost_fn(value)))
        with self._lock:
            if key in self._entries:
                self._drop(key)

            self._entries[key] = value
            self._costs[key] = cost
            self._total_bytes += cost
            self._evict_if_needed()

    def pop(self, key: K) -> Optional[V]:
        with self._lock:
            if key not in self._entries:
                return None
            return self._drop(key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._costs.clear()
            self._total_bytes = 0

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def total_bytes(self) -> int:
        with self._lock:
            return self._total_bytes

    def _drop(self, key: K) -> V:
        value = self._entries.pop(key)
        self._total_bytes -= self._costs.pop(key, 0)
        return value

    def _evict_if_needed(self) -> None:
        while len(self._entries) > self.max_items:
            key = next(iter(self._entries))
            self._drop(key)
            logger.debug(f"[{self.name}] Evicted (count) {key}")

        # The newest entry stays even when it alone exceeds the byte budget
        while self._total_bytes > self.max_bytes and len(self._entries) > 1:
            key = next(iter(self._entries))
            self._drop(key)
            logger.debug(
                f"[{self.name}] Evicted (memory) {key}, now {self._total_bytes} bytes"
            )
