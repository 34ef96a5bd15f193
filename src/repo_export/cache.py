from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

K = TypeVar("K")
V = TypeVar("V")


class PatternCache(Generic[K, V]):
    """Small keyed cache with get-or-compute and explicit invalidation.

    Writes are all-or-nothing per key: a value is stored only once its factory
    returned. The lock is held during computation, so concurrent callers never
    observe or race on a half-built entry.
    """

    def __init__(self) -> None:
        self._data: dict[K, V] = {}
        self._lock = threading.Lock()

    def get(self, key: K) -> V | None:
        with self._lock:
            return self._data.get(key)

    def get_or_compute(self, key: K, factory: Callable[[], V]) -> V:
        with self._lock:
            if key in self._data:
                return self._data[key]
            value = factory()
            self._data[key] = value
            return value

    def invalidate(self, key: K | None = None) -> None:
        """Drop one key, or every key when `key` is None."""
        with self._lock:
            if key is None:
                self._data.clear()
            else:
                self._data.pop(key, None)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
