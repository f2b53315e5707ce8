"""Registry storage for the authorization engine.

The engine keeps resources, assignments and roles in three keyed stores.
``InMemoryStore`` is the reference backend; durable backends implement the
same four methods and must serialize writes per key.
"""

import threading
from typing import Callable, Generic, Protocol, TypeVar

T = TypeVar("T")


class AuthzStore(Protocol[T]):
    """Protocol for keyed registry backends."""

    async def get(self, key: str) -> T | None:
        """Get a value by key, or None."""
        ...

    async def set(self, key: str, value: T) -> None:
        """Insert or overwrite a value."""
        ...

    async def delete(self, key: str) -> bool:
        """Remove a key. Returns True if it existed."""
        ...

    async def list(self, predicate: Callable[[T], bool] | None = None) -> list[T]:
        """Values matching the predicate, in insertion order."""
        ...


class InMemoryStore(Generic[T]):
    """Dict-backed store.

    Every method runs under one lock, and ``list`` returns a snapshot, so
    readers see either the state before a write or after it.
    """

    def __init__(self, name: str = "store"):
        self.name = name
        self._items: dict[str, T] = {}
        self._lock = threading.RLock()

    async def get(self, key: str) -> T | None:
        with self._lock:
            return self._items.get(key)

    async def set(self, key: str, value: T) -> None:
        with self._lock:
            self._items[key] = value

    async def delete(self, key: str) -> bool:
        with self._lock:
            if key in self._items:
                del self._items[key]
                return True
            return False

    async def list(self, predicate: Callable[[T], bool] | None = None) -> list[T]:
        with self._lock:
            values = list(self._items.values())
        if predicate is None:
            return values
        return [v for v in values if predicate(v)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
