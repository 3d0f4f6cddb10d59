"""
Account and session repositories.

The registry only talks to the Repository interface, so the in-memory
implementation can be replaced by a durable store without touching
business logic.
"""

import threading
from typing import Callable, Dict, Generic, List, Optional, Protocol, TypeVar

T = TypeVar("T")


class Repository(Protocol[T]):
    """Keyed storage used by the account registry."""

    def get(self, key: str) -> Optional[T]:
        ...

    def put(self, key: str, value: T) -> None:
        ...

    def ensure(self, key: str, factory: Callable[[], T]) -> T:
        ...

    def keys(self) -> List[str]:
        ...


class InMemoryRepository(Generic[T]):
    """
    Dictionary-backed repository. State is lost on restart.
    """

    def __init__(self):
        self._items: Dict[str, T] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[T]:
        return self._items.get(key)

    def put(self, key: str, value: T) -> None:
        with self._lock:
            self._items[key] = value

    def ensure(self, key: str, factory: Callable[[], T]) -> T:
        """Return the stored value, creating it with factory if absent."""
        with self._lock:
            existing = self._items.get(key)
            if existing is not None:
                return existing
            value = factory()
            self._items[key] = value
            return value

    def keys(self) -> List[str]:
        return list(self._items.keys())

    def __len__(self) -> int:
        return len(self._items)
