"""A dictionary and a FIFO queue guarded by a lock."""

from __future__ import annotations

import threading
from collections import deque
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class ThreadSafeMap(Generic[K, V]):
    """A mapping whose operations are each atomic across threads."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._data: dict[K, V] = {}

    def insert(self, key: K, value: V) -> bool:
        """Add ``key`` if it is absent; False if it was already present."""
        with self._lock:
            if key in self._data:
                return False
            self._data[key] = value
            return True

    def remove(self, key: K) -> bool:
        """Delete ``key``; False if it was not present."""
        with self._lock:
            if key not in self._data:
                return False
            del self._data[key]
            return True

    def get_and_remove(self, key: K) -> V:
        """Delete ``key`` and return its value; KeyError if absent."""
        with self._lock:
            return self._data.pop(key)

    def find(self, key: K) -> V | None:
        """Return the value stored under ``key``, or None."""
        with self._lock:
            return self._data.get(key)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class ThreadSafeQueue(Generic[V]):
    """A first-in first-out queue whose operations are each atomic."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._queue: deque[V] = deque()

    def push(self, value: V) -> None:
        """Append ``value`` at the back."""
        with self._lock:
            self._queue.append(value)

    def pop(self) -> V:
        """Remove and return the front value; IndexError if empty."""
        with self._lock:
            if not self._queue:
                raise IndexError("pop from an empty queue")
            return self._queue.popleft()

    def empty(self) -> bool:
        """Whether the queue holds nothing."""
        with self._lock:
            return not self._queue

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)