from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Generic, TypeVar

from wirekit.exceptions import WirekitDuplicateNameError

K = TypeVar("K")
V = TypeVar("V")


class SynchronizedStore(Generic[K, V]):
    """Guard a dictionary with a single lock.

    Implemented as a wrapper rather than a ``dict`` subclass so only the
    operations below can touch the underlying mapping. Keys are write-once:
    inserting an existing key raises instead of replacing the value.

    Every operation holds the lock for its full duration, including the
    producer call inside ``get_or_create``. Producers must not call back into
    the same store or they deadlock.
    """

    def __init__(self) -> None:
        self._store: dict[K, V] = {}
        self._lock = threading.Lock()

    def insert(self, key: K, value: V) -> None:
        """Insert a value under a fresh key.

        Raises:
            WirekitDuplicateNameError: If the key already exists. The stored
                value is left untouched.

        """
        with self._lock:
            if key in self._store:
                msg = f"resolver already exists: {key}"
                raise WirekitDuplicateNameError(msg, key=key, receiver=self)
            self._store[key] = value

    def lookup(self, key: K) -> V | None:
        """Return the value stored under the key, or ``None``."""
        with self._lock:
            return self._store.get(key)

    def contains(self, key: K) -> bool:
        with self._lock:
            return key in self._store

    def get_or_create(self, key: K, producer: Callable[[], V]) -> V:
        """Return the stored value, creating it with ``producer`` on first access.

        The producer runs at most once per key, even when several threads ask
        for the same missing key at the same time.
        """
        with self._lock:
            if key in self._store:
                return self._store[key]
            value = producer()
            self._store[key] = value
            return value

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._store

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
