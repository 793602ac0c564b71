"""
Dalil - Bounded In-Process Caches
==================================
``SimilarityCache``
    Key → result-list cache for retrieval stages.  When full, inserting
    a *new* key evicts the oldest-inserted entry (FIFO, not LRU).
    ``get`` distinguishes "never cached" (``None``) from a cached empty
    list, so a cached miss can still short-circuit a stage.

``EmbeddingCache``
    Same eviction policy plus a per-entry TTL, used for query vectors.

Both hold process-lifetime state only.  Every mutation is a single dict
operation, so concurrent coroutines never observe a half-written entry.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable, Sequence
from typing import Generic, TypeVar

T = TypeVar("T")

Clock = Callable[[], float]


class SimilarityCache(Generic[T]):
    """Capacity-bounded result cache with insertion-order eviction."""

    __slots__ = ("_entries", "_max_size")

    def __init__(self, max_size: int = 50) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be ≥ 1, got {max_size}")
        self._entries: OrderedDict[str, list[T]] = OrderedDict()
        self._max_size = max_size


    @property
    def max_size(self) -> int:
        return self._max_size


    def get(self, key: str) -> list[T] | None:
        return self._entries.get(key)


    def put(self, key: str, results: list[T]) -> None:
        if key not in self._entries and len(self._entries) >= self._max_size:
            self._entries.popitem(last=False)
        self._entries[key] = results


    def clear(self) -> None:
        self._entries.clear()


    def __contains__(self, key: object) -> bool:
        return key in self._entries


    def __len__(self) -> int:
        return len(self._entries)


class EmbeddingCache:
    """Bounded text → vector cache whose entries expire after ``ttl_seconds``."""

    __slots__ = ("_entries", "_max_size", "_ttl", "_clock")

    def __init__(self, max_size: int = 500, ttl_seconds: float = 86_400.0, clock: Clock = time.monotonic) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be ≥ 1, got {max_size}")
        self._entries: OrderedDict[str, tuple[float, list[float]]] = OrderedDict()
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._clock = clock


    def get(self, text: str) -> list[float] | None:
        entry = self._entries.get(text)
        if entry is None:
            return None
        stored_at, vector = entry
        if self._clock() - stored_at > self._ttl:
            self._entries.pop(text, None)
            return None
        return vector


    def put(self, text: str, vector: Sequence[float]) -> None:
        if text not in self._entries and len(self._entries) >= self._max_size:
            self._entries.popitem(last=False)
        self._entries[text] = (self._clock(), list(vector))


    def __len__(self) -> int:
        return len(self._entries)
