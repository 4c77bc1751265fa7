"""
Revalidating cache for read queries.

Entries are keyed by a query key plus the literal arguments of the call and
are recomputed once older than the revalidation window. The backing store is
pluggable; MemoryCacheBackend is used unless another is supplied. A disabled
cache (development mode) always recomputes and stores nothing.

Usage:
 cache = RevalidatingCache(enabled=not settings.is_development)

 class CatalogQueries:
     @cached_query("product", window="listing")
     def get_product_details(self, slug): ...
"""

from __future__ import annotations

import functools
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Protocol, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

CacheKey = tuple[Hashable, ...]

DEFAULT_MAX_ENTRIES = 1024


@dataclass
class CacheEntry:
    value: Any
    stored_at: float


class CacheBackend(Protocol):
    def get(self, key: CacheKey) -> CacheEntry | None: ...

    def set(self, key: CacheKey, entry: CacheEntry) -> None: ...

    def clear(self) -> None: ...


class MemoryCacheBackend:
    """
    Process-local backend; safe to share across request threads.

    Holds at most `max_entries` entries. Storing a new key past the limit
    evicts the entry that was stored longest ago.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: CacheKey, entry: CacheEntry) -> None:
        with self._lock:
            # re-insert so dict order tracks store time
            self._entries.pop(key, None)
            self._entries[key] = entry
            while len(self._entries) > self.max_entries:
                del self._entries[next(iter(self._entries))]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RevalidatingCache:
    """Cache whose entries go stale after a per-call revalidation window."""

    def __init__(
        self,
        backend: CacheBackend | None = None,
        *,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.backend = backend if backend is not None else MemoryCacheBackend()
        self.enabled = enabled
        self.clock = clock

    def get_or_compute(
        self,
        key: CacheKey,
        compute: Callable[[], Any],
        *,
        revalidate: float | None,
    ) -> Any:
        """
        Return the cached value for `key`, recomputing it when stale.

        Args:
            key: Query key followed by the call's literal arguments
            compute: Produces a fresh value
            revalidate: Window in seconds; None keeps entries forever
        """
        if not self.enabled:
            return compute()

        now = self.clock()
        entry = self.backend.get(key)
        if entry is not None and (revalidate is None or now - entry.stored_at < revalidate):
            return entry.value

        value = compute()
        self.backend.set(key, CacheEntry(value=value, stored_at=now))
        return value

    def clear(self) -> None:
        self.backend.clear()


def cached_query(key: str, *, window: str = "listing") -> Callable[[F], F]:
    """
    Cache a query method under `key` plus its arguments.

    Keyword arguments are folded into the key in name order, so
    `get_product(slug="x")` and `get_product("x")` are cached separately.

    The instance must provide `cache` (RevalidatingCache) and
    `revalidate_windows` (window name -> seconds or None).
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            return self.cache.get_or_compute(
                (key, *args, *sorted(kwargs.items())),
                lambda: func(self, *args, **kwargs),
                revalidate=self.revalidate_windows[window],
            )

        wrapper.cache_key = key
        return wrapper  # type: ignore[return-value]

    return decorator
