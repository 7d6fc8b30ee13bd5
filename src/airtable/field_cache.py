"""Time-bounded memoization for Airtable metadata lookups.

The cache is an explicit object owned by the application container. The clock is injectable so
tests can advance time deterministically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """A resolved value plus when it was fetched and whether it is within the TTL."""

    value: V
    fetched_at: float
    fresh: bool = True


class TTLCache(Generic[V]):
    """Resolve keys through an async loader, reusing results for `ttl_s` seconds."""

    def __init__(
            self,
            loader: Callable[[Hashable], Awaitable[V]],
            *,
            ttl_s: float,
            clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_s <= 0:
            raise ValueError("ttl_s must be positive")
        self._loader = loader
        self._ttl_s = ttl_s
        self._clock = clock
        self._entries: dict[Hashable, CacheEntry[V]] = {}

    async def resolve(self, key: Hashable) -> CacheEntry[V]:
        """Return a fresh entry for `key`, loading it when missing or expired.

        If the loader fails and an expired entry exists, that entry is returned with
        `fresh=False`; otherwise the loader's error propagates.
        """

        now = self._clock()
        cached = self._entries.get(key)
        if cached is not None and now - cached.fetched_at < self._ttl_s:
            return cached

        try:
            value = await self._loader(key)
        except Exception:
            if cached is None:
                raise
            logger.warning("cache refresh failed key=%s; serving stale value", key, exc_info=True)
            return CacheEntry(value=cached.value, fetched_at=cached.fetched_at, fresh=False)

        entry = CacheEntry(value=value, fetched_at=now)
        self._entries[key] = entry
        return entry

    def invalidate(self, key: Hashable | None = None) -> None:
        """Drop one key, or every key when `key` is None."""

        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)
