"""In-process TTL cache (default backend).

Same async surface as the Redis CacheService so the authorization service
does not care which one it holds. Entries expire lazily on read.
"""

from __future__ import annotations

import fnmatch
import logging
import time
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class MemoryCache:
    """Dict-backed cache with per-entry expiry.

    Args:
        default_ttl: TTL in seconds used when set() gets none.
        clock: Monotonic time source; injectable for tests.
    """

    def __init__(
        self,
        default_ttl: int = 30,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = default_ttl
        self._clock = clock
        self._store: dict[str, tuple[Any, float]] = {}

    def is_available(self) -> bool:
        return True

    async def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            logger.debug("Cache MISS: %s", key)
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            self._store.pop(key, None)
            logger.debug("Cache EXPIRED: %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        return value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        self._store[key] = (value, self._clock() + (ttl or self.default_ttl))
        return True

    async def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching a glob pattern (same syntax as Redis MATCH for * and ?)."""
        matched = [key for key in self._store if fnmatch.fnmatchcase(key, pattern)]
        for key in matched:
            del self._store[key]
        if matched:
            logger.debug("Cache INVALIDATE: %s (%s keys)", pattern, len(matched))
        return len(matched)

    async def clear_all(self) -> bool:
        self._store.clear()
        return True

    def __len__(self) -> int:
        return len(self._store)
