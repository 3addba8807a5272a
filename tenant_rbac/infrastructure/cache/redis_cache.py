"""Redis-backed store for memoized effective-permission lists.

Values are JSON; datetimes go out as ISO-8601 strings and enums as their value
(DTO builders accept both on the way back). A dropped connection is retried
once after reconnecting; any other Redis error degrades to a cache miss so the
authorization path falls through to storage. Key format lives in keys.py.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

import redis.asyncio as redis

from tenant_rbac.core.config import Settings, get_settings
from tenant_rbac.infrastructure.cache.keys import all_permissions_pattern

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNLINK_BATCH = 500


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class CacheService:
    """ICacheService over redis.asyncio.

    Call connect() before use and disconnect() on shutdown (MultiTenantRBAC.close
    does the latter). A client passed in is assumed connected.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.redis = redis_client
        self.settings = settings or get_settings()
        self._connected = redis_client is not None

    def _build_client(self) -> redis.Redis:
        password = self.settings.redis_password
        return redis.Redis(
            host=self.settings.redis_host,
            port=self.settings.redis_port,
            db=self.settings.redis_db,
            password=password.get_secret_value() if password else None,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
        )

    async def connect(self) -> None:
        """Open and ping a client. On failure the cache stays disabled and every call is a no-op."""
        if self.redis is not None:
            return
        client = self._build_client()
        try:
            await client.ping()
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning(
                "Permission cache disabled, Redis at %s:%s unreachable: %s",
                self.settings.redis_host,
                self.settings.redis_port,
                e,
            )
            return
        self.redis = client
        self._connected = True
        logger.info(
            "Permission cache on Redis %s:%s db=%s",
            self.settings.redis_host,
            self.settings.redis_port,
            self.settings.redis_db,
        )

    async def disconnect(self) -> None:
        if self.redis is None:
            return
        await self.redis.aclose()
        self.redis = None
        self._connected = False
        logger.info("Permission cache disconnected")

    async def _reconnect(self) -> bool:
        if self.redis is not None:
            try:
                await self.redis.aclose()
            except redis.RedisError:
                logger.debug("Stale Redis client failed to close cleanly")
        self.redis = None
        self._connected = False
        await self.connect()
        return self._connected

    def is_available(self) -> bool:
        return self._connected and self.redis is not None

    async def _call(
        self,
        action: str,
        target: str,
        op: Callable[[redis.Redis], Awaitable[T]],
        fallback: T,
    ) -> T:
        """Run op against the client, reconnecting and retrying once on a dropped connection."""
        if not self.is_available() or self.redis is None:
            return fallback
        try:
            return await op(self.redis)
        except (redis.ConnectionError, redis.TimeoutError):
            logger.warning("Permission cache %s lost connection on %s; reconnecting", action, target)
        except redis.RedisError:
            logger.exception("Permission cache %s failed for %s", action, target)
            return fallback

        if not await self._reconnect() or self.redis is None:
            return fallback
        try:
            return await op(self.redis)
        except redis.RedisError:
            logger.exception("Permission cache %s failed for %s after reconnect", action, target)
            return fallback

    async def get(self, key: str) -> Any | None:
        """Decoded value for key, or None on miss, error or no connection."""

        async def _get(client: redis.Redis) -> Any | None:
            raw = await client.get(key)
            logger.debug("Permission cache %s: %s", "MISS" if raw is None else "HIT", key)
            return None if raw is None else json.loads(raw)

        return await self._call("get", key, _get, None)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store value for ttl seconds (settings.cache_ttl_seconds when omitted)."""
        ttl = ttl or self.settings.cache_ttl_seconds
        payload = json.dumps(value, default=_json_default)

        async def _set(client: redis.Redis) -> bool:
            await client.setex(key, ttl, payload)
            return True

        return await self._call("set", key, _set, False)

    async def delete(self, key: str) -> bool:
        async def _delete(client: redis.Redis) -> bool:
            await client.delete(key)
            return True

        return await self._call("delete", key, _delete, False)

    async def delete_pattern(self, pattern: str) -> int:
        """SCAN for pattern and UNLINK matches in pipelined batches.

        Args:
            pattern: Redis MATCH pattern, e.g. ``permission:<tenant>:*``.

        Returns:
            Number of keys removed.
        """

        async def _sweep(client: redis.Redis) -> int:
            removed = 0
            batch: list[str] = []
            async for key in client.scan_iter(match=pattern):
                batch.append(key)
                if len(batch) >= UNLINK_BATCH:
                    removed += await self._unlink(client, batch)
                    batch = []
            if batch:
                removed += await self._unlink(client, batch)
            return removed

        removed = await self._call("delete_pattern", pattern, _sweep, 0)
        if removed:
            logger.info("Permission cache invalidated %s (%s keys)", pattern, removed)
        return removed

    @staticmethod
    async def _unlink(client: redis.Redis, keys: list[str]) -> int:
        async with client.pipeline(transaction=False) as pipe:
            pipe.unlink(*keys)
            results = await pipe.execute()
        return sum(int(r or 0) for r in results)

    async def clear_all(self) -> bool:
        """Drop every effective-permission key; other keys in the db survive."""
        if not self.is_available():
            return False
        await self.delete_pattern(all_permissions_pattern())
        return True
