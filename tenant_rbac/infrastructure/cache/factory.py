"""Cache backend selection from settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tenant_rbac.core.config import Settings, get_settings
from tenant_rbac.infrastructure.cache.memory_cache import MemoryCache
from tenant_rbac.infrastructure.cache.redis_cache import CacheService

if TYPE_CHECKING:
    from tenant_rbac.application.interfaces.services import ICacheService

logger = logging.getLogger(__name__)


async def create_cache(settings: Settings | None = None) -> ICacheService:
    """Return a ready cache for settings.cache_backend ("memory" or "redis").

    The Redis backend is connected here; when Redis is unreachable the service
    reports unavailable and every lookup falls through to storage.
    """
    settings = settings or get_settings()
    if settings.cache_backend == "redis":
        cache = CacheService(settings=settings)
        await cache.connect()
        return cache
    logger.debug("Using in-memory permission cache (TTL %ss)", settings.cache_ttl_seconds)
    return MemoryCache(default_ttl=settings.cache_ttl_seconds)
