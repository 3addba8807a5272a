"""Cache: in-memory and Redis backends plus key builders.

Backend is chosen by settings.cache_backend (see factory.create_cache).
"""

from tenant_rbac.infrastructure.cache.factory import create_cache
from tenant_rbac.infrastructure.cache.keys import (
    all_permissions_pattern,
    permission_key,
    tenant_permission_pattern,
)
from tenant_rbac.infrastructure.cache.memory_cache import MemoryCache
from tenant_rbac.infrastructure.cache.redis_cache import CacheService

__all__ = [
    "CacheService",
    "MemoryCache",
    "all_permissions_pattern",
    "create_cache",
    "permission_key",
    "tenant_permission_pattern",
]
