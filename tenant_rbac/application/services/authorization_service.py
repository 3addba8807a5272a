"""Authorization service: permission checks with a short-lived effective-permission cache."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from tenant_rbac.application.dtos.permission import PermissionResult
from tenant_rbac.infrastructure.cache.keys import (
    permission_key,
    tenant_permission_pattern,
)
from tenant_rbac.shared.telemetry import get_logger

if TYPE_CHECKING:
    from tenant_rbac.application.interfaces.services import ICacheService
    from tenant_rbac.application.services.tenant_service import TenantService

logger = get_logger(__name__)


class AuthorizationService:
    """Answers "may this user do X in this tenant?".

    The effective permission list for (tenant, user) is memoized for cache_ttl
    seconds. Callers that mutate assignments or links must invalidate the
    affected users before returning (MultiTenantRBAC does).

    Every invalidation bumps a generation counter (per user, per tenant, or
    global). A read-through computation that overlapped an invalidation does
    not write its result back, so a revoke that has returned is never undone
    by a stale set.
    """

    def __init__(
        self,
        tenant_service: TenantService,
        cache: ICacheService | None = None,
        cache_ttl: int = 30,
    ) -> None:
        self.tenant_service = tenant_service
        self.cache = cache
        self.cache_ttl = cache_ttl
        self._epoch = 0
        self._tenant_generations: dict[str, int] = {}
        self._user_generations: dict[str, int] = {}

    def _cache_ready(self) -> bool:
        return self.cache is not None and self.cache.is_available()

    @staticmethod
    def _key(tenant_id: str, user_id: str) -> str | None:
        try:
            return permission_key(tenant_id, user_id)
        except ValueError:
            logger.debug("Uncacheable identity %s/%s; bypassing cache", tenant_id, user_id)
            return None

    def _generation(self, tenant_id: str, key: str) -> tuple[int, int, int]:
        return (
            self._epoch,
            self._tenant_generations.get(tenant_id, 0),
            self._user_generations.get(key, 0),
        )

    async def _cached_permissions(
        self, tenant_id: str, user_id: str
    ) -> list[PermissionResult] | None:
        key = self._key(tenant_id, user_id)
        if key is None or not self._cache_ready():
            return None
        try:
            cached = await self.cache.get(key)
        except Exception:
            logger.exception("Permission cache read failed for %s", key)
            return None
        if cached is None:
            return None
        return [PermissionResult.from_record(item) for item in cached]

    async def list_effective_permissions(
        self, tenant_id: str, user_id: str
    ) -> list[PermissionResult]:
        """De-duplicated permissions reachable via the user's active assignments."""
        cached = await self._cached_permissions(tenant_id, user_id)
        if cached is not None:
            return cached
        key = self._key(tenant_id, user_id)
        started = self._generation(tenant_id, key) if key is not None else None
        permissions = await self.tenant_service.collect_effective_permissions(tenant_id, user_id)
        if key is None or not self._cache_ready():
            return permissions
        if self._generation(tenant_id, key) != started:
            logger.debug("Permission cache invalidated during read of %s; not storing", key)
            return permissions
        try:
            await self.cache.set(key, [p.to_dict() for p in permissions], ttl=self.cache_ttl)
            if self._generation(tenant_id, key) != started:
                await self.cache.delete(key)
        except Exception:
            logger.exception("Permission cache write failed for %s", key)
        return permissions

    async def authorize(self, tenant_id: str, user_id: str, permission_title: str) -> bool:
        """Return True if the user reaches a permission titled permission_title.

        A cached effective-permission list answers directly; otherwise the
        check runs as one uncached storage query chain.
        """
        cached = await self._cached_permissions(tenant_id, user_id)
        if cached is not None:
            return any(p.title == permission_title for p in cached)
        return await self.tenant_service.user_has_permission(tenant_id, user_id, permission_title)

    async def invalidate_user_cache(self, tenant_id: str, user_id: str) -> None:
        """Invalidate cached permissions for one user."""
        key = self._key(tenant_id, user_id)
        if key is None:
            return
        self._user_generations[key] = self._user_generations.get(key, 0) + 1
        if not self._cache_ready():
            return
        try:
            await self.cache.delete(key)
        except Exception:
            logger.exception("Permission cache delete failed for %s", key)

    async def invalidate_users_cache(self, tenant_id: str, user_ids: Iterable[str]) -> None:
        for user_id in user_ids:
            await self.invalidate_user_cache(tenant_id, user_id)

    async def invalidate_role_cache(self, tenant_id: str, role_id: str) -> None:
        """Invalidate every user holding role_id in tenant_id."""
        if not self._cache_ready():
            return
        holders = await self.tenant_service.role_holders(tenant_id, role_id)
        await self.invalidate_users_cache(tenant_id, holders)

    async def invalidate_tenant_cache(self, tenant_id: str) -> None:
        """Invalidate all cached permissions for a tenant."""
        self._tenant_generations[tenant_id] = self._tenant_generations.get(tenant_id, 0) + 1
        if not self._cache_ready():
            return
        try:
            await self.cache.delete_pattern(tenant_permission_pattern(tenant_id))
        except ValueError:
            await self.invalidate_all()
        except Exception:
            logger.exception("Permission cache invalidation failed for tenant %s", tenant_id)

    async def invalidate_all(self) -> None:
        self._epoch += 1
        if not self._cache_ready():
            return
        try:
            await self.cache.clear_all()
        except Exception:
            logger.exception("Permission cache clear failed")
