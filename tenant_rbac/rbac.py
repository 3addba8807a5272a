"""MultiTenantRBAC: the public entry point a host application talks to.

Explicit composition of the tenant, role and permission services plus the
authorization service. Every mutation that can change a user's effective
permissions invalidates the affected cache entries before it returns.

Usage:
    rbac = await create_rbac(RbacConfig(adapter=InMemoryAdapter()))
    tenant = await rbac.create_tenant("Acme")
    await rbac.create_role(tenant.slug, {"title": "Editor"})
    await rbac.ensure_permissions([{"title": "posts.edit"}])
    await rbac.grant_permissions_to_role(tenant.id, "editor", ["posts.edit"])
    await rbac.assign_role_to_user(tenant.id, "user-1", "editor")
    assert await rbac.authorize(tenant.id, "user-1", "posts.edit")
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from tenant_rbac.application.dtos import (
    PermissionResult,
    RolePermissionResult,
    RoleResult,
    TenantResult,
    TenantWithRoles,
    UserPermissionsView,
    UserRoleResult,
    UserRolesAndPermissionsView,
    UserRolesView,
)
from tenant_rbac.application.interfaces.services import AuditHandler, HookListener, ICacheService
from tenant_rbac.application.services import (
    AuthorizationService,
    PermissionService,
    RoleService,
    TenantService,
)
from tenant_rbac.core.config import Settings
from tenant_rbac.core.context import RbacContext
from tenant_rbac.core.rbac_config import RbacConfig
from tenant_rbac.infrastructure.cache.factory import create_cache
from tenant_rbac.schemas import (
    PermissionCreate,
    PermissionUpdate,
    RoleCreate,
    RoleUpdate,
    TenantUpdate,
)
from tenant_rbac.shared.enums import HookEvent
from tenant_rbac.shared.telemetry import setup_logging


class MultiTenantRBAC:
    """Facade over the RBAC services for one context."""

    def __init__(
        self,
        context: RbacContext,
        tenants: TenantService,
        roles: RoleService,
        permissions: PermissionService,
        authorization: AuthorizationService,
    ) -> None:
        self.context = context
        self.tenants = tenants
        self.roles = roles
        self.permissions = permissions
        self.authorization = authorization

    @classmethod
    def from_context(
        cls, context: RbacContext, cache: ICacheService | None = None
    ) -> MultiTenantRBAC:
        """Wire services for an initialized context."""
        config = context.config
        tenants = TenantService(context.gateway, config, context.audit, context.hooks)
        roles = RoleService(context.gateway, config, tenants, context.audit, context.hooks)
        tenants.bind_roles(roles)
        permissions = PermissionService(context.gateway, config, context.audit)
        authorization = AuthorizationService(
            tenants, cache=cache, cache_ttl=context.settings.cache_ttl_seconds
        )
        return cls(context, tenants, roles, permissions, authorization)

    # Events

    def register_audit_handler(self, handler: AuditHandler) -> None:
        self.context.audit.register(handler)

    def on(self, event: HookEvent | str, listener: HookListener) -> Callable[[], None]:
        """Subscribe to a lifecycle hook; returns the unsubscribe callable."""
        return self.context.hooks.subscribe(event, listener)

    async def close(self) -> None:
        """Drain async hook listeners, then close the adapter and the cache connection."""
        await self.context.close()
        disconnect = getattr(self.authorization.cache, "disconnect", None)
        if callable(disconnect):
            await disconnect()

    # Tenants

    async def create_tenant(
        self,
        name: str,
        description: str | None = None,
        is_active: bool = True,
        return_if_found: bool = True,
    ) -> TenantResult:
        return await self.tenants.create(name, description, is_active, return_if_found)

    async def find_tenant(
        self, identifier: str, reject_if_not_found: bool = True
    ) -> TenantResult | None:
        return await self.tenants.find(identifier, reject_if_not_found)

    async def find_tenant_by_id(
        self, tenant_id: str, reject_if_not_found: bool = True
    ) -> TenantResult | None:
        return await self.tenants.find_by_id(tenant_id, reject_if_not_found)

    async def list_tenants(self) -> list[TenantResult]:
        return await self.tenants.list()

    async def update_tenant(
        self, identifier: str, partial: TenantUpdate | dict[str, Any]
    ) -> TenantResult:
        return await self.tenants.update(identifier, partial)

    async def delete_tenant(self, identifier: str) -> TenantResult:
        tenant = await self.tenants.delete(identifier)
        await self.authorization.invalidate_tenant_cache(tenant.id)
        return tenant

    async def get_tenant_with_roles_and_permissions(self, identifier: str) -> TenantWithRoles:
        return await self.tenants.get_tenant_with_roles_and_permissions(identifier)

    # Permissions

    async def create_permission(
        self,
        payload: PermissionCreate | dict[str, Any] | list[PermissionCreate | dict[str, Any]],
        slug_case: bool = True,
    ) -> PermissionResult | list[PermissionResult]:
        return await self.permissions.create(payload, slug_case)

    async def upsert_permission(
        self, payload: PermissionCreate | dict[str, Any], slug_case: bool = True
    ) -> PermissionResult:
        return await self.permissions.upsert(payload, slug_case)

    async def ensure_permissions(
        self, payloads: list[PermissionCreate | dict[str, Any]], slug_case: bool = True
    ) -> list[PermissionResult]:
        return await self.permissions.ensure_many(payloads, slug_case)

    async def update_permission(
        self,
        permission_id: str,
        payload: PermissionUpdate | dict[str, Any],
        slug_case: bool = True,
    ) -> PermissionResult:
        permission = await self.permissions.update(permission_id, payload, slug_case)
        await self.authorization.invalidate_all()
        return permission

    async def find_permission(self, identifier: str) -> PermissionResult:
        return await self.permissions.find(identifier)

    async def find_permission_by_id(
        self, permission_id: str, reject_if_not_found: bool = True
    ) -> PermissionResult | None:
        return await self.permissions.find_by_id(permission_id, reject_if_not_found)

    async def list_permissions(self) -> list[PermissionResult]:
        return await self.permissions.list()

    async def delete_permission(self, identifier: str) -> PermissionResult:
        permission = await self.permissions.delete(identifier)
        await self.authorization.invalidate_all()
        return permission

    # Roles

    async def create_role(
        self,
        tenant_slug_or_name: str,
        payload: RoleCreate | dict[str, Any] | list[RoleCreate | dict[str, Any]],
        slug_case: bool = True,
    ) -> RoleResult | list[RoleResult]:
        return await self.roles.create(tenant_slug_or_name, payload, slug_case)

    async def upsert_role(
        self,
        tenant_slug_or_name: str,
        payload: RoleCreate | dict[str, Any],
        slug_case: bool = True,
    ) -> RoleResult:
        return await self.roles.upsert(tenant_slug_or_name, payload, slug_case)

    async def update_role(
        self,
        tenant_id: str,
        role_id: str,
        payload: RoleUpdate | dict[str, Any],
        slug_case: bool = True,
    ) -> RoleResult:
        return await self.roles.update(tenant_id, role_id, payload, slug_case)

    async def list_roles(self, tenant_id: str) -> list[RoleResult]:
        return await self.roles.list(tenant_id)

    async def find_role(self, tenant_id: str, identifier: str) -> RoleResult:
        return await self.roles.find(tenant_id, identifier)

    async def find_role_by_id(
        self, tenant_id: str, role_id: str, reject_if_not_found: bool = True
    ) -> RoleResult | None:
        return await self.roles.find_by_id(tenant_id, role_id, reject_if_not_found)

    async def find_role_by_name(
        self, tenant_id: str, identifier: str, reject_if_not_found: bool = True
    ) -> RoleResult | None:
        return await self.roles.find_by_name(tenant_id, identifier, reject_if_not_found)

    async def find_roles(self, tenant_id: str, identifiers: list[str]) -> list[RoleResult]:
        return await self.roles.find_many(tenant_id, identifiers)

    async def grant_permissions_to_role(
        self, tenant_id: str, role_slug: str, permission_identifiers: list[str]
    ) -> list[RolePermissionResult]:
        links = await self.roles.grant_permissions_to_role(
            tenant_id, role_slug, permission_identifiers
        )
        await self._invalidate_role(tenant_id, role_slug)
        return links

    async def sync_role_with_permissions(
        self, tenant_id: str, role_slug: str, permission_identifiers: list[str] | None
    ) -> list[RolePermissionResult]:
        links = await self.roles.sync_role_with_permissions(
            tenant_id, role_slug, permission_identifiers
        )
        await self._invalidate_role(tenant_id, role_slug)
        return links

    async def revoke_permissions_from_role(
        self, tenant_id: str, role_slug: str, permission_identifiers: list[str]
    ) -> int:
        removed = await self.roles.revoke_permissions_from_role(
            tenant_id, role_slug, permission_identifiers
        )
        await self._invalidate_role(tenant_id, role_slug)
        return removed

    async def find_role_permission(
        self, role_id: str, permission_id: str, reject_if_not_found: bool = True
    ) -> RolePermissionResult | None:
        return await self.roles.find_role_permission(role_id, permission_id, reject_if_not_found)

    async def role_has_permission(self, role_id: str, permission_id: str) -> bool:
        return await self.roles.role_has_permission(role_id, permission_id)

    async def delete_role(self, tenant_id: str, role_id: str) -> RoleResult:
        role = await self.roles.delete(tenant_id, role_id)
        await self.authorization.invalidate_role_cache(role.tenant_id, role.id)
        return role

    async def _invalidate_role(self, tenant_id: str, role_slug: str) -> None:
        role = await self.roles.find(tenant_id, role_slug)
        await self.authorization.invalidate_role_cache(role.tenant_id, role.id)

    # User roles

    async def assign_role_to_user(
        self, tenant_id: str, user_id: str, role_slug: str
    ) -> UserRoleResult:
        assignment = await self.tenants.assign_role_to_user(tenant_id, user_id, role_slug)
        await self.authorization.invalidate_user_cache(assignment.tenant_id, user_id)
        return assignment

    async def assign_roles_to_user_bulk(
        self, tenant_id: str, user_id: str, role_slugs: list[str]
    ) -> list[UserRoleResult]:
        assignments = await self.tenants.assign_roles_to_user_bulk(tenant_id, user_id, role_slugs)
        await self.authorization.invalidate_user_cache(tenant_id, user_id)
        return assignments

    async def find_user_role(
        self,
        tenant_id: str,
        user_id: str,
        role_id: str,
        reject_if_not_found: bool = True,
    ) -> UserRoleResult | None:
        return await self.tenants.find_user_role(tenant_id, user_id, role_id, reject_if_not_found)

    async def get_user_role(
        self, tenant_id: str, user_id: str, reject_if_not_found: bool = True
    ) -> UserRolesView:
        return await self.tenants.get_user_role(tenant_id, user_id, reject_if_not_found)

    async def get_user_permissions(self, tenant_id: str, user_id: str) -> UserPermissionsView:
        return await self.tenants.get_user_permissions(tenant_id, user_id)

    async def get_user_roles_and_permissions(
        self, tenant_id: str, user_id: str, reject_if_not_found: bool = True
    ) -> UserRolesAndPermissionsView:
        return await self.tenants.get_user_roles_and_permissions(
            tenant_id, user_id, reject_if_not_found
        )

    async def user_has_role(self, tenant_id: str, user_id: str, role_id: str) -> bool:
        return await self.tenants.user_has_role(tenant_id, user_id, role_id)

    async def find_users_by_role(
        self, tenant_id: str, role_identifier: str
    ) -> list[UserRoleResult]:
        return await self.tenants.find_users_by_role(tenant_id, role_identifier)

    async def revoke_role_from_user(self, tenant_id: str, user_id: str, role_slug: str) -> int:
        removed = await self.tenants.revoke_role_from_user(tenant_id, user_id, role_slug)
        await self.authorization.invalidate_user_cache(tenant_id, user_id)
        return removed

    async def sync_user_roles(
        self, tenant_id: str, user_id: str, role_slugs: list[str]
    ) -> list[UserRoleResult]:
        assignments = await self.tenants.sync_user_roles(tenant_id, user_id, role_slugs)
        await self.authorization.invalidate_user_cache(tenant_id, user_id)
        return assignments

    # Authorization

    async def authorize(self, tenant_id: str, user_id: str, permission_title: str) -> bool:
        return await self.authorization.authorize(tenant_id, user_id, permission_title)

    async def list_effective_permissions(
        self, tenant_id: str, user_id: str
    ) -> list[PermissionResult]:
        return await self.authorization.list_effective_permissions(tenant_id, user_id)


async def create_rbac(
    config: RbacConfig | Mapping[str, Any],
    settings: Settings | None = None,
    cache: ICacheService | None = None,
    configure_logging: bool = False,
) -> MultiTenantRBAC:
    """Initialize a context for config and return the wired facade.

    Args:
        config: RbacConfig (or mapping) with at least an adapter.
        settings: Overrides get_settings() (cache backend, TTL, logging).
        cache: Pre-built cache; by default one is created from settings.
        configure_logging: Install the library log format (hosts without their own logging).
    """
    context = RbacContext(settings)
    if configure_logging:
        setup_logging(context.settings)
    await context.init(config)
    if cache is None:
        cache = await create_cache(context.settings)
    return MultiTenantRBAC.from_context(context, cache=cache)
