"""KeyedRBAC: user-scoped operations taking one mapping with configured key names.

A deployment that renamed tenant_id to workspace_id can pass
{"workspace_id": ..., "user_id": ..., "role": "editor"}; the canonical name
("tenant_id") is accepted as a fallback. When neither is present the call
fails with MissingConfiguredKeyError naming both.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from tenant_rbac.application.dtos import (
    PermissionResult,
    RolePermissionResult,
    UserPermissionsView,
    UserRoleResult,
    UserRolesAndPermissionsView,
    UserRolesView,
)
from tenant_rbac.core.config import Settings
from tenant_rbac.core.rbac_config import RbacConfig
from tenant_rbac.domain.exceptions import MissingConfiguredKeyError, ValidationException
from tenant_rbac.rbac import MultiTenantRBAC, create_rbac

Args = Mapping[str, Any]


class KeyedRBAC:
    """Mapping-argument wrapper over MultiTenantRBAC."""

    def __init__(self, rbac: MultiTenantRBAC) -> None:
        self.rbac = rbac
        self.keys = rbac.context.config.keys
        self.aliases = dict(self.keys.aliases())

    def resolve_key(self, args: Args, canonical: str) -> Any:
        """Value for canonical key: configured alias first, then the canonical name.

        Raises:
            MissingConfiguredKeyError: Neither name is present.
        """
        alias = self.aliases[canonical]
        if alias in args and args[alias] is not None:
            return args[alias]
        if canonical in args and args[canonical] is not None:
            return args[canonical]
        raise MissingConfiguredKeyError(alias, canonical)

    @staticmethod
    def _field(args: Args, *names: str) -> Any:
        for name in names:
            if args.get(name) is not None:
                return args[name]
        raise ValidationException(f"Missing argument '{names[0]}'", field=names[0])

    def _scope(self, args: Args) -> tuple[Any, Any]:
        return self.resolve_key(args, "tenant_id"), self.resolve_key(args, "user_id")

    async def assign_role_to_user(self, args: Args) -> UserRoleResult:
        tenant_id, user_id = self._scope(args)
        return await self.rbac.assign_role_to_user(
            tenant_id, user_id, self._field(args, "role", "role_slug")
        )

    async def assign_roles_to_user_bulk(self, args: Args) -> list[UserRoleResult]:
        tenant_id, user_id = self._scope(args)
        return await self.rbac.assign_roles_to_user_bulk(
            tenant_id, user_id, self._field(args, "roles", "role_slugs")
        )

    async def revoke_role_from_user(self, args: Args) -> int:
        tenant_id, user_id = self._scope(args)
        return await self.rbac.revoke_role_from_user(
            tenant_id, user_id, self._field(args, "role", "role_slug")
        )

    async def sync_user_roles(self, args: Args) -> list[UserRoleResult]:
        tenant_id, user_id = self._scope(args)
        return await self.rbac.sync_user_roles(
            tenant_id, user_id, self._field(args, "roles", "role_slugs")
        )

    async def find_user_role(self, args: Args) -> UserRoleResult | None:
        tenant_id, user_id = self._scope(args)
        return await self.rbac.find_user_role(
            tenant_id,
            user_id,
            self.resolve_key(args, "role_id"),
            args.get("reject_if_not_found", True),
        )

    async def user_has_role(self, args: Args) -> bool:
        tenant_id, user_id = self._scope(args)
        return await self.rbac.user_has_role(tenant_id, user_id, self.resolve_key(args, "role_id"))

    async def get_user_role(self, args: Args) -> UserRolesView:
        tenant_id, user_id = self._scope(args)
        return await self.rbac.get_user_role(
            tenant_id, user_id, args.get("reject_if_not_found", True)
        )

    async def get_user_permissions(self, args: Args) -> UserPermissionsView:
        tenant_id, user_id = self._scope(args)
        return await self.rbac.get_user_permissions(tenant_id, user_id)

    async def get_user_roles_and_permissions(self, args: Args) -> UserRolesAndPermissionsView:
        tenant_id, user_id = self._scope(args)
        return await self.rbac.get_user_roles_and_permissions(
            tenant_id, user_id, args.get("reject_if_not_found", True)
        )

    async def find_users_by_role(self, args: Args) -> list[UserRoleResult]:
        return await self.rbac.find_users_by_role(
            self.resolve_key(args, "tenant_id"), self._field(args, "role", "role_slug")
        )

    async def grant_permissions_to_role(self, args: Args) -> list[RolePermissionResult]:
        return await self.rbac.grant_permissions_to_role(
            self.resolve_key(args, "tenant_id"),
            self._field(args, "role", "role_slug"),
            self._field(args, "permissions", "permission_identifiers"),
        )

    async def sync_role_with_permissions(self, args: Args) -> list[RolePermissionResult]:
        return await self.rbac.sync_role_with_permissions(
            self.resolve_key(args, "tenant_id"),
            self._field(args, "role", "role_slug"),
            args.get("permissions", args.get("permission_identifiers", [])),
        )

    async def revoke_permissions_from_role(self, args: Args) -> int:
        return await self.rbac.revoke_permissions_from_role(
            self.resolve_key(args, "tenant_id"),
            self._field(args, "role", "role_slug"),
            self._field(args, "permissions", "permission_identifiers"),
        )

    async def role_has_permission(self, args: Args) -> bool:
        return await self.rbac.role_has_permission(
            self.resolve_key(args, "role_id"), self.resolve_key(args, "permission_id")
        )

    async def authorize(self, args: Args) -> bool:
        tenant_id, user_id = self._scope(args)
        return await self.rbac.authorize(
            tenant_id, user_id, self._field(args, "permission", "permission_title")
        )

    async def list_effective_permissions(self, args: Args) -> list[PermissionResult]:
        tenant_id, user_id = self._scope(args)
        return await self.rbac.list_effective_permissions(tenant_id, user_id)


async def create_keyed_rbac(
    config: RbacConfig | Mapping[str, Any],
    settings: Settings | None = None,
) -> KeyedRBAC:
    """Build a MultiTenantRBAC for config and wrap it in KeyedRBAC."""
    return KeyedRBAC(await create_rbac(config, settings))
