"""Tenant application service: tenant CRUD and user-role assignments.

Also owns the uncached authorization primitives (user_has_permission,
effective permission collection) that AuthorizationService builds on.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING, Any

from tenant_rbac.application.dtos.permission import PermissionResult
from tenant_rbac.application.dtos.role import RoleResult
from tenant_rbac.application.dtos.tenant import TenantResult, TenantWithRoles
from tenant_rbac.application.dtos.user_role import (
    UserPermissionsView,
    UserRoleResult,
    UserRolesAndPermissionsView,
    UserRolesView,
)
from tenant_rbac.domain.exceptions import (
    ConfigurationException,
    DuplicateAssignmentException,
    ForbiddenException,
    TenantAlreadyExistsException,
    TenantNotFoundException,
    UserRoleNotFoundException,
)
from tenant_rbac.schemas.base import parse_payload
from tenant_rbac.schemas.tenant import TenantCreate, TenantUpdate
from tenant_rbac.shared.enums import AuditAction, HookEvent, UserRoleStatus
from tenant_rbac.shared.telemetry import get_logger
from tenant_rbac.shared.utils.datetime import utc_now
from tenant_rbac.shared.utils.slugs import to_slug_case
from tenant_rbac.shared.utils.validation import (
    assert_has_items,
    assert_non_empty_string,
    normalize_to_list,
)

if TYPE_CHECKING:
    from tenant_rbac.application.interfaces.services import IAuditTrail, IHookBus
    from tenant_rbac.application.services.role_service import RoleService
    from tenant_rbac.application.services.storage_gateway import StorageGateway
    from tenant_rbac.core.rbac_config import ResolvedRbacConfig

logger = get_logger(__name__)


class TenantService:
    """Tenants and the user-role assignments scoped to them.

    Role lookups go through RoleService, wired after construction with
    bind_roles (RoleService itself needs this service for tenant checks).
    """

    def __init__(
        self,
        gateway: StorageGateway,
        config: ResolvedRbacConfig,
        audit: IAuditTrail | None = None,
        hooks: IHookBus | None = None,
    ) -> None:
        self._gateway = gateway
        self._models = config.models
        self._keys = config.keys
        self._audit = audit
        self._hooks = hooks
        self._role_service: RoleService | None = None

    def bind_roles(self, role_service: RoleService) -> None:
        self._role_service = role_service

    @property
    def roles(self) -> RoleService:
        if self._role_service is None:
            raise ConfigurationException("TenantService has no RoleService bound")
        return self._role_service

    async def _emit(self, action: AuditAction, model: str, **kwargs: Any) -> None:
        if self._audit is not None:
            await self._audit.emit(action, model=model, **kwargs)

    def _hook(self, event: HookEvent, payload: dict[str, Any]) -> None:
        if self._hooks is not None:
            self._hooks.emit(event, payload)

    def _assignment_scope(self, tenant_id: str, user_id: str) -> dict[str, Any]:
        return {self._keys.tenant_id: tenant_id, self._keys.user_id: user_id}

    # Tenants

    async def _lookup(self, identifier: str) -> dict[str, Any] | None:
        record = await self._gateway.find_one(self._models.tenants, {"slug": identifier})
        if record is None:
            record = await self._gateway.find_one(self._models.tenants, {"name": identifier})
        return record

    async def create(
        self,
        name: str,
        description: str | None = None,
        is_active: bool = True,
        return_if_found: bool = True,
    ) -> TenantResult:
        """Create a tenant with a hyphenated slug derived from name.

        A tenant whose name or slug matches is returned when return_if_found,
        otherwise rejected.

        Raises:
            TenantAlreadyExistsException: Match found and return_if_found is False.
        """
        data = parse_payload(
            TenantCreate, {"name": name, "description": description, "is_active": is_active}
        )
        slug = to_slug_case(data.name)
        existing = await self._gateway.find_one(self._models.tenants, {"name": data.name})
        if existing is None:
            existing = await self._gateway.find_one(self._models.tenants, {"slug": slug})
        if existing is not None:
            if return_if_found:
                return TenantResult.from_record(existing)
            raise TenantAlreadyExistsException(data.name)
        now = utc_now()
        record = await self._gateway.create(
            self._models.tenants,
            {
                "name": data.name,
                "slug": slug,
                "description": data.description,
                "is_active": data.is_active,
                "created_at": now,
                "updated_at": now,
            },
        )
        await self._emit(
            AuditAction.TENANT_CREATE,
            self._models.tenants,
            tenant_id=record["id"],
            record_id=record["id"],
            after=record,
        )
        logger.info("Tenant created: %s", slug)
        return TenantResult.from_record(record)

    async def find(
        self, identifier: str, reject_if_not_found: bool = True
    ) -> TenantResult | None:
        """Find a tenant by slug or name."""
        assert_non_empty_string(identifier, "identifier")
        record = await self._lookup(identifier)
        if record is None:
            if reject_if_not_found:
                raise TenantNotFoundException(identifier)
            return None
        return TenantResult.from_record(record)

    async def find_by_id(
        self, tenant_id: str, reject_if_not_found: bool = True
    ) -> TenantResult | None:
        assert_non_empty_string(tenant_id, "tenant_id")
        record = await self._gateway.find_one(self._models.tenants, {"id": tenant_id})
        if record is None:
            if reject_if_not_found:
                raise TenantNotFoundException(tenant_id)
            return None
        return TenantResult.from_record(record)

    async def list(self) -> list[TenantResult]:
        records = await self._gateway.find_many(self._models.tenants)
        return [TenantResult.from_record(r) for r in records]

    async def update(
        self, identifier: str, partial: TenantUpdate | dict[str, Any]
    ) -> TenantResult:
        """Apply a partial update; a name change re-derives the slug.

        Raises:
            TenantNotFoundException: identifier does not resolve.
            TenantAlreadyExistsException: Another tenant already has the new
                name or the slug derived from it.
        """
        current = await self.find(identifier)
        changes = parse_payload(TenantUpdate, partial).model_dump(exclude_unset=True)
        if changes.get("name"):
            changes["slug"] = to_slug_case(changes["name"])
            for field in ("name", "slug"):
                matches = await self._gateway.find_many(
                    self._models.tenants, {field: changes[field]}
                )
                if any(str(m["id"]) != current.id for m in matches):
                    raise TenantAlreadyExistsException(
                        changes[field], details_extra={"field": field}
                    )
        changes["updated_at"] = utc_now()
        record = await self._gateway.update(self._models.tenants, {"id": current.id}, changes)
        if record is None:
            raise TenantNotFoundException(identifier)
        await self._emit(
            AuditAction.TENANT_UPDATE,
            self._models.tenants,
            tenant_id=current.id,
            record_id=current.id,
            before=asdict(current),
            after=record,
        )
        return TenantResult.from_record(record)

    async def delete(self, identifier: str) -> TenantResult:
        """Delete an active tenant and return it as it was before deletion.

        Raises:
            TenantNotFoundException: identifier does not resolve.
            ForbiddenException: Tenant is inactive.
        """
        tenant = await self.find(identifier)
        if not tenant.is_active:
            raise ForbiddenException(
                f"Tenant '{tenant.slug}' is inactive and cannot be deleted", resource_type="tenant"
            )
        await self._gateway.delete(self._models.tenants, {"id": tenant.id})
        await self._emit(
            AuditAction.TENANT_DELETE,
            self._models.tenants,
            tenant_id=tenant.id,
            record_id=tenant.id,
            before=asdict(tenant),
        )
        logger.info("Tenant deleted: %s", tenant.slug)
        return tenant

    async def get_tenant_with_roles_and_permissions(self, identifier: str) -> TenantWithRoles:
        """Tenant, its active roles, and each role's permissions. Uncached fan-out read."""
        tenant = await self.find(identifier)
        records = await self._gateway.find_many(
            self._models.roles, {self._keys.tenant_id: tenant.id, "is_active": True}
        )
        roles = [RoleResult.from_record(r, self._keys) for r in records]
        return TenantWithRoles(
            tenant=tenant, roles=tuple(await self.roles.permissions_for_roles(roles))
        )

    # User roles

    async def assign_role_to_user(
        self, tenant_id: str, user_id: str, role_slug: str
    ) -> UserRoleResult:
        """Give user_id the role (slug or title) in tenant_id with status active.

        Raises:
            TenantNotFoundException / RoleNotFoundException: Scope does not resolve.
            DuplicateAssignmentException: The user already holds the role there.
        """
        assert_non_empty_string(user_id, "user_id")
        tenant = await self.find_by_id(tenant_id)
        role = await self.roles.find(tenant.id, role_slug)
        if await self.find_user_role(tenant.id, user_id, role.id, False) is not None:
            raise DuplicateAssignmentException(
                role_slug, details_extra={"user_id": user_id, "role_id": role.id}
            )
        payload = {"tenant_id": tenant.id, "user_id": user_id, "role_id": role.id}
        self._hook(HookEvent.BEFORE_ROLE_ASSIGN, payload)
        now = utc_now()
        record = await self._gateway.create(
            self._models.user_roles,
            {
                **self._assignment_scope(tenant.id, user_id),
                self._keys.role_id: role.id,
                "status": UserRoleStatus.ACTIVE.value,
                "created_at": now,
                "updated_at": now,
            },
        )
        assignment = UserRoleResult.from_record(record, self._keys)
        await self._emit(
            AuditAction.USER_ROLE_ASSIGN,
            self._models.user_roles,
            tenant_id=tenant.id,
            record_id=assignment.id,
            after=record,
        )
        self._hook(HookEvent.AFTER_ROLE_ASSIGN, {**payload, "assignment_id": assignment.id})
        return assignment

    async def assign_roles_to_user_bulk(
        self, tenant_id: str, user_id: str, role_slugs: list[str]
    ) -> list[UserRoleResult]:
        """Assign every listed role the user does not hold yet, in one bulk insert.

        Returns:
            Assignments created by this call (held roles are skipped).

        Raises:
            ValidationException: role_slugs is empty.
            RoleNotFoundException: An identifier does not resolve in the tenant.
        """
        assert_non_empty_string(user_id, "user_id")
        slugs = assert_has_items(normalize_to_list(role_slugs), "role_slugs")
        tenant = await self.find_by_id(tenant_id)
        roles = await self.roles.resolve_all(tenant.id, slugs)
        held = await self._gateway.find_many(
            self._models.user_roles,
            {
                **self._assignment_scope(tenant.id, user_id),
                self._keys.role_id: [r.id for r in roles],
            },
        )
        held_ids = {str(a[self._keys.role_id]) for a in held}
        missing = [r for r in roles if r.id not in held_ids]
        payload = {
            "tenant_id": tenant.id,
            "user_id": user_id,
            "role_ids": [r.id for r in missing],
        }
        self._hook(HookEvent.BEFORE_ROLE_ASSIGN, payload)
        now = utc_now()
        records = await self._gateway.create_many(
            self._models.user_roles,
            [
                {
                    **self._assignment_scope(tenant.id, user_id),
                    self._keys.role_id: role.id,
                    "status": UserRoleStatus.ACTIVE.value,
                    "created_at": now,
                    "updated_at": now,
                }
                for role in missing
            ],
        )
        created = [UserRoleResult.from_record(r, self._keys) for r in records]
        if created:
            await self._emit(
                AuditAction.USER_ROLE_ASSIGN,
                self._models.user_roles,
                tenant_id=tenant.id,
                metadata={"user_id": user_id, "role_ids": [a.role_id for a in created]},
            )
        self._hook(HookEvent.AFTER_ROLE_ASSIGN, payload)
        return created

    async def find_user_role(
        self,
        tenant_id: str,
        user_id: str,
        role_id: str,
        reject_if_not_found: bool = True,
    ) -> UserRoleResult | None:
        record = await self._gateway.find_one(
            self._models.user_roles,
            {**self._assignment_scope(tenant_id, user_id), self._keys.role_id: role_id},
        )
        if record is None:
            if reject_if_not_found:
                raise UserRoleNotFoundException(f"{user_id}/{role_id}")
            return None
        return UserRoleResult.from_record(record, self._keys)

    async def _user_roles(self, tenant_id: str, user_id: str) -> list[RoleResult]:
        assignments = await self._gateway.find_many(
            self._models.user_roles, self._assignment_scope(tenant_id, user_id)
        )
        if not assignments:
            return []
        records = await self._gateway.find_many(
            self._models.roles,
            {
                "id": [a[self._keys.role_id] for a in assignments],
                self._keys.tenant_id: tenant_id,
            },
        )
        return [RoleResult.from_record(r, self._keys) for r in records]

    async def get_user_role(
        self, tenant_id: str, user_id: str, reject_if_not_found: bool = True
    ) -> UserRolesView:
        """Roles user_id holds in tenant_id.

        Raises:
            UserRoleNotFoundException: No roles and reject_if_not_found.
        """
        tenant = await self.find_by_id(tenant_id)
        roles = await self._user_roles(tenant.id, user_id)
        if not roles and reject_if_not_found:
            raise UserRoleNotFoundException(user_id)
        return UserRolesView(tenant_id=tenant.id, user_id=user_id, roles=tuple(roles))

    async def collect_effective_permissions(
        self, tenant_id: str, user_id: str
    ) -> list[PermissionResult]:
        """Union of permissions reachable via active assignments, de-duplicated.

        Roles are re-read (and must still belong to the tenant) and permissions
        re-read by id, so links left behind by deletions are ignored.
        """
        assignments = await self._gateway.find_many(
            self._models.user_roles,
            {
                **self._assignment_scope(tenant_id, user_id),
                "status": UserRoleStatus.ACTIVE.value,
            },
        )
        if not assignments:
            return []
        roles = await self._gateway.find_many(
            self._models.roles,
            {
                "id": [a[self._keys.role_id] for a in assignments],
                self._keys.tenant_id: tenant_id,
            },
        )
        if not roles:
            return []
        links = await self._gateway.find_many(
            self._models.role_permissions, {self._keys.role_id: [r["id"] for r in roles]}
        )
        permission_ids = list(dict.fromkeys(link[self._keys.permission_id] for link in links))
        records = await self._gateway.find_many(self._models.permissions, {"id": permission_ids})
        return [PermissionResult.from_record(r) for r in records]

    async def get_user_permissions(self, tenant_id: str, user_id: str) -> UserPermissionsView:
        """De-duplicated permissions of user_id in tenant_id.

        Raises:
            UserRoleNotFoundException: The user has no assignment in the tenant.
        """
        tenant = await self.find_by_id(tenant_id)
        assignment = await self._gateway.find_one(
            self._models.user_roles, self._assignment_scope(tenant.id, user_id)
        )
        if assignment is None:
            raise UserRoleNotFoundException(user_id)
        permissions = await self.collect_effective_permissions(tenant.id, user_id)
        return UserPermissionsView(
            tenant_id=tenant.id, user_id=user_id, permissions=tuple(permissions)
        )

    async def get_user_roles_and_permissions(
        self, tenant_id: str, user_id: str, reject_if_not_found: bool = True
    ) -> UserRolesAndPermissionsView:
        view = await self.get_user_role(tenant_id, user_id, reject_if_not_found)
        roles = await self.roles.permissions_for_roles(list(view.roles))
        return UserRolesAndPermissionsView(
            tenant_id=view.tenant_id, user_id=user_id, roles=tuple(roles)
        )

    async def user_has_permission(
        self, tenant_id: str, user_id: str, permission_title: str
    ) -> bool:
        """Uncached check: an active assignment reaches a permission titled permission_title."""
        permissions = await self._gateway.find_many(
            self._models.permissions, {"title": permission_title}
        )
        if not permissions:
            return False
        assignments = await self._gateway.find_many(
            self._models.user_roles,
            {
                **self._assignment_scope(tenant_id, user_id),
                "status": UserRoleStatus.ACTIVE.value,
            },
        )
        if not assignments:
            return False
        roles = await self._gateway.find_many(
            self._models.roles,
            {
                "id": [a[self._keys.role_id] for a in assignments],
                self._keys.tenant_id: tenant_id,
            },
        )
        if not roles:
            return False
        link = await self._gateway.find_one(
            self._models.role_permissions,
            {
                self._keys.role_id: [r["id"] for r in roles],
                self._keys.permission_id: [p["id"] for p in permissions],
            },
        )
        return link is not None

    async def user_has_role(self, tenant_id: str, user_id: str, role_id: str) -> bool:
        return await self.find_user_role(tenant_id, user_id, role_id, False) is not None

    async def find_users_by_role(
        self, tenant_id: str, role_identifier: str
    ) -> list[UserRoleResult]:
        """Active assignments of the role (slug or title) in tenant_id."""
        tenant = await self.find_by_id(tenant_id)
        role = await self.roles.find_by_name(tenant.id, role_identifier)
        records = await self._gateway.find_many(
            self._models.user_roles,
            {
                self._keys.tenant_id: tenant.id,
                self._keys.role_id: role.id,
                "status": UserRoleStatus.ACTIVE.value,
            },
        )
        return [UserRoleResult.from_record(r, self._keys) for r in records]

    async def role_holders(self, tenant_id: str, role_id: str) -> list[str]:
        """User ids holding role_id in tenant_id under any status."""
        records = await self._gateway.find_many(
            self._models.user_roles,
            {self._keys.tenant_id: tenant_id, self._keys.role_id: role_id},
        )
        return list(dict.fromkeys(str(r[self._keys.user_id]) for r in records))

    async def revoke_role_from_user(self, tenant_id: str, user_id: str, role_slug: str) -> int:
        """Delete the user's assignment of the role; return the count deleted (0 is fine)."""
        tenant = await self.find_by_id(tenant_id)
        role = await self.roles.find(tenant.id, role_slug)
        removed = await self._gateway.delete(
            self._models.user_roles,
            {**self._assignment_scope(tenant.id, user_id), self._keys.role_id: role.id},
        )
        if removed:
            await self._emit(
                AuditAction.USER_ROLE_REVOKE,
                self._models.user_roles,
                tenant_id=tenant.id,
                metadata={"user_id": user_id, "role_id": role.id, "removed": removed},
            )
        return removed

    async def sync_user_roles(
        self, tenant_id: str, user_id: str, role_slugs: list[str]
    ) -> list[UserRoleResult]:
        """Replace every role user_id holds in tenant_id with role_slugs.

        All identifiers are resolved before anything is deleted; delete and
        insert then run inside one adapter transaction when supported.

        Raises:
            ValidationException: role_slugs is empty.
            RoleNotFoundException: An identifier does not resolve in the tenant.
        """
        assert_non_empty_string(user_id, "user_id")
        slugs = assert_has_items(normalize_to_list(role_slugs), "role_slugs")
        tenant = await self.find_by_id(tenant_id)
        roles = await self.roles.resolve_all(tenant.id, slugs)
        scope = self._assignment_scope(tenant.id, user_id)
        payload = {"tenant_id": tenant.id, "user_id": user_id, "roles": list(slugs)}
        self._hook(HookEvent.BEFORE_ROLE_SYNC, payload)

        async def _replace() -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
            previous = await self._gateway.find_many(self._models.user_roles, scope)
            await self._gateway.delete(self._models.user_roles, scope)
            now = utc_now()
            created = await self._gateway.create_many(
                self._models.user_roles,
                [
                    {
                        **scope,
                        self._keys.role_id: role.id,
                        "status": UserRoleStatus.ACTIVE.value,
                        "created_at": now,
                        "updated_at": now,
                    }
                    for role in roles
                ],
            )
            return previous, created

        previous, records = await self._gateway.atomic(_replace)
        await self._emit(
            AuditAction.USER_ROLE_SYNC,
            self._models.user_roles,
            tenant_id=tenant.id,
            metadata={
                "user_id": user_id,
                "previous_role_ids": [str(p[self._keys.role_id]) for p in previous],
                "role_ids": [role.id for role in roles],
            },
        )
        assignments = [UserRoleResult.from_record(r, self._keys) for r in records]
        self._hook(
            HookEvent.AFTER_ROLE_SYNC,
            {**payload, "role_ids": [a.role_id for a in assignments]},
        )
        return assignments
