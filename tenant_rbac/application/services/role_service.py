"""Role application service: tenant-scoped roles and their permission links."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING, Any

from tenant_rbac.application.dtos.permission import PermissionResult
from tenant_rbac.application.dtos.role import (
    RolePermissionResult,
    RoleResult,
    RoleWithPermissions,
)
from tenant_rbac.domain.exceptions import (
    AlreadyExistsException,
    RoleNotFoundException,
    RolePermissionNotFoundException,
)
from tenant_rbac.schemas.base import parse_payload
from tenant_rbac.schemas.role import RoleCreate, RoleUpdate
from tenant_rbac.shared.enums import AuditAction, HookEvent
from tenant_rbac.shared.telemetry import get_logger
from tenant_rbac.shared.utils.datetime import utc_now
from tenant_rbac.shared.utils.slugs import derive_slug
from tenant_rbac.shared.utils.validation import (
    assert_has_items,
    assert_non_empty_string,
    normalize_to_list,
)

if TYPE_CHECKING:
    from tenant_rbac.application.interfaces.services import IAuditTrail, IHookBus
    from tenant_rbac.application.services.storage_gateway import StorageGateway
    from tenant_rbac.application.services.tenant_service import TenantService
    from tenant_rbac.core.rbac_config import ResolvedRbacConfig

logger = get_logger(__name__)

RolePayload = RoleCreate | dict[str, Any]


def _unique_by_id(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    seen: set[Any] = set()
    out = []
    for record in records:
        if record["id"] not in seen:
            seen.add(record["id"])
            out.append(record)
    return out


class RoleService:
    """Roles belong to exactly one tenant; every lookup is tenant-scoped.

    Tenant existence is checked through TenantService, the only other service
    this one depends on.
    """

    def __init__(
        self,
        gateway: StorageGateway,
        config: ResolvedRbacConfig,
        tenant_service: TenantService,
        audit: IAuditTrail | None = None,
        hooks: IHookBus | None = None,
    ) -> None:
        self._gateway = gateway
        self._models = config.models
        self._keys = config.keys
        self._tenants = tenant_service
        self._audit = audit
        self._hooks = hooks

    async def _emit(self, action: AuditAction, **kwargs: Any) -> None:
        if self._audit is not None:
            await self._audit.emit(action, model=self._models.roles, **kwargs)

    def _hook(self, event: HookEvent, payload: dict[str, Any]) -> None:
        if self._hooks is not None:
            self._hooks.emit(event, payload)

    def _to_result(self, record: dict[str, Any]) -> RoleResult:
        return RoleResult.from_record(record, self._keys)

    async def _lookup(self, tenant_id: str, identifier: str) -> dict[str, Any] | None:
        """Slug first, then title, within tenant_id."""
        scope = {self._keys.tenant_id: tenant_id}
        record = await self._gateway.find_one(self._models.roles, {**scope, "slug": identifier})
        if record is None:
            record = await self._gateway.find_one(
                self._models.roles, {**scope, "title": identifier}
            )
        return record

    # Creation

    async def _find_or_create(
        self, tenant_id: str, payload: RolePayload, slug_case: bool
    ) -> RoleResult:
        data = parse_payload(RoleCreate, payload)
        slug = derive_slug(data.title, slug_case)
        scope = {self._keys.tenant_id: tenant_id}
        record = await self._gateway.find_one(self._models.roles, {**scope, "slug": slug})
        if record is None:
            record = await self._gateway.find_one(self._models.roles, {**scope, "title": data.title})
        if record is not None:
            return self._to_result(record)
        now = utc_now()
        record = await self._gateway.create(
            self._models.roles,
            {
                **scope,
                "title": data.title,
                "slug": slug,
                "description": data.description,
                "is_active": data.is_active,
                "created_at": now,
                "updated_at": now,
            },
        )
        await self._emit(
            AuditAction.ROLE_CREATE, tenant_id=tenant_id, record_id=record["id"], after=record
        )
        return self._to_result(record)

    async def create(
        self,
        tenant_slug_or_name: str,
        payload: RolePayload | list[RolePayload],
        slug_case: bool = True,
    ) -> RoleResult | list[RoleResult]:
        """Create roles in a tenant, returning existing ones instead of duplicating.

        Each item is matched on (tenant, slug) then (tenant, title). Items are
        processed in order; a list in gives a list out.

        Raises:
            TenantNotFoundException: tenant_slug_or_name does not resolve.
        """
        tenant = await self._tenants.find(tenant_slug_or_name)
        if isinstance(payload, list):
            return [await self._find_or_create(tenant.id, item, slug_case) for item in payload]
        return await self._find_or_create(tenant.id, payload, slug_case)

    async def upsert(
        self, tenant_slug_or_name: str, payload: RolePayload, slug_case: bool = True
    ) -> RoleResult:
        """Single-role variant of create."""
        tenant = await self._tenants.find(tenant_slug_or_name)
        return await self._find_or_create(tenant.id, payload, slug_case)

    async def update(
        self,
        tenant_id: str,
        role_id: str,
        payload: RoleUpdate | dict[str, Any],
        slug_case: bool = True,
    ) -> RoleResult:
        """Apply a partial update; the slug is re-derived from the new or current title.

        Raises:
            RoleNotFoundException: role_id is not in tenant_id.
            AlreadyExistsException: Another role of the tenant already has the
                resulting slug or title.
        """
        current = await self.find_by_id(tenant_id, role_id)
        changes = parse_payload(RoleUpdate, payload).model_dump(exclude_unset=True)
        title = changes.get("title") or current.title
        changes["slug"] = derive_slug(title, slug_case)
        await self._reject_taken(current, changes["slug"], title)
        changes["updated_at"] = utc_now()
        record = await self._gateway.update(self._models.roles, {"id": current.id}, changes)
        if record is None:
            raise RoleNotFoundException(role_id)
        await self._emit(
            AuditAction.ROLE_UPDATE,
            tenant_id=tenant_id,
            record_id=current.id,
            before=asdict(current),
            after=record,
        )
        return self._to_result(record)

    async def _reject_taken(self, current: RoleResult, slug: str, title: str) -> None:
        scope = {self._keys.tenant_id: current.tenant_id}
        for field, value in (("slug", slug), ("title", title)):
            matches = await self._gateway.find_many(self._models.roles, {**scope, field: value})
            if any(str(m["id"]) != current.id for m in matches):
                raise AlreadyExistsException(
                    value, resource_type="role", details_extra={"field": field}
                )

    # Lookups

    async def list(self, tenant_id: str) -> list[RoleResult]:
        """Return every role of the tenant.

        Raises:
            TenantNotFoundException: tenant_id does not exist.
        """
        tenant = await self._tenants.find_by_id(tenant_id)
        records = await self._gateway.find_many(
            self._models.roles, {self._keys.tenant_id: tenant.id}
        )
        return [self._to_result(r) for r in records]

    async def find(self, tenant_id: str, identifier: str) -> RoleResult:
        """Find a role in tenant_id by slug or title.

        Raises:
            RoleNotFoundException: No role matches in that tenant.
        """
        assert_non_empty_string(identifier, "identifier")
        record = await self._lookup(tenant_id, identifier)
        if record is None:
            raise RoleNotFoundException(identifier)
        return self._to_result(record)

    async def find_by_id(
        self, tenant_id: str, role_id: str, reject_if_not_found: bool = True
    ) -> RoleResult | None:
        record = await self._gateway.find_one(
            self._models.roles, {"id": role_id, self._keys.tenant_id: tenant_id}
        )
        if record is None:
            if reject_if_not_found:
                raise RoleNotFoundException(role_id)
            return None
        return self._to_result(record)

    async def find_by_name(
        self, tenant_id: str, identifier: str, reject_if_not_found: bool = True
    ) -> RoleResult | None:
        record = await self._lookup(tenant_id, identifier)
        if record is None:
            if reject_if_not_found:
                raise RoleNotFoundException(identifier)
            return None
        return self._to_result(record)

    async def find_many(self, tenant_id: str, identifiers: list[str]) -> list[RoleResult]:
        """Batch lookup by slug or title, de-duplicated by id.

        Raises:
            RoleNotFoundException: Nothing matched.
        """
        identifiers = normalize_to_list(identifiers)
        scope = {self._keys.tenant_id: tenant_id}
        by_slug = await self._gateway.find_many(self._models.roles, {**scope, "slug": identifiers})
        by_title = await self._gateway.find_many(
            self._models.roles, {**scope, "title": identifiers}
        )
        records = _unique_by_id(by_slug + by_title)
        if not records:
            raise RoleNotFoundException(", ".join(map(str, identifiers)))
        return [self._to_result(r) for r in records]

    async def resolve_all(self, tenant_id: str, identifiers: list[str]) -> list[RoleResult]:
        """Resolve every identifier (slug or title) in order, de-duplicated.

        Raises:
            RoleNotFoundException: Names the first identifier that does not resolve.
        """
        roles = await self.find_many(tenant_id, identifiers)
        index: dict[str, RoleResult] = {}
        for role in roles:
            index.setdefault(role.title, role)
            index[role.slug] = role
        resolved: dict[str, RoleResult] = {}
        for identifier in identifiers:
            role = index.get(identifier)
            if role is None:
                raise RoleNotFoundException(identifier)
            resolved.setdefault(role.id, role)
        return list(resolved.values())

    # Permission links

    async def _resolve_permissions(self, identifiers: list[str]) -> list[dict[str, Any]]:
        by_slug = await self._gateway.find_many(self._models.permissions, {"slug": identifiers})
        by_title = await self._gateway.find_many(self._models.permissions, {"title": identifiers})
        records = _unique_by_id(by_slug + by_title)
        if len(records) < len(set(identifiers)):
            found = {r["slug"] for r in records} | {r["title"] for r in records}
            logger.debug(
                "Dropping unknown permission identifiers: %s",
                sorted(set(identifiers) - found),
            )
        return records

    async def _grant(self, role: RoleResult, identifiers: list[str]) -> list[RolePermissionResult]:
        permissions = await self._resolve_permissions(identifiers)
        if not permissions:
            return []
        permission_ids = [p["id"] for p in permissions]
        existing = await self._gateway.find_many(
            self._models.role_permissions,
            {self._keys.role_id: role.id, self._keys.permission_id: permission_ids},
        )
        held = {str(link[self._keys.permission_id]) for link in existing}
        now = utc_now()
        rows = [
            {self._keys.role_id: role.id, self._keys.permission_id: pid, "created_at": now}
            for pid in permission_ids
            if str(pid) not in held
        ]
        created = await self._gateway.create_many(self._models.role_permissions, rows)
        return [RolePermissionResult.from_record(r, self._keys) for r in created]

    async def grant_permissions_to_role(
        self, tenant_id: str, role_slug: str, permission_identifiers: list[str]
    ) -> list[RolePermissionResult]:
        """Link permissions (by slug or title) to a role.

        Already-linked and unknown identifiers are skipped.

        Returns:
            The links created by this call.

        Raises:
            ValidationException: permission_identifiers is empty.
            TenantNotFoundException / RoleNotFoundException: Scope does not resolve.
        """
        identifiers = assert_has_items(
            normalize_to_list(permission_identifiers), "permission_identifiers"
        )
        tenant = await self._tenants.find_by_id(tenant_id)
        role = await self.find(tenant.id, role_slug)
        created = await self._grant(role, identifiers)
        await self._emit(
            AuditAction.ROLE_PERMISSIONS_GRANT,
            tenant_id=tenant.id,
            record_id=role.id,
            metadata={"permission_ids": [link.permission_id for link in created]},
        )
        return created

    async def sync_role_with_permissions(
        self, tenant_id: str, role_slug: str, permission_identifiers: list[str] | None
    ) -> list[RolePermissionResult]:
        """Replace every permission link of the role.

        Delete and re-grant run inside one adapter transaction when the adapter
        supports it. An empty list leaves the role with no permissions.
        """
        identifiers = normalize_to_list(permission_identifiers) if permission_identifiers else []
        tenant = await self._tenants.find_by_id(tenant_id)
        role = await self.find(tenant.id, role_slug)
        payload = {
            "tenant_id": tenant.id,
            "role_id": role.id,
            "permissions": list(identifiers),
        }
        self._hook(HookEvent.BEFORE_PERMISSION_SYNC, payload)

        async def _replace() -> list[RolePermissionResult]:
            await self._gateway.delete(
                self._models.role_permissions, {self._keys.role_id: role.id}
            )
            if not identifiers:
                return []
            return await self._grant(role, identifiers)

        links = await self._gateway.atomic(_replace)
        await self._emit(
            AuditAction.ROLE_PERMISSIONS_SYNC,
            tenant_id=tenant.id,
            record_id=role.id,
            metadata={"permission_ids": [link.permission_id for link in links]},
        )
        self._hook(
            HookEvent.AFTER_PERMISSION_SYNC,
            {**payload, "permission_ids": [link.permission_id for link in links]},
        )
        return links

    async def revoke_permissions_from_role(
        self, tenant_id: str, role_slug: str, permission_identifiers: list[str]
    ) -> int:
        """Remove links between the role and the given permissions; return the count removed."""
        identifiers = assert_has_items(
            normalize_to_list(permission_identifiers), "permission_identifiers"
        )
        tenant = await self._tenants.find_by_id(tenant_id)
        role = await self.find(tenant.id, role_slug)
        permissions = await self._resolve_permissions(identifiers)
        removed = await self._gateway.delete(
            self._models.role_permissions,
            {
                self._keys.role_id: role.id,
                self._keys.permission_id: [p["id"] for p in permissions],
            },
        )
        if removed:
            await self._emit(
                AuditAction.ROLE_PERMISSIONS_REVOKE,
                tenant_id=tenant.id,
                record_id=role.id,
                metadata={"removed": removed, "permissions": identifiers},
            )
        return removed

    async def find_role_permission(
        self, role_id: str, permission_id: str, reject_if_not_found: bool = True
    ) -> RolePermissionResult | None:
        record = await self._gateway.find_one(
            self._models.role_permissions,
            {self._keys.role_id: role_id, self._keys.permission_id: permission_id},
        )
        if record is None:
            if reject_if_not_found:
                raise RolePermissionNotFoundException(f"{role_id}/{permission_id}")
            return None
        return RolePermissionResult.from_record(record, self._keys)

    async def role_has_permission(self, role_id: str, permission_id: str) -> bool:
        return await self.find_role_permission(role_id, permission_id, False) is not None

    async def permissions_for_roles(
        self, roles: list[RoleResult]
    ) -> list[RoleWithPermissions]:
        """Attach linked permissions to each role (one links query and one permissions query per role)."""
        out = []
        for role in roles:
            links = await self._gateway.find_many(
                self._models.role_permissions, {self._keys.role_id: role.id}
            )
            permissions = await self._gateway.find_many(
                self._models.permissions,
                {"id": [link[self._keys.permission_id] for link in links]},
            )
            out.append(
                RoleWithPermissions(
                    role=role,
                    permissions=tuple(PermissionResult.from_record(p) for p in permissions),
                )
            )
        return out

    async def delete(self, tenant_id: str, role_id: str) -> RoleResult:
        """Delete the role and return it. Links and assignments are not cascaded."""
        role = await self.find_by_id(tenant_id, role_id)
        await self._gateway.delete(self._models.roles, {"id": role.id})
        await self._emit(
            AuditAction.ROLE_DELETE, tenant_id=tenant_id, record_id=role.id, before=asdict(role)
        )
        return role
