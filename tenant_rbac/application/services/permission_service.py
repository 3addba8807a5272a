"""Permission application service: global permission catalog CRUD, upsert and seeding."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING, Any

from tenant_rbac.application.dtos.permission import PermissionResult
from tenant_rbac.domain.exceptions import PermissionNotFoundException
from tenant_rbac.schemas.base import parse_payload
from tenant_rbac.schemas.permission import PermissionCreate, PermissionUpdate
from tenant_rbac.shared.enums import AuditAction
from tenant_rbac.shared.telemetry import get_logger
from tenant_rbac.shared.utils.datetime import utc_now
from tenant_rbac.shared.utils.slugs import derive_slug
from tenant_rbac.shared.utils.validation import assert_non_empty_string

if TYPE_CHECKING:
    from tenant_rbac.application.interfaces.services import IAuditTrail
    from tenant_rbac.application.services.storage_gateway import StorageGateway
    from tenant_rbac.core.rbac_config import ResolvedRbacConfig

logger = get_logger(__name__)

PermissionPayload = PermissionCreate | dict[str, Any]


class PermissionService:
    """Create, look up, update and delete permissions. Permissions are not tenant-scoped."""

    def __init__(
        self,
        gateway: StorageGateway,
        config: ResolvedRbacConfig,
        audit: IAuditTrail | None = None,
    ) -> None:
        self._gateway = gateway
        self._model = config.models.permissions
        self._audit = audit

    async def _emit(self, action: AuditAction, **kwargs: Any) -> None:
        if self._audit is not None:
            await self._audit.emit(action, model=self._model, **kwargs)

    async def _create_one(self, payload: PermissionPayload, slug_case: bool) -> PermissionResult:
        data = parse_payload(PermissionCreate, payload)
        now = utc_now()
        record = await self._gateway.create(
            self._model,
            {
                "title": data.title,
                "slug": derive_slug(data.title, slug_case),
                "description": data.description,
                "is_active": data.is_active,
                "created_at": now,
                "updated_at": now,
            },
        )
        created = PermissionResult.from_record(record)
        await self._emit(AuditAction.PERMISSION_CREATE, record_id=created.id, after=record)
        return created

    async def create(
        self,
        payload: PermissionPayload | list[PermissionPayload],
        slug_case: bool = True,
    ) -> PermissionResult | list[PermissionResult]:
        """Create one permission, or one per item when given a list.

        No existence check: the global slug uniqueness is the adapter's to
        enforce. Use upsert / ensure_many for idempotent seeding.
        """
        if isinstance(payload, list):
            return [await self._create_one(item, slug_case) for item in payload]
        return await self._create_one(payload, slug_case)

    async def upsert(self, payload: PermissionPayload, slug_case: bool = True) -> PermissionResult:
        """Return the permission with the derived slug (or same title); create it otherwise."""
        data = parse_payload(PermissionCreate, payload)
        slug = derive_slug(data.title, slug_case)
        record = await self._gateway.find_one(self._model, {"slug": slug})
        if record is None:
            record = await self._gateway.find_one(self._model, {"title": data.title})
        if record is not None:
            return PermissionResult.from_record(record)
        return await self._create_one(data, slug_case)

    async def ensure_many(
        self, payloads: list[PermissionPayload], slug_case: bool = True
    ) -> list[PermissionResult]:
        """Upsert each payload in order (catalog seeding at start-up)."""
        return [await self.upsert(item, slug_case) for item in payloads]

    async def update(
        self,
        permission_id: str,
        payload: PermissionUpdate | dict[str, Any],
        slug_case: bool = True,
    ) -> PermissionResult:
        """Apply a partial update; a new title re-derives the slug.

        Raises:
            PermissionNotFoundException: permission_id does not exist.
        """
        current = await self.find_by_id(permission_id)
        changes = parse_payload(PermissionUpdate, payload).model_dump(exclude_unset=True)
        if changes.get("title"):
            changes["slug"] = derive_slug(changes["title"], slug_case)
        changes["updated_at"] = utc_now()
        record = await self._gateway.update(self._model, {"id": current.id}, changes)
        if record is None:
            raise PermissionNotFoundException(permission_id)
        await self._emit(
            AuditAction.PERMISSION_UPDATE,
            record_id=current.id,
            before=asdict(current),
            after=record,
        )
        return PermissionResult.from_record(record)

    async def find(self, identifier: str) -> PermissionResult:
        """Find an active permission by slug, then by title.

        Raises:
            PermissionNotFoundException: No active permission matches.
        """
        assert_non_empty_string(identifier, "identifier")
        record = await self._gateway.find_one(self._model, {"slug": identifier, "is_active": True})
        if record is None:
            record = await self._gateway.find_one(
                self._model, {"title": identifier, "is_active": True}
            )
        if record is None:
            raise PermissionNotFoundException(identifier)
        return PermissionResult.from_record(record)

    async def find_by_id(
        self, permission_id: str, reject_if_not_found: bool = True
    ) -> PermissionResult | None:
        record = await self._gateway.find_one(self._model, {"id": permission_id})
        if record is None:
            if reject_if_not_found:
                raise PermissionNotFoundException(permission_id)
            return None
        return PermissionResult.from_record(record)

    async def list(self) -> list[PermissionResult]:
        """Return all active permissions."""
        records = await self._gateway.find_many(self._model, {"is_active": True})
        return [PermissionResult.from_record(r) for r in records]

    async def delete(self, identifier: str) -> PermissionResult:
        """Delete the active permission matching identifier and return it.

        Links pointing at it are left in place; effective-permission reads
        skip them because the permission row is gone.
        """
        permission = await self.find(identifier)
        await self._gateway.delete(self._model, {"id": permission.id})
        await self._emit(AuditAction.PERMISSION_DELETE, record_id=permission.id, before=asdict(permission))
        logger.info("Permission deleted: %s", permission.slug)
        return permission
