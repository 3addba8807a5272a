"""DTOs for role use cases (no dependency on adapter record shape)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from tenant_rbac.shared.utils.datetime import ensure_datetime

if TYPE_CHECKING:
    from tenant_rbac.application.dtos.permission import PermissionResult
    from tenant_rbac.core.rbac_config import KeyNames


@dataclass(frozen=True)
class RoleResult:
    """Role read-model (result of find, create, update, list)."""

    id: str
    tenant_id: str
    title: str
    slug: str
    description: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any], keys: KeyNames) -> RoleResult:
        """Build from an adapter record; the tenant FK field name comes from keys."""
        return cls(
            id=str(record["id"]),
            tenant_id=str(record[keys.tenant_id]),
            title=record["title"],
            slug=record["slug"],
            description=record.get("description"),
            is_active=bool(record.get("is_active", True)),
            created_at=ensure_datetime(record.get("created_at")),
            updated_at=ensure_datetime(record.get("updated_at")),
        )


@dataclass(frozen=True)
class RoleWithPermissions:
    """A role and the permissions reachable through its links."""

    role: RoleResult
    permissions: tuple[PermissionResult, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RolePermissionResult:
    """Role-permission link read-model."""

    id: str
    role_id: str
    permission_id: str
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any], keys: KeyNames) -> RolePermissionResult:
        return cls(
            id=str(record["id"]),
            role_id=str(record[keys.role_id]),
            permission_id=str(record[keys.permission_id]),
            created_at=ensure_datetime(record.get("created_at")),
        )
