"""DTOs for tenant use cases (no dependency on adapter record shape)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from tenant_rbac.shared.utils.datetime import ensure_datetime

if TYPE_CHECKING:
    from tenant_rbac.application.dtos.role import RoleWithPermissions


@dataclass(frozen=True)
class TenantResult:
    """Tenant read-model (result of find, create, update, delete)."""

    id: str
    name: str
    slug: str
    description: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> TenantResult:
        return cls(
            id=str(record["id"]),
            name=record["name"],
            slug=record["slug"],
            description=record.get("description"),
            is_active=bool(record.get("is_active", True)),
            created_at=ensure_datetime(record.get("created_at")),
            updated_at=ensure_datetime(record.get("updated_at")),
        )


@dataclass(frozen=True)
class TenantWithRoles:
    """Administrative tree: tenant, its active roles, each with its permissions."""

    tenant: TenantResult
    roles: tuple[RoleWithPermissions, ...] = field(default_factory=tuple)
