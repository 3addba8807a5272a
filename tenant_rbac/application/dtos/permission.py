"""DTOs for permission use cases (no dependency on adapter record shape)."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from tenant_rbac.shared.utils.datetime import ensure_datetime


@dataclass(frozen=True)
class PermissionResult:
    """Permission read-model. Permissions are global (not tenant-scoped)."""

    id: str
    title: str
    slug: str
    description: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> PermissionResult:
        return cls(
            id=str(record["id"]),
            title=record["title"],
            slug=record["slug"],
            description=record.get("description"),
            is_active=bool(record.get("is_active", True)),
            created_at=ensure_datetime(record.get("created_at")),
            updated_at=ensure_datetime(record.get("updated_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain dict for caching (datetimes stay datetimes; JSON caches encode them)."""
        return asdict(self)
