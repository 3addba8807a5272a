"""DTOs for user-role assignment use cases."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from tenant_rbac.shared.enums import UserRoleStatus
from tenant_rbac.shared.utils.datetime import ensure_datetime

if TYPE_CHECKING:
    from tenant_rbac.application.dtos.permission import PermissionResult
    from tenant_rbac.application.dtos.role import RoleResult, RoleWithPermissions
    from tenant_rbac.core.rbac_config import KeyNames


@dataclass(frozen=True)
class UserRoleResult:
    """User-role assignment read-model. user_id is an opaque host identity."""

    id: str
    user_id: str
    tenant_id: str
    role_id: str
    status: UserRoleStatus = UserRoleStatus.ACTIVE
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any], keys: KeyNames) -> UserRoleResult:
        return cls(
            id=str(record["id"]),
            user_id=str(record[keys.user_id]),
            tenant_id=str(record[keys.tenant_id]),
            role_id=str(record[keys.role_id]),
            status=UserRoleStatus(record.get("status") or UserRoleStatus.ACTIVE.value),
            created_at=ensure_datetime(record.get("created_at")),
            updated_at=ensure_datetime(record.get("updated_at")),
        )


@dataclass(frozen=True)
class UserRolesView:
    """Roles a user holds in one tenant."""

    tenant_id: str
    user_id: str
    roles: tuple[RoleResult, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class UserPermissionsView:
    """De-duplicated permissions a user reaches in one tenant."""

    tenant_id: str
    user_id: str
    permissions: tuple[PermissionResult, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class UserRolesAndPermissionsView:
    """Roles a user holds in one tenant, each with its permissions."""

    tenant_id: str
    user_id: str
    roles: tuple[RoleWithPermissions, ...] = field(default_factory=tuple)
