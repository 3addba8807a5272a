"""Application DTOs (frozen read-models built from adapter records)."""

from tenant_rbac.application.dtos.permission import PermissionResult
from tenant_rbac.application.dtos.role import (
    RolePermissionResult,
    RoleResult,
    RoleWithPermissions,
)
from tenant_rbac.application.dtos.tenant import TenantResult, TenantWithRoles
from tenant_rbac.application.dtos.user_role import (
    UserPermissionsView,
    UserRoleResult,
    UserRolesAndPermissionsView,
    UserRolesView,
)

__all__ = [
    "PermissionResult",
    "RolePermissionResult",
    "RoleResult",
    "RoleWithPermissions",
    "TenantResult",
    "TenantWithRoles",
    "UserPermissionsView",
    "UserRoleResult",
    "UserRolesAndPermissionsView",
    "UserRolesView",
]
