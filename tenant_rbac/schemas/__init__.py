"""Payload schemas (pydantic) accepted by the services.

Services accept either these models or equivalent plain mappings.
"""

from tenant_rbac.schemas.base import parse_payload
from tenant_rbac.schemas.permission import PermissionCreate, PermissionUpdate
from tenant_rbac.schemas.role import RoleCreate, RoleUpdate
from tenant_rbac.schemas.tenant import TenantCreate, TenantUpdate

__all__ = [
    "PermissionCreate",
    "PermissionUpdate",
    "RoleCreate",
    "RoleUpdate",
    "TenantCreate",
    "TenantUpdate",
    "parse_payload",
]
