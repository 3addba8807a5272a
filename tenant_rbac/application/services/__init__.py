"""Application services: storage gateway, domain services and authorization."""

from tenant_rbac.application.services.authorization_service import AuthorizationService
from tenant_rbac.application.services.permission_service import PermissionService
from tenant_rbac.application.services.role_service import RoleService
from tenant_rbac.application.services.storage_gateway import StorageGateway
from tenant_rbac.application.services.tenant_service import TenantService

__all__ = [
    "AuthorizationService",
    "PermissionService",
    "RoleService",
    "StorageGateway",
    "TenantService",
]
