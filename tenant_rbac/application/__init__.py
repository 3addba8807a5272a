"""Application layer: interfaces, DTOs and services.

Depends only on domain, shared and protocol definitions (DIP). Infrastructure
implements the interfaces (adapters, caches, event sinks).
"""

from tenant_rbac.application.interfaces import ICacheService, IStorageAdapter
from tenant_rbac.application.services import (
    AuthorizationService,
    PermissionService,
    RoleService,
    StorageGateway,
    TenantService,
)

__all__ = [
    "AuthorizationService",
    "ICacheService",
    "IStorageAdapter",
    "PermissionService",
    "RoleService",
    "StorageGateway",
    "TenantService",
]
