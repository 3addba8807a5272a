"""tenant-rbac: storage-agnostic multi-tenant role-based access control.

Resolves tenants -> roles -> permissions through user-role and role-permission
assignments held in a host-provided storage adapter.
"""

from tenant_rbac.core.config import Settings, get_settings
from tenant_rbac.core.context import RbacContext
from tenant_rbac.core.rbac_config import KeyNames, ModelNames, RbacConfig, resolve_rbac_config
from tenant_rbac.domain.exceptions import (
    AlreadyExistsException,
    ConfigurationException,
    DuplicateAssignmentException,
    FatalException,
    ForbiddenException,
    MissingConfiguredKeyError,
    RbacException,
    ResourceNotFoundException,
    ValidationException,
)
from tenant_rbac.infrastructure.adapters import InMemoryAdapter, SqlAlchemyAdapter
from tenant_rbac.keyed import KeyedRBAC, create_keyed_rbac
from tenant_rbac.rbac import MultiTenantRBAC, create_rbac
from tenant_rbac.shared.enums import AuditAction, HookEvent, UserRoleStatus

__version__ = "1.0.0"

__all__ = [
    "AlreadyExistsException",
    "AuditAction",
    "ConfigurationException",
    "DuplicateAssignmentException",
    "FatalException",
    "ForbiddenException",
    "HookEvent",
    "InMemoryAdapter",
    "KeyNames",
    "KeyedRBAC",
    "MissingConfiguredKeyError",
    "ModelNames",
    "MultiTenantRBAC",
    "RbacConfig",
    "RbacContext",
    "RbacException",
    "ResourceNotFoundException",
    "Settings",
    "SqlAlchemyAdapter",
    "UserRoleStatus",
    "ValidationException",
    "create_keyed_rbac",
    "create_rbac",
    "get_settings",
    "resolve_rbac_config",
]
