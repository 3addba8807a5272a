"""Domain layer: exceptions describing business rule violations.

No dependencies on infrastructure. Used by application and infrastructure layers.
"""

from tenant_rbac.domain.exceptions import (
    AlreadyExistsException,
    ConfigurationException,
    DuplicateAssignmentException,
    FatalException,
    ForbiddenException,
    MissingConfiguredKeyError,
    PermissionNotFoundException,
    RbacException,
    ResourceNotFoundException,
    RoleNotFoundException,
    RolePermissionNotFoundException,
    TenantAlreadyExistsException,
    TenantNotFoundException,
    UserRoleNotFoundException,
    ValidationException,
)

__all__ = [
    "AlreadyExistsException",
    "ConfigurationException",
    "DuplicateAssignmentException",
    "FatalException",
    "ForbiddenException",
    "MissingConfiguredKeyError",
    "PermissionNotFoundException",
    "RbacException",
    "ResourceNotFoundException",
    "RoleNotFoundException",
    "RolePermissionNotFoundException",
    "TenantAlreadyExistsException",
    "TenantNotFoundException",
    "UserRoleNotFoundException",
    "ValidationException",
]
