"""Shared enumerations for the RBAC core.

Cross-cutting enums used by application and infrastructure (audit actions,
hook events, actor type, assignment status).
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class ActorType(_ValuesMixin, str, Enum):
    """Actor type for audit tracking (who performed the action)."""

    USER = "user"
    SYSTEM = "system"
    EXTERNAL = "external"


class UserRoleStatus(_ValuesMixin, str, Enum):
    """Lifecycle status of a user-role assignment."""

    PENDING = "pending"
    ACTIVE = "active"


class AuditAction(_ValuesMixin, str, Enum):
    """Audit action types emitted by the services."""

    TENANT_CREATE = "tenant.create"
    TENANT_UPDATE = "tenant.update"
    TENANT_DELETE = "tenant.delete"
    ROLE_CREATE = "role.create"
    ROLE_UPDATE = "role.update"
    ROLE_DELETE = "role.delete"
    ROLE_PERMISSIONS_GRANT = "role.permissions.grant"
    ROLE_PERMISSIONS_REVOKE = "role.permissions.revoke"
    ROLE_PERMISSIONS_SYNC = "role.permissions.sync"
    USER_ROLE_ASSIGN = "user.role.assign"
    USER_ROLE_REVOKE = "user.role.revoke"
    USER_ROLE_SYNC = "user.role.sync"
    PERMISSION_CREATE = "permission.create"
    PERMISSION_UPDATE = "permission.update"
    PERMISSION_DELETE = "permission.delete"


class HookEvent(_ValuesMixin, str, Enum):
    """Named lifecycle events published on the hook bus."""

    BEFORE_ROLE_ASSIGN = "before_role_assign"
    AFTER_ROLE_ASSIGN = "after_role_assign"
    BEFORE_ROLE_SYNC = "before_role_sync"
    AFTER_ROLE_SYNC = "after_role_sync"
    BEFORE_PERMISSION_SYNC = "before_permission_sync"
    AFTER_PERMISSION_SYNC = "after_permission_sync"
