"""Shared utilities: actor context, enums, telemetry, and cross-cutting helpers.

Used by domain, application, and infrastructure. No business logic.
"""

from tenant_rbac.shared.context import (
    ActorContext,
    acting_as,
    clear_current_actor,
    get_actor_context,
    get_current_actor_id,
    get_current_actor_type,
    set_current_actor,
)
from tenant_rbac.shared.enums import ActorType, AuditAction, HookEvent, UserRoleStatus
from tenant_rbac.shared.utils import (
    ensure_datetime,
    ensure_utc,
    generate_cuid,
    to_slug_case,
    to_slug_case_with_underscores,
    utc_now,
)

__all__ = [
    "set_current_actor",
    "acting_as",
    "clear_current_actor",
    "get_current_actor_id",
    "get_current_actor_type",
    "get_actor_context",
    "ActorContext",
    "ActorType",
    "AuditAction",
    "HookEvent",
    "UserRoleStatus",
    "generate_cuid",
    "utc_now",
    "ensure_utc",
    "ensure_datetime",
    "to_slug_case",
    "to_slug_case_with_underscores",
]
