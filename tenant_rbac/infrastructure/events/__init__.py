"""Event sinks: audit trail and lifecycle hooks."""

from tenant_rbac.infrastructure.events.audit_trail import AuditEvent, AuditTrail
from tenant_rbac.infrastructure.events.hooks import HookBus

__all__ = ["AuditEvent", "AuditTrail", "HookBus"]
