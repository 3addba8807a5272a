"""Service interfaces (ports) for the application layer.

Protocols define contracts for the cache and the event sinks the services
publish to (DIP).
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Protocol

from tenant_rbac.shared.enums import AuditAction, HookEvent

if TYPE_CHECKING:
    from tenant_rbac.infrastructure.events.audit_trail import AuditEvent


# Cache service interface
class ICacheService(Protocol):
    """Minimal cache protocol for effective-permission caching (DIP)."""

    def is_available(self) -> bool:
        """Return True if cache is connected."""

    async def get(self, key: str) -> Any:
        """Return cached value or None."""

    async def set(self, key: str, value: Any, ttl: int = 30) -> bool:
        """Store value with TTL. Returns True on success."""

    async def delete(self, key: str) -> bool:
        """Delete key. Returns True on success."""

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching pattern. Returns count deleted."""

    async def clear_all(self) -> bool:
        """Drop every key owned by this cache. Returns True on success."""


AuditHandler = Callable[["AuditEvent"], Awaitable[None] | None]
HookListener = Callable[[dict[str, Any]], Awaitable[None] | None]


# Audit sink interface
class IAuditTrail(Protocol):
    """Protocol for emitting audit events after successful mutations."""

    async def emit(
        self,
        action: AuditAction,
        *,
        tenant_id: str | None = None,
        model: str | None = None,
        record_id: str | None = None,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Deliver one event to every registered handler; never raises."""


# Hook bus interface
class IHookBus(Protocol):
    """Protocol for publishing lifecycle hook events."""

    def emit(self, event: HookEvent, payload: dict[str, Any]) -> None:
        """Notify listeners of event; never raises."""
