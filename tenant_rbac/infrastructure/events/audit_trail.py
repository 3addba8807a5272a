"""Audit trail: fans audit events out to host-registered handlers.

Owned by one RbacContext (no class-level handler list). Services emit after a
mutation succeeded; a failing handler is logged and skipped so an audit sink
can never turn a successful mutation into a failure.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from tenant_rbac.application.interfaces.services import AuditHandler
from tenant_rbac.shared.context import get_current_actor_id
from tenant_rbac.shared.enums import AuditAction
from tenant_rbac.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditEvent:
    """One audited mutation."""

    action: AuditAction
    timestamp: datetime
    tenant_id: str | None = None
    actor_id: str | None = None
    model: str | None = None
    record_id: str | None = None
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


def _sanitize(data: dict[str, Any] | None) -> dict[str, Any] | None:
    """Flatten a record or DTO dict for handlers: datetimes -> ISO, enums -> value."""
    if data is None:
        return None
    out: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, datetime):
            out[key] = value.isoformat()
        elif isinstance(value, Enum):
            out[key] = value.value
        else:
            out[key] = value
    return out


class AuditTrail:
    """Registry of audit handlers for one RBAC instance."""

    def __init__(self) -> None:
        self._handlers: list[AuditHandler] = []
        self._pending: set[asyncio.Task[Any]] = set()

    @property
    def handlers(self) -> tuple[AuditHandler, ...]:
        return tuple(self._handlers)

    def register(self, handler: AuditHandler) -> None:
        """Add handler; it receives every AuditEvent emitted afterwards."""
        self._handlers.append(handler)

    def unregister(self, handler: AuditHandler) -> None:
        """Remove handler if registered."""
        if handler in self._handlers:
            self._handlers.remove(handler)

    def clear(self) -> None:
        self._handlers.clear()

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
        """Build an AuditEvent and hand it to every handler in registration order.

        actor_id is read from the current actor context; timestamp is UTC now.
        Sync handlers run inline; coroutine handlers are scheduled as tasks so a
        slow sink never delays the mutation (drain() awaits them). Exceptions
        are logged, never raised.
        """
        if not self._handlers:
            return
        event = AuditEvent(
            action=action,
            timestamp=utc_now(),
            tenant_id=tenant_id,
            actor_id=get_current_actor_id(),
            model=model,
            record_id=record_id,
            before=_sanitize(before),
            after=_sanitize(after),
            metadata=dict(metadata or {}),
        )
        for handler in list(self._handlers):
            try:
                result = handler(event)
            except Exception:
                logger.exception("Audit handler failed for action %s", action.value)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(self._on_done(action))

    def _on_done(self, action: AuditAction) -> Callable[[asyncio.Task[Any]], None]:
        def _callback(task: asyncio.Task[Any]) -> None:
            self._pending.discard(task)
            if task.cancelled():
                return
            exc = task.exception()
            if exc is not None:
                logger.error(
                    "Async audit handler failed for action %s: %s", action.value, exc, exc_info=exc
                )

        return _callback

    async def drain(self) -> None:
        """Wait for every scheduled async handler (shutdown, tests)."""
        while self._pending:
            batch = list(self._pending)
            await asyncio.gather(*batch, return_exceptions=True)
            self._pending.difference_update(batch)
