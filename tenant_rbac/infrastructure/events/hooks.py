"""Hook bus: named lifecycle events with sync or async listeners.

Coroutine listeners are scheduled as tasks so hook work never blocks the
mutation that emitted the event; drain() awaits the outstanding ones.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from tenant_rbac.application.interfaces.services import HookListener
from tenant_rbac.shared.enums import HookEvent

logger = logging.getLogger(__name__)


class HookBus:
    """Per-context publish/subscribe for HookEvent."""

    def __init__(self) -> None:
        self._listeners: dict[HookEvent, list[HookListener]] = defaultdict(list)
        self._pending: set[asyncio.Task[Any]] = set()

    def subscribe(self, event: HookEvent | str, listener: HookListener) -> Callable[[], None]:
        """Register listener for event.

        Returns:
            Callable that unsubscribes this listener.
        """
        hook = HookEvent(event)
        self._listeners[hook].append(listener)
        return lambda: self.unsubscribe(hook, listener)

    def unsubscribe(self, event: HookEvent | str, listener: HookListener) -> None:
        listeners = self._listeners.get(HookEvent(event), [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event: HookEvent | str) -> int:
        return len(self._listeners.get(HookEvent(event), []))

    def emit(self, event: HookEvent, payload: dict[str, Any]) -> None:
        """Notify every listener of event with a copy of payload. Never raises."""
        for listener in list(self._listeners.get(event, [])):
            try:
                result = listener(dict(payload))
            except Exception:
                logger.exception("Hook listener failed for %s", event.value)
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(self._on_done(event))

    def _on_done(self, event: HookEvent) -> Callable[[asyncio.Task[Any]], None]:
        def _callback(task: asyncio.Task[Any]) -> None:
            self._pending.discard(task)
            if task.cancelled():
                return
            exc = task.exception()
            if exc is not None:
                logger.error("Async hook listener failed for %s: %s", event.value, exc, exc_info=exc)

        return _callback

    async def drain(self) -> None:
        """Wait for every scheduled async listener (shutdown, tests)."""
        while self._pending:
            batch = list(self._pending)
            await asyncio.gather(*batch, return_exceptions=True)
            self._pending.difference_update(batch)
