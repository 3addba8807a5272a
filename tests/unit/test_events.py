"""Tests for the audit trail and the hook bus."""

import asyncio
import logging

import pytest

from tenant_rbac.infrastructure.events import AuditEvent, AuditTrail, HookBus
from tenant_rbac.shared.context import clear_current_actor, set_current_actor
from tenant_rbac.shared.enums import AuditAction, HookEvent, UserRoleStatus
from tenant_rbac.shared.utils.datetime import utc_now


async def test_audit_emit_without_handlers_is_noop() -> None:
    await AuditTrail().emit(AuditAction.TENANT_CREATE, tenant_id="t1")


async def test_audit_event_carries_actor_and_sanitized_payload() -> None:
    """Datetimes become ISO strings, enums their values; actor comes from context."""
    trail = AuditTrail()
    events: list[AuditEvent] = []
    trail.register(events.append)
    now = utc_now()
    set_current_actor("admin-1")
    try:
        await trail.emit(
            AuditAction.USER_ROLE_ASSIGN,
            tenant_id="t1",
            model="user_roles",
            record_id="ur1",
            after={"status": UserRoleStatus.ACTIVE, "created_at": now},
            metadata={"user_id": "u1"},
        )
    finally:
        clear_current_actor()
    (event,) = events
    assert event.action is AuditAction.USER_ROLE_ASSIGN
    assert event.actor_id == "admin-1"
    assert event.after == {"status": "active", "created_at": now.isoformat()}
    assert event.before is None
    assert event.metadata == {"user_id": "u1"}


async def test_audit_handler_failure_is_isolated(caplog: pytest.LogCaptureFixture) -> None:
    """A failing handler is logged; later handlers still run."""
    trail = AuditTrail()
    seen: list[str] = []

    def broken(event: AuditEvent) -> None:
        raise RuntimeError("sink down")

    async def recorder(event: AuditEvent) -> None:
        seen.append(event.action.value)

    trail.register(broken)
    trail.register(recorder)
    with caplog.at_level(logging.ERROR):
        await trail.emit(AuditAction.ROLE_DELETE)
        await trail.drain()
    assert seen == ["role.delete"]
    assert "Audit handler failed" in caplog.text


async def test_async_audit_handler_does_not_block_emit(caplog: pytest.LogCaptureFixture) -> None:
    """emit returns while a slow async sink is still running; drain waits for it."""
    trail = AuditTrail()
    release = asyncio.Event()
    delivered: list[AuditEvent] = []

    async def slow_sink(event: AuditEvent) -> None:
        await release.wait()
        delivered.append(event)

    async def failing_sink(event: AuditEvent) -> None:
        raise RuntimeError("sink down")

    trail.register(slow_sink)
    trail.register(failing_sink)
    await asyncio.wait_for(trail.emit(AuditAction.USER_ROLE_SYNC, tenant_id="t1"), timeout=1)
    assert delivered == []

    release.set()
    with caplog.at_level(logging.ERROR):
        await trail.drain()
    assert [e.tenant_id for e in delivered] == ["t1"]
    assert "Async audit handler failed" in caplog.text


async def test_audit_unregister_and_clear() -> None:
    trail = AuditTrail()
    handler = lambda event: None  # noqa: E731
    trail.register(handler)
    trail.unregister(handler)
    assert trail.handlers == ()
    trail.register(handler)
    trail.clear()
    assert trail.handlers == ()


async def test_hook_sync_listener_receives_payload_copy() -> None:
    bus = HookBus()
    received: list[dict] = []

    def listener(payload: dict) -> None:
        payload["mutated"] = True
        received.append(payload)

    bus.subscribe(HookEvent.BEFORE_ROLE_ASSIGN, listener)
    original = {"tenant_id": "t1"}
    bus.emit(HookEvent.BEFORE_ROLE_ASSIGN, original)
    assert received == [{"tenant_id": "t1", "mutated": True}]
    assert original == {"tenant_id": "t1"}


async def test_hook_async_listener_runs_after_drain() -> None:
    bus = HookBus()
    done = asyncio.Event()

    async def listener(payload: dict) -> None:
        await asyncio.sleep(0)
        done.set()

    bus.subscribe("after_role_sync", listener)
    bus.emit(HookEvent.AFTER_ROLE_SYNC, {})
    await bus.drain()
    assert done.is_set()


async def test_hook_failures_never_propagate(caplog: pytest.LogCaptureFixture) -> None:
    bus = HookBus()
    calls: list[str] = []

    def broken(payload: dict) -> None:
        raise ValueError("sync failure")

    async def broken_async(payload: dict) -> None:
        raise ValueError("async failure")

    bus.subscribe(HookEvent.AFTER_ROLE_ASSIGN, broken)
    bus.subscribe(HookEvent.AFTER_ROLE_ASSIGN, broken_async)
    bus.subscribe(HookEvent.AFTER_ROLE_ASSIGN, lambda payload: calls.append("ok"))
    with caplog.at_level(logging.ERROR):
        bus.emit(HookEvent.AFTER_ROLE_ASSIGN, {})
        await bus.drain()
    assert calls == ["ok"]
    assert "Hook listener failed" in caplog.text
    assert "Async hook listener failed" in caplog.text


async def test_hook_unsubscribe() -> None:
    bus = HookBus()
    calls: list[dict] = []
    unsubscribe = bus.subscribe(HookEvent.BEFORE_PERMISSION_SYNC, calls.append)
    assert bus.listener_count(HookEvent.BEFORE_PERMISSION_SYNC) == 1
    unsubscribe()
    bus.emit(HookEvent.BEFORE_PERMISSION_SYNC, {})
    assert calls == []
    assert bus.listener_count("before_permission_sync") == 0


def test_hook_unknown_event_rejected() -> None:
    with pytest.raises(ValueError):
        HookBus().subscribe("on_login", lambda payload: None)
