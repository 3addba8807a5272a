"""Tests for StorageGateway capability detection, fallbacks and error wrapping."""

import copy
from typing import Any
from unittest.mock import AsyncMock

import pytest

from tenant_rbac.application.services.storage_gateway import StorageGateway
from tenant_rbac.domain.exceptions import AlreadyExistsException, FatalException
from tenant_rbac.infrastructure.adapters import InMemoryAdapter


class BaseOnlyAdapter(InMemoryAdapter):
    """Base tier only: create_many is hidden so the gateway falls back."""

    create_many = None  # type: ignore[assignment]

    def __init__(self) -> None:
        super().__init__()
        self.created: list[str] = []

    async def create(self, model: str, data: dict[str, Any]) -> dict[str, Any]:
        if data.get("title") == "boom":
            raise RuntimeError("insert failed")
        self.created.append(data["title"])
        return await super().create(model, data)


class CallbackTxAdapter(InMemoryAdapter):
    """Adapter with with_transaction that snapshots and restores its store."""

    def __init__(self) -> None:
        super().__init__()
        self.transactions = 0

    async def with_transaction(self, fn):
        self.transactions += 1
        snapshot = copy.deepcopy(dict(self._store))
        try:
            return await fn()
        except BaseException:
            self._store.clear()
            self._store.update(snapshot)
            raise


class ExplicitTxAdapter(InMemoryAdapter):
    """Adapter with the begin/commit/rollback triad."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple[str, Any]] = []

    async def begin_transaction(self) -> str:
        self.calls.append(("begin", None))
        return "tx-1"

    async def commit_transaction(self, tx: str) -> None:
        self.calls.append(("commit", tx))

    async def rollback_transaction(self, tx: str) -> None:
        self.calls.append(("rollback", tx))


def test_capability_detection() -> None:
    assert StorageGateway(InMemoryAdapter()).supports_bulk is True
    assert StorageGateway(InMemoryAdapter()).supports_transactions is False
    assert StorageGateway(BaseOnlyAdapter()).supports_bulk is False
    assert StorageGateway(CallbackTxAdapter()).supports_transactions is True
    assert StorageGateway(ExplicitTxAdapter()).supports_transactions is True


async def test_create_many_falls_back_to_sequential_creates() -> None:
    """Without create_many, rows are created one at a time in input order."""
    adapter = BaseOnlyAdapter()
    gateway = StorageGateway(adapter)
    rows = await gateway.create_many("roles", [{"title": "a"}, {"title": "b"}, {"title": "c"}])
    assert [r["title"] for r in rows] == ["a", "b", "c"]
    assert adapter.created == ["a", "b", "c"]


async def test_create_many_fallback_stops_at_first_failure() -> None:
    adapter = BaseOnlyAdapter()
    gateway = StorageGateway(adapter)
    with pytest.raises(FatalException):
        await gateway.create_many("roles", [{"title": "a"}, {"title": "boom"}, {"title": "c"}])
    assert adapter.created == ["a"]


async def test_create_many_empty_is_noop() -> None:
    adapter = InMemoryAdapter()
    adapter.create_many = AsyncMock()
    assert await StorageGateway(adapter).create_many("roles", []) == []
    adapter.create_many.assert_not_awaited()


async def test_empty_membership_short_circuits() -> None:
    """A where clause with an empty list matches nothing and never hits the adapter."""
    adapter = AsyncMock()
    gateway = StorageGateway(adapter)
    assert await gateway.find_many("roles", {"id": []}) == []
    assert await gateway.delete("roles", {"id": []}) == 0
    adapter.find_many.assert_not_awaited()
    adapter.delete.assert_not_awaited()


async def test_update_rereads_by_id() -> None:
    """The returned record is re-read, not the adapter's own update result."""
    adapter = InMemoryAdapter()
    gateway = StorageGateway(adapter)
    created = await gateway.create("roles", {"title": "Editor", "slug": "editor"})
    real_update = InMemoryAdapter.update

    async def _update(model: str, where: dict, data: dict):
        await real_update(adapter, model, where, data)
        return {"stale": True}

    adapter.update = _update
    updated = await gateway.update("roles", {"slug": "editor"}, {"title": "Writer"})
    assert updated == {"id": created["id"], "title": "Writer", "slug": "editor"}


async def test_update_missing_record_returns_none() -> None:
    gateway = StorageGateway(InMemoryAdapter())
    assert await gateway.update("roles", {"slug": "ghost"}, {"title": "x"}) is None


async def test_raw_adapter_error_is_wrapped_as_fatal() -> None:
    adapter = AsyncMock()
    adapter.find_one.side_effect = ConnectionError("db down")
    gateway = StorageGateway(adapter)
    with pytest.raises(FatalException) as exc_info:
        await gateway.find_one("tenants", {"id": "t1"})
    assert exc_info.value.details["operation"] == "find_one"
    assert exc_info.value.details["model"] == "tenants"
    assert isinstance(exc_info.value.__cause__, ConnectionError)


async def test_rbac_exception_from_adapter_passes_through() -> None:
    adapter = AsyncMock()
    adapter.create.side_effect = AlreadyExistsException("dup", resource_type="roles")
    with pytest.raises(AlreadyExistsException):
        await StorageGateway(adapter).create("roles", {"title": "dup"})


async def test_atomic_uses_with_transaction_and_rolls_back() -> None:
    adapter = CallbackTxAdapter()
    gateway = StorageGateway(adapter)
    await gateway.create("roles", {"title": "keep"})

    async def _fail() -> None:
        await gateway.create("roles", {"title": "discard"})
        raise ValueError("abort")

    with pytest.raises(ValueError):
        await gateway.atomic(_fail)
    assert adapter.transactions == 1
    assert [r["title"] for r in await gateway.find_many("roles")] == ["keep"]


async def test_atomic_with_transaction_failure_is_fatal() -> None:
    """An error from the transaction machinery itself is wrapped."""
    adapter = InMemoryAdapter()
    adapter.with_transaction = AsyncMock(side_effect=RuntimeError("deadlock"))
    with pytest.raises(FatalException) as exc_info:
        await StorageGateway(adapter).atomic(AsyncMock())
    assert exc_info.value.details["operation"] == "with_transaction"


async def test_atomic_triad_commits_on_success() -> None:
    adapter = ExplicitTxAdapter()
    result = await StorageGateway(adapter).atomic(AsyncMock(return_value=42))
    assert result == 42
    assert adapter.calls == [("begin", None), ("commit", "tx-1")]


async def test_atomic_triad_rolls_back_on_failure() -> None:
    adapter = ExplicitTxAdapter()
    with pytest.raises(KeyError):
        await StorageGateway(adapter).atomic(AsyncMock(side_effect=KeyError("x")))
    assert adapter.calls == [("begin", None), ("rollback", "tx-1")]


async def test_atomic_without_transactions_runs_fn() -> None:
    fn = AsyncMock(return_value="done")
    assert await StorageGateway(InMemoryAdapter()).atomic(fn) == "done"
    fn.assert_awaited_once()
