"""Storage gateway: the single place services talk to the adapter.

Performs capability checks (bulk insert, transactions), the sequential
bulk-create fallback, the post-update re-read and transaction selection.
Raw adapter failures are wrapped as FatalException; RbacException raised by an
adapter (e.g. a unique-constraint violation mapped to AlreadyExistsException)
passes through unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from tenant_rbac.application.interfaces.adapters import IStorageAdapter
from tenant_rbac.domain.exceptions import FatalException, RbacException

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StorageGateway:
    """Capability-aware wrapper over one storage adapter."""

    def __init__(self, adapter: IStorageAdapter) -> None:
        self.adapter = adapter

    @property
    def supports_bulk(self) -> bool:
        return callable(getattr(self.adapter, "create_many", None))

    @property
    def supports_transactions(self) -> bool:
        if callable(getattr(self.adapter, "with_transaction", None)):
            return True
        return all(
            callable(getattr(self.adapter, name, None))
            for name in ("begin_transaction", "commit_transaction", "rollback_transaction")
        )

    async def _call(self, operation: str, model: str | None, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except RbacException:
            raise
        except Exception as exc:
            logger.exception("Storage operation %s failed on %s", operation, model)
            raise FatalException(operation, model, reason=str(exc)) from exc

    async def find_one(self, model: str, where: dict[str, Any]) -> dict[str, Any] | None:
        return await self._call("find_one", model, self.adapter.find_one(model, where))

    async def find_many(
        self, model: str, where: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        # An empty membership list can never match; skip the round-trip.
        if where and any(isinstance(v, (list, tuple)) and not v for v in where.values()):
            return []
        return await self._call("find_many", model, self.adapter.find_many(model, where))

    async def create(self, model: str, data: dict[str, Any]) -> dict[str, Any]:
        return await self._call("create", model, self.adapter.create(model, data))

    async def create_many(self, model: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Insert rows; uses the adapter's bulk tier when present.

        Without it, rows are created one by one in input order and the first
        failure aborts the remainder.
        """
        if not rows:
            return []
        if self.supports_bulk:
            return await self._call("create_many", model, self.adapter.create_many(model, rows))
        created = []
        for row in rows:
            created.append(await self.create(model, row))
        return created

    async def update(
        self, model: str, where: dict[str, Any], data: dict[str, Any]
    ) -> dict[str, Any] | None:
        """Update the first match and return the post-update record.

        The adapter's own return value is not trusted: the record is re-read by
        id (looked up before the update when where does not carry it).
        """
        record_id = where.get("id")
        if record_id is None or isinstance(record_id, (list, tuple)):
            current = await self.find_one(model, where)
            if current is None:
                return None
            record_id = current["id"]
        await self._call("update", model, self.adapter.update(model, where, data))
        return await self.find_one(model, {"id": record_id})

    async def delete(self, model: str, where: dict[str, Any]) -> int:
        if any(isinstance(v, (list, tuple)) and not v for v in where.values()):
            return 0
        return int(await self._call("delete", model, self.adapter.delete(model, where)))

    async def atomic(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Run fn inside the adapter's transaction when it offers one.

        Prefers with_transaction, then the begin/commit/rollback triad. With
        neither, fn runs without isolation (best effort).
        """
        with_transaction = getattr(self.adapter, "with_transaction", None)
        if callable(with_transaction):
            raised: list[BaseException] = []

            async def _run() -> T:
                try:
                    return await fn()
                except BaseException as exc:
                    raised.append(exc)
                    raise

            try:
                return await with_transaction(_run)
            except RbacException:
                raise
            except Exception as exc:
                if raised and exc is raised[-1]:
                    raise
                logger.exception("Storage transaction failed")
                raise FatalException("with_transaction", reason=str(exc)) from exc
        if self.supports_transactions:
            tx = await self._call("begin_transaction", None, self.adapter.begin_transaction())
            try:
                result = await fn()
            except BaseException:
                await self._call(
                    "rollback_transaction", None, self.adapter.rollback_transaction(tx)
                )
                raise
            await self._call("commit_transaction", None, self.adapter.commit_transaction(tx))
            return result
        logger.debug(
            "Adapter %s has no transaction support; running without isolation",
            type(self.adapter).__name__,
        )
        return await fn()
