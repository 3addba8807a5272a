"""Storage adapter contract (ports) for the application layer.

Adapters address records by physical model name (from the resolved
configuration) and a where mapping of field -> scalar (equality) or
field -> list (membership; an empty list matches nothing). Records are plain
dicts. Only the base tier is mandatory; the gateway probes for the optional
tiers (callable attributes) and falls back when they are missing.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")

Record = dict[str, Any]
Where = dict[str, Any]


# Base tier
class IStorageAdapter(Protocol):
    """Protocol every storage adapter must satisfy."""

    async def find_one(self, model: str, where: Where) -> Record | None:
        """Return the first record matching where, or None."""

    async def find_many(self, model: str, where: Where | None = None) -> list[Record]:
        """Return all records matching where (all rows when where is None or empty)."""

    async def create(self, model: str, data: Record) -> Record:
        """Insert data and return the stored record (id assigned when absent)."""

    async def update(self, model: str, where: Where, data: Record) -> Record | None:
        """Apply data to the first record matching where."""

    async def delete(self, model: str, where: Where) -> int:
        """Delete every record matching where; return the count removed."""


# Bulk tier
@runtime_checkable
class IBulkCreate(Protocol):
    """Optional bulk insert capability."""

    async def create_many(self, model: str, rows: list[Record]) -> list[Record]:
        """Insert rows and return the stored records in input order."""


# Transaction tiers
@runtime_checkable
class ICallbackTransaction(Protocol):
    """Optional transaction capability: run a callback inside one transaction."""

    async def with_transaction(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Run fn atomically; roll back and re-raise when it fails."""


@runtime_checkable
class IExplicitTransaction(Protocol):
    """Optional transaction capability: explicit begin / commit / rollback."""

    async def begin_transaction(self) -> Any:
        """Open a transaction."""

    async def commit_transaction(self, tx: Any) -> None:
        """Commit the transaction returned by begin_transaction."""

    async def rollback_transaction(self, tx: Any) -> None:
        """Roll back the transaction returned by begin_transaction."""


@runtime_checkable
class IInitializable(Protocol):
    """Optional start-up hook called once by the RBAC context."""

    async def init(self, config: Any) -> None:
        """Prepare the adapter (open pools, create tables, ...)."""
