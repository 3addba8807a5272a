"""In-memory storage adapter.

Reference implementation of the base and bulk tiers, used by tests and local
development. No transaction support: sync operations on top of it are
best-effort (see StorageGateway.atomic).
"""

from __future__ import annotations

import copy
from collections import defaultdict
from typing import Any

from tenant_rbac.shared.utils.generators import with_generated_id


def _matches(record: dict[str, Any], where: dict[str, Any] | None) -> bool:
    """Scalar values compare equal; lists/tuples/sets mean membership (empty matches nothing)."""
    if not where:
        return True
    for field, expected in where.items():
        actual = record.get(field)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True


class InMemoryAdapter:
    """Dict-of-lists store keyed by model name. Records are copied in and out."""

    def __init__(self) -> None:
        self._store: dict[str, list[dict[str, Any]]] = defaultdict(list)

    async def find_one(self, model: str, where: dict[str, Any]) -> dict[str, Any] | None:
        for row in self._store[model]:
            if _matches(row, where):
                return copy.deepcopy(row)
        return None

    async def find_many(
        self, model: str, where: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        return [copy.deepcopy(row) for row in self._store[model] if _matches(row, where)]

    async def create(self, model: str, data: dict[str, Any]) -> dict[str, Any]:
        row = with_generated_id(copy.deepcopy(data))
        self._store[model].append(row)
        return copy.deepcopy(row)

    async def create_many(self, model: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [await self.create(model, row) for row in rows]

    async def update(
        self, model: str, where: dict[str, Any], data: dict[str, Any]
    ) -> dict[str, Any] | None:
        for row in self._store[model]:
            if _matches(row, where):
                row.update(copy.deepcopy(data))
                return copy.deepcopy(row)
        return None

    async def delete(self, model: str, where: dict[str, Any]) -> int:
        rows = self._store[model]
        kept = [row for row in rows if not _matches(row, where)]
        self._store[model] = kept
        return len(rows) - len(kept)

    def count(self, model: str) -> int:
        """Number of stored rows in model (test helper)."""
        return len(self._store[model])

    def clear(self) -> None:
        self._store.clear()
