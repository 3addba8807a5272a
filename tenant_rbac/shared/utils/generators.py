"""Record identity helpers for adapters whose backend does not assign ids."""

from typing import Any

from cuid2 import cuid_wrapper

_next_cuid = cuid_wrapper()


def generate_cuid() -> str:
    """Return a fresh CUID2 string for a new tenant, role, permission or link row."""
    return str(_next_cuid())


def with_generated_id(row: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of row with an ``id``; a caller-supplied non-empty id is kept."""
    if row.get("id"):
        return dict(row)
    return {**row, "id": generate_cuid()}
