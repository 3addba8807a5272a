"""Storage adapters shipped with the core: in-memory and SQLAlchemy async."""

from tenant_rbac.infrastructure.adapters.memory import InMemoryAdapter
from tenant_rbac.infrastructure.adapters.sql_adapter import SqlAlchemyAdapter, build_tables

__all__ = ["InMemoryAdapter", "SqlAlchemyAdapter", "build_tables"]
