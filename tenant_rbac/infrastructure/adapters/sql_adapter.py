"""SQLAlchemy Core async storage adapter.

Reference implementation of every adapter tier, including with_transaction.
Tables are built from the resolved configuration so renamed models and keys
map straight onto physical names. Works with any SQLAlchemy async URL
(postgresql+asyncpg, sqlite+aiosqlite, ...).

Foreign keys between RBAC tables are not declared: the services enforce
references at creation time and role deletion does not cascade.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    delete,
    insert,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from tenant_rbac.core.config import get_settings
from tenant_rbac.domain.exceptions import AlreadyExistsException, ConfigurationException
from tenant_rbac.shared.utils.generators import generate_cuid, with_generated_id

if TYPE_CHECKING:
    from tenant_rbac.core.rbac_config import ResolvedRbacConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ID_LENGTH = 64
_NAME_LENGTH = 255


def _id_column(name: str = "id", **kwargs: Any) -> Column:
    return Column(name, String(_ID_LENGTH), **kwargs)


def _timestamps() -> list[Column]:
    return [
        Column("created_at", DateTime(timezone=True), nullable=True),
        Column("updated_at", DateTime(timezone=True), nullable=True),
    ]


def build_tables(metadata: MetaData, config: ResolvedRbacConfig) -> dict[str, Table]:
    """Declare the five RBAC tables on metadata using configured names.

    Returns:
        Mapping of physical model name -> Table.
    """
    models, keys = config.models, config.keys
    tenants = Table(
        models.tenants,
        metadata,
        _id_column(primary_key=True, default=generate_cuid),
        Column("name", String(_NAME_LENGTH), nullable=False, unique=True),
        Column("slug", String(_NAME_LENGTH), nullable=False, unique=True),
        Column("description", Text, nullable=True),
        Column("is_active", Boolean, nullable=False, default=True),
        *_timestamps(),
    )
    permissions = Table(
        models.permissions,
        metadata,
        _id_column(primary_key=True, default=generate_cuid),
        Column("title", String(_NAME_LENGTH), nullable=False, unique=True),
        Column("slug", String(_NAME_LENGTH), nullable=False, unique=True),
        Column("description", Text, nullable=True),
        Column("is_active", Boolean, nullable=False, default=True),
        *_timestamps(),
    )
    roles = Table(
        models.roles,
        metadata,
        _id_column(primary_key=True, default=generate_cuid),
        _id_column(keys.tenant_id, nullable=False, index=True),
        Column("title", String(_NAME_LENGTH), nullable=False),
        Column("slug", String(_NAME_LENGTH), nullable=False),
        Column("description", Text, nullable=True),
        Column("is_active", Boolean, nullable=False, default=True),
        *_timestamps(),
        UniqueConstraint(keys.tenant_id, "slug", name=f"uq_{models.roles}_tenant_slug"),
        UniqueConstraint(keys.tenant_id, "title", name=f"uq_{models.roles}_tenant_title"),
    )
    role_permissions = Table(
        models.role_permissions,
        metadata,
        _id_column(primary_key=True, default=generate_cuid),
        _id_column(keys.role_id, nullable=False, index=True),
        _id_column(keys.permission_id, nullable=False),
        Column("created_at", DateTime(timezone=True), nullable=True),
        UniqueConstraint(
            keys.role_id, keys.permission_id, name=f"uq_{models.role_permissions}_role_permission"
        ),
    )
    user_roles = Table(
        models.user_roles,
        metadata,
        _id_column(primary_key=True, default=generate_cuid),
        Column(keys.user_id, String(_NAME_LENGTH), nullable=False),
        _id_column(keys.tenant_id, nullable=False),
        _id_column(keys.role_id, nullable=False, index=True),
        Column("status", String(16), nullable=False, default="active"),
        *_timestamps(),
        UniqueConstraint(
            keys.tenant_id, keys.user_id, keys.role_id, name=f"uq_{models.user_roles}_assignment"
        ),
        Index(f"ix_{models.user_roles}_tenant_user", keys.tenant_id, keys.user_id),
    )
    return {
        table.name: table
        for table in (tenants, permissions, roles, role_permissions, user_roles)
    }


class SqlAlchemyAdapter:
    """Async SQLAlchemy Core adapter.

    Args:
        database_url: Async URL; falls back to config.options["database_url"],
            then settings.database_url.
        engine: Pre-built engine (tests, hosts sharing a pool). Not disposed by close().
        create_tables: Run metadata.create_all during init().
        echo: SQL echo for a self-built engine.
    """

    def __init__(
        self,
        database_url: str | None = None,
        *,
        engine: AsyncEngine | None = None,
        create_tables: bool | None = None,
        echo: bool | None = None,
    ) -> None:
        self._database_url = database_url
        self._engine = engine
        self._owns_engine = engine is None
        self._create_tables = create_tables
        self._echo = echo
        self.metadata = MetaData()
        self.tables: dict[str, Table] = {}
        self._tx_connection: ContextVar[AsyncConnection | None] = ContextVar(
            f"rbac_sql_tx_{id(self)}", default=None
        )

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise ConfigurationException("SqlAlchemyAdapter used before init()")
        return self._engine

    async def init(self, config: ResolvedRbacConfig) -> None:
        """Build tables from config, create the engine, optionally create tables."""
        settings = get_settings()
        self.tables = build_tables(self.metadata, config)
        if self._engine is None:
            url = self._database_url or config.options.get("database_url") or settings.database_url
            if not url:
                raise ConfigurationException(
                    "SqlAlchemyAdapter needs a database URL (argument, options or RBAC_DATABASE_URL)"
                )
            echo = settings.database_echo if self._echo is None else self._echo
            self._engine = create_async_engine(url, echo=echo, pool_pre_ping=True)
        create_tables = (
            settings.database_create_tables if self._create_tables is None else self._create_tables
        )
        if create_tables:
            async with self._engine.begin() as conn:
                await conn.run_sync(self.metadata.create_all)
            logger.info("RBAC tables ensured: %s", ", ".join(sorted(self.tables)))

    async def close(self) -> None:
        if self._engine is not None and self._owns_engine:
            await self._engine.dispose()
            self._engine = None

    def _table(self, model: str) -> Table:
        try:
            return self.tables[model]
        except KeyError:
            raise ConfigurationException(f"Unknown RBAC model: {model}") from None

    @staticmethod
    def _clauses(table: Table, where: dict[str, Any] | None) -> list[Any]:
        clauses = []
        for field, value in (where or {}).items():
            column = table.c[field]
            if isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(column.in_(list(value)))
            elif value is None:
                clauses.append(column.is_(None))
            else:
                clauses.append(column == value)
        return clauses

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[AsyncConnection]:
        """Yield the open transaction's connection, or a fresh autocommitting one."""
        current = self._tx_connection.get()
        if current is not None:
            yield current
            return
        async with self.engine.begin() as conn:
            yield conn

    async def _select_by_ids(
        self, conn: AsyncConnection, table: Table, ids: list[str]
    ) -> dict[str, dict[str, Any]]:
        result = await conn.execute(select(table).where(table.c.id.in_(ids)))
        return {row["id"]: dict(row) for row in result.mappings()}

    async def find_one(self, model: str, where: dict[str, Any]) -> dict[str, Any] | None:
        table = self._table(model)
        async with self._connection() as conn:
            result = await conn.execute(
                select(table).where(*self._clauses(table, where)).limit(1)
            )
            row = result.mappings().first()
        return dict(row) if row is not None else None

    async def find_many(
        self, model: str, where: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        table = self._table(model)
        async with self._connection() as conn:
            result = await conn.execute(select(table).where(*self._clauses(table, where)))
            return [dict(row) for row in result.mappings()]

    async def create(self, model: str, data: dict[str, Any]) -> dict[str, Any]:
        created = await self.create_many(model, [data])
        return created[0]

    async def create_many(self, model: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        if not rows:
            return []
        table = self._table(model)
        values = [with_generated_id(row) for row in rows]
        try:
            async with self._connection() as conn:
                await conn.execute(insert(table), values)
                stored = await self._select_by_ids(conn, table, [v["id"] for v in values])
        except IntegrityError as exc:
            raise AlreadyExistsException(
                resource_type=model, details_extra={"reason": str(exc.orig)}
            ) from exc
        return [stored[v["id"]] for v in values]

    async def update(
        self, model: str, where: dict[str, Any], data: dict[str, Any]
    ) -> dict[str, Any] | None:
        table = self._table(model)
        try:
            async with self._connection() as conn:
                result = await conn.execute(
                    select(table.c.id).where(*self._clauses(table, where)).limit(1)
                )
                record_id = result.scalar_one_or_none()
                if record_id is None:
                    return None
                await conn.execute(update(table).where(table.c.id == record_id).values(**data))
                stored = await self._select_by_ids(conn, table, [record_id])
        except IntegrityError as exc:
            raise AlreadyExistsException(
                resource_type=model, details_extra={"reason": str(exc.orig)}
            ) from exc
        return stored.get(record_id)

    async def delete(self, model: str, where: dict[str, Any]) -> int:
        table = self._table(model)
        async with self._connection() as conn:
            result = await conn.execute(delete(table).where(*self._clauses(table, where)))
            return result.rowcount

    async def with_transaction(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Run fn with every adapter call on one connection inside one transaction.

        Nested calls join the outer transaction. An exception rolls back and
        propagates.
        """
        if self._tx_connection.get() is not None:
            return await fn()
        async with self.engine.begin() as conn:
            token = self._tx_connection.set(conn)
            try:
                return await fn()
            finally:
                self._tx_connection.reset(token)
