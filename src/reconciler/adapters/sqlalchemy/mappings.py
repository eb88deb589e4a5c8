"""SQLAlchemy table definitions and imperative mappings for reconciled tables."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Dialect,
    Index,
    Integer,
    String,
    Table,
    TypeDecorator,
    orm,
)
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import configure_mappers

from reconciler.domain.model import MAX_CONTENT_LENGTH, MAX_KEY_LENGTH, Hello, HelloStatus

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine
    from sqlalchemy.types import TypeEngine

log = logging.getLogger(__name__)

IdColumnType = BigInteger().with_variant(Integer(), "sqlite")

_TZ_AWARE_DIALECTS = frozenset({"postgresql"})
_MYSQL_DIALECTS = frozenset({"mysql", "mariadb"})


class UTCDateTime(TypeDecorator[datetime]):
    """Microsecond UTC timestamps; naive values coming back are read as UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        if dialect.name in _MYSQL_DIALECTS:
            return dialect.type_descriptor(mysql.DATETIME(fsp=6))
        return dialect.type_descriptor(DateTime(timezone=True))

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        value = value.astimezone(UTC)
        if dialect.name not in _TZ_AWARE_DIALECTS:
            # naive UTC where the store keeps no offset
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value.astimezone(UTC) if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _tracked_columns() -> list[Column[Any]]:
    return [
        Column("id", IdColumnType, primary_key=True, autoincrement=True),
        Column("created_at", UTCDateTime, nullable=False),
        Column("updated_at", UTCDateTime, nullable=False),
        Column("deleted_at", UTCDateTime, nullable=True),
    ]


def primary_table(name: str, *columns: Column[Any]) -> Table:
    """Define a primary table: tracked columns, business ``columns``, poll index."""

    table = Table(name, mapper_registry.metadata, *_tracked_columns(), *columns)
    Index(f"ix_{name}_updated_at", table.c.updated_at, table.c.id)
    return table


def dependent_table(
    name: str,
    *,
    owner_column: str = "owner_id",
    key_column: str = "record_key",
    content_column: str = "content",
) -> Table:
    """Define a dependent table.

    Whatever the physical column names, the owner reference, match key and
    content are exposed under the keys ``owner_id``, ``key`` and ``content``.
    The owner reference is not a foreign key.
    """

    table = Table(
        name,
        mapper_registry.metadata,
        *_tracked_columns(),
        Column(owner_column, IdColumnType, key="owner_id", nullable=False),
        Column(key_column, String(MAX_KEY_LENGTH), key="key", nullable=False),
        Column(content_column, String(MAX_CONTENT_LENGTH), key="content", nullable=False),
    )
    Index(f"ix_{name}_owner_live", table.c.owner_id, table.c.deleted_at)
    return table


# Hello controller tables -----------------------------------------------------

hello_table = primary_table(
    "hello",
    Column("name", String(256), nullable=False),
)

hello_status_table = dependent_table(
    "hello_status",
    owner_column="hello_id",
    key_column="status_key",
    content_column="message",
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Hello, hello_table)
    mapper_registry.map_imperatively(HelloStatus, hello_status_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
