"""SQLAlchemy adapter package for the reconciler."""

from __future__ import annotations

from .mappings import (
    UTCDateTime,
    create_all_tables,
    dependent_table,
    hello_status_table,
    hello_table,
    mapper_registry,
    primary_table,
    start_mappers,
)
from .repositories import SqlAlchemyDependentRepository, SqlAlchemyPrimaryRepository
from .unit_of_work import (
    BaseSqlAlchemyUnitOfWork,
    SqlAlchemyHelloUnitOfWork,
    StartupError,
    build_engine,
    configured_engine,
    is_started,
    is_transient,
    shutdown,
    startup,
)

__all__ = [
    "BaseSqlAlchemyUnitOfWork",
    "SqlAlchemyDependentRepository",
    "SqlAlchemyHelloUnitOfWork",
    "SqlAlchemyPrimaryRepository",
    "StartupError",
    "UTCDateTime",
    "build_engine",
    "configured_engine",
    "create_all_tables",
    "dependent_table",
    "hello_status_table",
    "hello_table",
    "is_started",
    "is_transient",
    "mapper_registry",
    "primary_table",
    "shutdown",
    "start_mappers",
    "startup",
]
