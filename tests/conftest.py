from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from reconciler.adapters.sqlalchemy import create_all_tables, start_mappers
from reconciler.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyHelloUnitOfWork,
    shutdown,
    startup,
)
from reconciler.config import ControllerConfig, RetryPolicy
from tests.helpers.clock import TickingClock

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    # file-backed so that worker threads share one database
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'reconciler.db'}",
        future=True,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    start_mappers()
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def hello_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyHelloUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyHelloUnitOfWork:
        return SqlAlchemyHelloUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def writer_clock() -> TickingClock:
    """Clock used by the external writer of ``hello`` rows."""

    return TickingClock()


@pytest.fixture
def fast_config() -> ControllerConfig:
    return ControllerConfig(
        poll_interval_seconds=0.01,
        max_workers=4,
        batch_size=None,
        retry=RetryPolicy(attempts=3, backoff_factor=0, max_backoff_wait=0, backoff_jitter=0),
        audit_inconsistencies=False,
    )
