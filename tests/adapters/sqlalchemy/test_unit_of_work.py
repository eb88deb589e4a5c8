from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from reconciler.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyHelloUnitOfWork,
    StartupError,
    build_engine,
    configured_engine,
    is_started,
    is_transient,
    shutdown,
    startup,
)
from reconciler.config import ConfigurationError, DatabaseConfig
from reconciler.domain.errors import TransientStoreError
from reconciler.domain.model import Hello
from tests.helpers.clock import EPOCH
from tests.helpers.faults import operational_error

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_sqlalchemy_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyHelloUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b
    assert is_started()


def test_startup_can_create_the_schema(tmp_path: Path) -> None:
    startup(database_uri=f"sqlite+pysqlite:///{tmp_path / 'fresh.db'}", create_schema=True)

    engine = configured_engine()
    assert engine is not None
    assert {"hello", "hello_status"} <= set(inspect(engine).get_table_names())


def test_unit_of_work_persists_and_rolls_back(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyHelloUnitOfWork() as uow:
        uow.repositories.primaries.add(Hello(name="kept", created_at=EPOCH, updated_at=EPOCH))
        uow.commit()

    with pytest.raises(RuntimeError), SqlAlchemyHelloUnitOfWork() as uow:
        uow.repositories.primaries.add(Hello(name="dropped", created_at=EPOCH, updated_at=EPOCH))
        uow.session.flush()
        raise RuntimeError("abort")

    with SqlAlchemyHelloUnitOfWork() as uow:
        ids = [marker.id for marker in uow.repositories.primaries.changed_since(None)]
    assert len(ids) == 1


def test_transient_failures_are_translated_on_exit(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with pytest.raises(TransientStoreError) as excinfo, SqlAlchemyHelloUnitOfWork():
        raise operational_error("deadlock detected")

    assert isinstance(excinfo.value.__cause__, OperationalError)


def test_other_store_errors_propagate_unchanged(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with pytest.raises(IntegrityError), SqlAlchemyHelloUnitOfWork() as uow:
        nameless = Hello(name=None, created_at=EPOCH, updated_at=EPOCH)  # type: ignore[arg-type]
        uow.repositories.primaries.add(nameless)
        uow.commit()


def test_ping_reaches_the_store(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyHelloUnitOfWork() as uow:
        uow.ping()


def test_is_transient_classification() -> None:
    assert is_transient(operational_error())
    assert is_transient(PoolTimeoutError("pool exhausted"))
    assert not is_transient(ValueError("nope"))


def test_build_engine_applies_sqlite_busy_timeout(tmp_path: Path) -> None:
    config = DatabaseConfig(
        uri=f"sqlite+pysqlite:///{tmp_path / 'timeouts.db'}", statement_timeout_seconds=3.0
    )

    engine = build_engine(config)
    try:
        with engine.connect() as connection:
            assert connection.exec_driver_sql("SELECT 1").scalar() == 1
    finally:
        engine.dispose()


@pytest.mark.parametrize("uri", ["not a database uri", "nosuchdialect://user@host/db"])
def test_build_engine_rejects_unusable_uris(uri: str) -> None:
    with pytest.raises(ConfigurationError):
        build_engine(DatabaseConfig(uri=uri))
