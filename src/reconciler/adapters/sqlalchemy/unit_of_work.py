"""SQLAlchemy-backed units of work for reconciled tables."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import create_engine, make_url, text
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session, sessionmaker

from reconciler.config import ConfigurationError, get_database_config
from reconciler.domain.errors import TransientStoreError
from reconciler.domain.model import Hello, HelloStatus
from reconciler.domain.ports import ControllerRepositories, RepositoryCollection

from .mappings import create_all_tables, hello_status_table, hello_table, start_mappers
from .repositories import SqlAlchemyDependentRepository, SqlAlchemyPrimaryRepository

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

    from reconciler.config import DatabaseConfig

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call reconciler.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def build_engine(config: DatabaseConfig) -> Engine:
    """Create an engine with pool and per-statement timeouts for the configured dialect."""

    try:
        url = make_url(config.uri)
    except sa_exc.ArgumentError as exc:
        raise ConfigurationError(f"Malformed database URI: {exc}") from exc

    backend = url.get_backend_name()
    timeout = config.statement_timeout_seconds
    connect_args: dict[str, Any] = {}
    engine_args: dict[str, Any] = {}

    if backend == "sqlite":
        connect_args["check_same_thread"] = False
        if timeout is not None:
            connect_args["timeout"] = timeout
    else:
        engine_args.update(
            pool_size=config.pool_size,
            pool_timeout=config.pool_timeout_seconds,
            pool_pre_ping=True,
        )
        if timeout is not None and backend == "postgresql":
            connect_args["options"] = f"-c statement_timeout={math.ceil(timeout * 1000)}"
        elif timeout is not None and backend in {"mysql", "mariadb"}:
            seconds = max(1, math.ceil(timeout))
            connect_args.update(read_timeout=seconds, write_timeout=seconds)

    try:
        engine = create_engine(url, future=True, connect_args=connect_args, **engine_args)
    except (sa_exc.ArgumentError, ImportError) as exc:
        raise ConfigurationError(f"Cannot create engine for {backend!r}: {exc}") from exc

    log.debug("Created %s engine", backend)
    return engine


def startup(
    *,
    engine: Engine | None = None,
    database: DatabaseConfig | None = None,
    database_uri: str | None = None,
    force: bool = False,
    create_schema: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, mappers, and session factory.

    The schema is normally provisioned outside this process; ``create_schema``
    creates any missing tables (tests and local runs).
    """

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or build_engine(database or get_database_config(uri=database_uri))
    start_mappers()
    if create_schema:
        create_all_tables(resolved_engine)

    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


def is_transient(error: BaseException) -> bool:
    """Whether ``error`` is worth retrying in a fresh transaction.

    Covers lost connections, pool checkout timeouts, lock timeouts and
    deadlocks (drivers report the latter two as operational errors).
    """

    if isinstance(
        error, sa_exc.OperationalError | sa_exc.TimeoutError | sa_exc.DisconnectionError
    ):
        return True
    return isinstance(error, sa_exc.DBAPIError) and error.connection_invalidated


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections."""

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        try:
            if exc_type is not None:
                self._rollback_quietly()
        finally:
            self.session.close()
            self.session = None
        if exc_value is not None and is_transient(exc_value):
            raise TransientStoreError(f"Transient store failure: {exc_value}") from exc_value
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def ping(self) -> None:
        self.session.execute(text("SELECT 1"))

    def _rollback_quietly(self) -> None:
        try:
            self.rollback()
        except sa_exc.SQLAlchemyError:
            # the original error is re-raised by __exit__
            log.warning("Rollback after a failed unit of work also failed", exc_info=True)

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyHelloUnitOfWork(
    BaseSqlAlchemyUnitOfWork[ControllerRepositories[Hello, HelloStatus]]
):
    """Unit of work over the ``hello`` and ``hello_status`` tables."""

    def _build_repositories(self, session: Session) -> ControllerRepositories[Hello, HelloStatus]:
        return ControllerRepositories(
            primaries=SqlAlchemyPrimaryRepository(session, Hello, hello_table),
            dependents=SqlAlchemyDependentRepository(
                session, HelloStatus, hello_status_table, hello_table
            ),
        )


if TYPE_CHECKING:
    from reconciler.domain.ports import ControllerUnitOfWork

    _uow_hello_check: ControllerUnitOfWork[Hello, HelloStatus] = SqlAlchemyHelloUnitOfWork()
