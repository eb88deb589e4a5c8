"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from reconciler.adapters.sqlalchemy.mappings import create_all_tables
from reconciler.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyHelloUnitOfWork,
    configured_engine,
    is_started,
    startup,
)
from reconciler.config import get_controller_config
from reconciler.domain.control import Controller, ControllerHost, ControllerLoop
from reconciler.domain.greeting import greet
from reconciler.domain.model import Hello, HelloStatus
from reconciler.domain.ports import ControllerUnitOfWork
from reconciler.domain.reconciliation import find_inconsistencies

if TYPE_CHECKING:
    import threading

    from reconciler.config import ControllerConfig
    from reconciler.domain.control import LoopStats, TickResult
    from reconciler.domain.ports import OrphanedRecord, ReconcileFunction

HelloUnitOfWorkFactory = Callable[[], ControllerUnitOfWork[Hello, HelloStatus]]

HELLO_CONTROLLER_NAME = "hello"

log = getLogger(__name__)


def _ensure_started(*, database_uri: str | None, create_schema: bool) -> None:
    if not is_started():
        startup(database_uri=database_uri, create_schema=create_schema)
        return
    engine = configured_engine()
    if create_schema and engine is not None:
        create_all_tables(engine)


def build_hello_controller(
    *,
    unit_of_work_factory: HelloUnitOfWorkFactory | None = None,
    reconcile: ReconcileFunction[Hello] = greet,
) -> Controller[Hello, HelloStatus]:
    """Bind the ``hello``/``hello_status`` tables to their reconcile function."""

    return Controller(
        name=HELLO_CONTROLLER_NAME,
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyHelloUnitOfWork,
        reconcile=reconcile,
    )


def run_hello_controller(
    *,
    config: ControllerConfig | None = None,
    database_uri: str | None = None,
    create_schema: bool = False,
    stop_event: threading.Event | None = None,
    unit_of_work_factory: HelloUnitOfWorkFactory | None = None,
) -> LoopStats:
    """Run the hello controller until ``stop_event`` is set or the store is lost."""

    if unit_of_work_factory is None:
        _ensure_started(database_uri=database_uri, create_schema=create_schema)
    effective_config = config or get_controller_config()

    host = ControllerHost(stop_event=stop_event)
    loop = ControllerLoop(
        build_hello_controller(unit_of_work_factory=unit_of_work_factory),
        effective_config,
        stop_event=host.stop_event,
    )
    host.add_controller(loop)
    log.info(
        "Starting hello controller: poll_interval=%ss, workers=%s, batch_size=%s, cursor_policy=%s",
        effective_config.poll_interval_seconds,
        effective_config.max_workers,
        effective_config.batch_size,
        effective_config.cursor_policy,
    )

    host.run()

    stats = loop.stats
    log.info(
        f"Hello controller stopped: ticks={stats.ticks}, reconciled={stats.reconciled}, "
        f"cascaded={stats.cascaded}, failed={stats.failed}, writes={stats.writes.total}"
    )
    return stats


def run_hello_tick(
    *,
    config: ControllerConfig | None = None,
    database_uri: str | None = None,
    create_schema: bool = False,
    unit_of_work_factory: HelloUnitOfWorkFactory | None = None,
) -> TickResult:
    """Run exactly one full tick of the hello controller from a rewound cursor."""

    if unit_of_work_factory is None:
        _ensure_started(database_uri=database_uri, create_schema=create_schema)

    with ControllerLoop(
        build_hello_controller(unit_of_work_factory=unit_of_work_factory),
        config or get_controller_config(),
    ) as loop:
        loop.initialize()
        return loop.tick()


def audit_hello(
    *,
    database_uri: str | None = None,
    unit_of_work_factory: HelloUnitOfWorkFactory | None = None,
) -> list[OrphanedRecord]:
    """List live ``hello_status`` rows whose ``hello`` is soft-deleted or missing."""

    if unit_of_work_factory is None:
        _ensure_started(database_uri=database_uri, create_schema=False)
    return find_inconsistencies(unit_of_work_factory or SqlAlchemyHelloUnitOfWork)
