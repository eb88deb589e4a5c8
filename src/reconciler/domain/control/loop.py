"""Level-triggered control loop: poll, dispatch, advance the cursor, wait.

One loop drives one controller through discrete ticks that never overlap:

    IDLE -> POLLING -> DISPATCHING -> IDLE

Within a tick distinct owners are reconciled in parallel on a bounded thread
pool, but an owner is never processed by two workers at once. The cursor and
the retry queue belong to the loop thread and only change between ticks.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from reconciler.config.controller import ControllerConfig, CursorPolicy
from reconciler.domain.errors import (
    FatalStoreError,
    ReconcileFunctionError,
    TransientStoreError,
)
from reconciler.domain.model import utcnow
from reconciler.domain.reconciliation import (
    ChangeBatch,
    ChangeDetector,
    OwnerOutcome,
    OwnerReconciler,
    OwnerStatus,
    ReconciliationCursor,
    WriteCounts,
    find_inconsistencies,
    next_position,
)
from reconciler.domain.reconciliation.dispatch import deferred, failed

from .inflight import InFlightRegistry
from .retry import build_retrying

if TYPE_CHECKING:
    from concurrent.futures import Future
    from types import TracebackType

    from reconciler.domain.model import Clock, DependentRecord, PrimaryEntity
    from reconciler.domain.ports import OrphanedRecord

    from .controller import Controller

log = logging.getLogger(__name__)

_BEFORE_ANY_ROW = datetime.min.replace(tzinfo=UTC)


class LoopState(StrEnum):
    IDLE = "idle"
    POLLING = "polling"
    DISPATCHING = "dispatching"
    STOPPED = "stopped"


@dataclass(slots=True)
class TickResult:
    """Summary of one poll/dispatch cycle."""

    tick: int
    cursor_before: datetime | None
    cursor_after: datetime | None
    polled: int = 0
    skipped: bool = False
    resynced: bool = False
    outcomes: list[OwnerOutcome] = field(default_factory=list["OwnerOutcome"])
    inconsistencies: list[OrphanedRecord] = field(default_factory=list["OrphanedRecord"])

    def owners_with(self, status: OwnerStatus) -> list[int]:
        return [outcome.owner_id for outcome in self.outcomes if outcome.status is status]

    @property
    def unfinished(self) -> list[int]:
        return [outcome.owner_id for outcome in self.outcomes if not outcome.finished]

    @property
    def writes(self) -> WriteCounts:
        total = WriteCounts()
        for outcome in self.outcomes:
            total += outcome.writes
        return total


@dataclass(slots=True)
class LoopStats:
    """Running totals kept for the lifetime of a loop."""

    ticks: int = 0
    skipped_ticks: int = 0
    reconciled: int = 0
    cascaded: int = 0
    failed: int = 0
    deferred: int = 0
    writes: WriteCounts = field(default_factory=WriteCounts)

    def record(self, result: TickResult) -> None:
        self.ticks += 1
        if result.skipped:
            self.skipped_ticks += 1
        self.reconciled += len(result.owners_with(OwnerStatus.RECONCILED))
        self.cascaded += len(result.owners_with(OwnerStatus.CASCADED))
        self.failed += len(result.owners_with(OwnerStatus.FAILED))
        self.deferred += len(result.owners_with(OwnerStatus.DEFERRED))
        self.writes += result.writes


class ControllerLoop[TPrimary: PrimaryEntity, TRecord: DependentRecord]:
    """Drive one controller until its stop event is set."""

    def __init__(
        self,
        controller: Controller[TPrimary, TRecord],
        config: ControllerConfig | None = None,
        *,
        clock: Clock = utcnow,
        stop_event: threading.Event | None = None,
    ) -> None:
        self.controller = controller
        self.config = config or ControllerConfig()
        self.cursor = ReconciliationCursor()
        self.stats = LoopStats()
        self.in_flight = InFlightRegistry()

        self._stop = stop_event or threading.Event()
        self._state = LoopState.IDLE
        self._retry_queue: dict[int, None] = {}
        self._detector = ChangeDetector(
            controller.unit_of_work_factory, batch_size=self.config.batch_size
        )
        self._owner_reconciler = OwnerReconciler(
            controller.unit_of_work_factory, controller.reconcile, clock=clock
        )
        self._executor: ThreadPoolExecutor | None = None

    @property
    def name(self) -> str:
        return self.controller.name

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def stop_event(self) -> threading.Event:
        return self._stop

    @property
    def retry_queue(self) -> tuple[int, ...]:
        return tuple(self._retry_queue)

    def __enter__(self) -> ControllerLoop[TPrimary, TRecord]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    # Lifecycle -------------------------------------------------------------

    def initialize(self) -> None:
        """Check that the store is reachable, retrying transient failures.

        Raises ``FatalStoreError`` once every attempt has failed. A stop request
        during the retries ends initialisation quietly.
        """

        def ping() -> None:
            with self.controller.unit_of_work_factory() as uow:
                uow.ping()

        try:
            build_retrying(self.config.retry, stop_event=self._stop)(ping)
        except TransientStoreError as exc:
            if self._stop.is_set():
                log.info("Initialisation of %s aborted by shutdown", self.name)
                return
            raise FatalStoreError(
                f"Controller {self.name!r} cannot reach the store: {exc}"
            ) from exc
        log.info("Controller %s initialised", self.name)

    def run(self) -> None:
        """Initialise, then tick every ``poll_interval_seconds`` until stopped."""

        try:
            self.initialize()
            log.info("Starting control loop for %s", self.name)
            while not self._stop.is_set():
                self.tick()
                if self._stop.wait(self.config.poll_interval_seconds):
                    break
        finally:
            self.close()
            self._state = LoopState.STOPPED
            log.info("Control loop for %s terminated", self.name)

    def stop(self) -> None:
        """Request a cooperative shutdown; the current tick drains first."""
        self._stop.set()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # Tick ------------------------------------------------------------------

    def tick(self) -> TickResult:
        """Run one poll and dispatch cycle."""

        tick_number = self.stats.ticks + 1
        resynced = self._maybe_resync(tick_number)
        cursor_before = self.cursor.position
        result = TickResult(
            tick=tick_number,
            cursor_before=cursor_before,
            cursor_after=cursor_before,
            resynced=resynced,
        )

        self._state = LoopState.POLLING
        try:
            batch = self._poll(cursor_before)
        except TransientStoreError:
            log.exception(
                "Polling %s failed after retries; skipping tick %d", self.name, tick_number
            )
            result.skipped = True
            self._state = LoopState.IDLE
            self.stats.record(result)
            return result
        result.polled = len(batch)

        self._state = LoopState.DISPATCHING
        try:
            owner_ids = [*self._retry_queue, *batch.owner_ids]
            result.outcomes = self._dispatch(list(dict.fromkeys(owner_ids)))
        finally:
            self._state = LoopState.IDLE

        self._settle(batch, result)
        if self.config.audit_inconsistencies:
            result.inconsistencies = self._audit()

        self.stats.record(result)
        self._log_tick(result)
        return result

    def _maybe_resync(self, tick_number: int) -> bool:
        every = self.config.resync_every_ticks
        if every and tick_number > 1 and (tick_number - 1) % every == 0:
            log.info("Periodic resync of %s: rewinding cursor", self.name)
            self.cursor.reset()
            return True
        return False

    def _poll(self, after: datetime | None) -> ChangeBatch:
        return build_retrying(self.config.retry, stop_event=self._stop)(self._detector.poll, after)

    def _dispatch(self, owner_ids: list[int]) -> list[OwnerOutcome]:
        if not owner_ids:
            return []

        outcomes: list[OwnerOutcome] = []
        futures: list[Future[OwnerOutcome]] = []
        executor = self._ensure_executor()
        for owner_id in owner_ids:
            if not self.in_flight.try_acquire(owner_id):
                log.info("Owner %s still in flight; deferring to the next tick", owner_id)
                outcomes.append(deferred(owner_id))
                continue
            futures.append(executor.submit(self._process_owner, owner_id))

        wait(futures)
        fatal: BaseException | None = None
        for future in futures:
            error = future.exception()
            if error is None:
                outcomes.append(future.result())
            elif fatal is None:
                fatal = error
        if fatal is not None:
            raise fatal
        return outcomes

    def _process_owner(self, owner_id: int) -> OwnerOutcome:
        try:
            if self._stop.is_set():
                return deferred(owner_id)
            retrying = build_retrying(self.config.retry, stop_event=self._stop)
            return retrying(self._owner_reconciler.reconcile_owner, owner_id)
        except TransientStoreError as exc:
            log.error("Owner %s failed after retries: %s", owner_id, exc)  # noqa: TRY400
            return failed(owner_id, exc)
        except ReconcileFunctionError as exc:
            log.warning("Reconcile function failed for owner %s: %s", owner_id, exc)
            return failed(owner_id, exc)
        except FatalStoreError:
            raise
        except Exception as exc:  # noqa: BLE001
            log.exception("Unexpected failure reconciling owner %s", owner_id)
            return failed(owner_id, exc)
        finally:
            self.in_flight.release(owner_id)

    def _settle(self, batch: ChangeBatch, result: TickResult) -> None:
        unfinished = set(result.unfinished)
        policy = self.config.cursor_policy

        self._retry_queue = {}
        if policy is CursorPolicy.RETRY_QUEUE:
            self._retry_queue = dict.fromkeys(result.unfinished)

        self.cursor.advance_to(next_position(batch, unfinished=unfinished, policy=policy))
        result.cursor_after = self.cursor.position

    def _audit(self) -> list[OrphanedRecord]:
        try:
            return find_inconsistencies(
                self.controller.unit_of_work_factory,
                exclude_owners=self._retry_queue.keys() | self.in_flight.snapshot(),
                # a rewound cursor means every owner is polled again
                changed_after=self.cursor.position or _BEFORE_ANY_ROW,
            )
        except TransientStoreError as exc:
            log.warning("Inconsistency audit for %s skipped: %s", self.name, exc)
            return []

    def _ensure_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.max_workers,
                thread_name_prefix=f"{self.name}-worker",
            )
        return self._executor

    def _log_tick(self, result: TickResult) -> None:
        writes = result.writes
        log.info(
            "Tick %d of %s: polled=%d, reconciled=%d, cascaded=%d, failed=%d, deferred=%d, "
            "writes=%d (+%d ~%d -%d), cursor=%s",
            result.tick,
            self.name,
            result.polled,
            len(result.owners_with(OwnerStatus.RECONCILED)),
            len(result.owners_with(OwnerStatus.CASCADED)),
            len(result.owners_with(OwnerStatus.FAILED)),
            len(result.owners_with(OwnerStatus.DEFERRED)),
            writes.total,
            writes.inserted,
            writes.updated,
            writes.deleted,
            result.cursor_after,
        )
