"""Per-owner routing between the reconcile path and the cascade path."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from reconciler.domain.model import utcnow

from .apply import WriteCounts, reconcile_dependents
from .cascade import cascade_owner
from .desired import evaluate

if TYPE_CHECKING:
    from collections.abc import Callable

    from reconciler.domain.model import Clock, DependentRecord, PrimaryEntity
    from reconciler.domain.ports import ControllerUnitOfWork, ReconcileFunction

log = logging.getLogger(__name__)


class OwnerStatus(StrEnum):
    RECONCILED = "reconciled"
    CASCADED = "cascaded"
    MISSING = "missing"
    FAILED = "failed"
    DEFERRED = "deferred"


@dataclass(slots=True, kw_only=True)
class OwnerOutcome:
    owner_id: int
    status: OwnerStatus
    writes: WriteCounts = field(default_factory=WriteCounts)
    error: str | None = None

    @property
    def finished(self) -> bool:
        """Whether the owner needs no further attention until it changes again."""
        return self.status in {OwnerStatus.RECONCILED, OwnerStatus.CASCADED, OwnerStatus.MISSING}


class OwnerReconciler[TPrimary: PrimaryEntity, TRecord: DependentRecord]:
    """Reconcile a single owner in one unit of work.

    The owner row is loaded with a row lock where the store supports it, which
    serialises concurrent controllers working on the same owner.
    """

    def __init__(
        self,
        unit_of_work_factory: Callable[[], ControllerUnitOfWork[TPrimary, TRecord]],
        reconcile: ReconcileFunction[TPrimary],
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._reconcile = reconcile
        self._clock = clock

    def reconcile_owner(self, owner_id: int) -> OwnerOutcome:
        with self._unit_of_work_factory() as uow:
            owner = uow.repositories.primaries.get(owner_id, for_update=True)
            if owner is None:
                log.warning(
                    "Owner %s is gone from the primary table; leaving its records alone",
                    owner_id,
                )
                return OwnerOutcome(owner_id=owner_id, status=OwnerStatus.MISSING)

            if not owner.is_live:
                writes = cascade_owner(uow, owner_id, now=self._clock())
                return OwnerOutcome(owner_id=owner_id, status=OwnerStatus.CASCADED, writes=writes)

            desired = evaluate(self._reconcile, owner, owner_id=owner_id)
            writes = reconcile_dependents(uow, owner_id, desired, now=self._clock())
            return OwnerOutcome(owner_id=owner_id, status=OwnerStatus.RECONCILED, writes=writes)


def failed(owner_id: int, error: BaseException) -> OwnerOutcome:
    return OwnerOutcome(owner_id=owner_id, status=OwnerStatus.FAILED, error=str(error))


def deferred(owner_id: int) -> OwnerOutcome:
    return OwnerOutcome(owner_id=owner_id, status=OwnerStatus.DEFERRED)

