"""Apply a dependent diff for one owner inside a single transaction.

Responsibilities of this stage:
- load the owner's live dependent records
- diff them against the desired set
- insert, update in place and soft-delete, then commit once

Nothing is written (and nothing committed) when the diff is empty, so running
the same desired state twice is a no-op.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .diff import compute_diff

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from reconciler.domain.model import DependentRecord, DesiredRecord, PrimaryEntity
    from reconciler.domain.ports import ControllerUnitOfWork, DependentRepository

    from .diff import DependentDiff

log = logging.getLogger(__name__)


@dataclass(slots=True)
class WriteCounts:
    """Rows written for one owner (or summed across owners)."""

    inserted: int = 0
    updated: int = 0
    deleted: int = 0

    @property
    def total(self) -> int:
        return self.inserted + self.updated + self.deleted

    def __add__(self, other: WriteCounts) -> WriteCounts:
        return WriteCounts(
            inserted=self.inserted + other.inserted,
            updated=self.updated + other.updated,
            deleted=self.deleted + other.deleted,
        )


def reconcile_dependents[TPrimary: PrimaryEntity, TRecord: DependentRecord](
    uow: ControllerUnitOfWork[TPrimary, TRecord],
    owner_id: int,
    desired: Mapping[str, DesiredRecord],
    *,
    now: datetime,
) -> WriteCounts:
    """Make the owner's live dependent records equal ``desired`` and commit."""

    dependents = uow.repositories.dependents
    diff = compute_diff(dependents.live_for_owner(owner_id), desired)
    if diff.is_empty:
        log.debug("Owner %s already up to date", owner_id)
        return WriteCounts()

    counts = apply_diff(diff, repository=dependents, owner_id=owner_id, now=now)
    uow.commit()
    log.debug(
        "Reconciled owner %s: inserted=%d, updated=%d, deleted=%d",
        owner_id,
        counts.inserted,
        counts.updated,
        counts.deleted,
    )
    return counts


def apply_diff[TRecord: DependentRecord](
    diff: DependentDiff[TRecord],
    *,
    repository: DependentRepository[TRecord],
    owner_id: int,
    now: datetime,
) -> WriteCounts:
    """Stage the diff's writes on ``repository`` without committing."""

    counts = WriteCounts()
    record_type = repository.record_type
    for wanted in diff.inserts:
        repository.add(
            record_type(
                owner_id=owner_id,
                key=wanted.key,
                content=wanted.content,
                created_at=now,
                updated_at=now,
            )
        )
        counts.inserted += 1

    for record, wanted in diff.updates:
        record.content = wanted.content
        record.touch(now)
        counts.updated += 1

    for record in diff.deletes:
        if record.soft_delete(now):
            counts.deleted += 1

    return counts
