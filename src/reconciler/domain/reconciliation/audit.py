"""Reporting of dependent records that violate the cascade invariant.

Records found here are reported, never repaired; the regular cascade path is the
only writer of tombstones.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Collection
    from datetime import datetime

    from reconciler.domain.ports import ControllerUnitOfWork, OrphanedRecord

log = logging.getLogger(__name__)


def find_inconsistencies(
    unit_of_work_factory: Callable[[], ControllerUnitOfWork],
    *,
    exclude_owners: Collection[int] = (),
    changed_after: datetime | None = None,
) -> list[OrphanedRecord]:
    """Return live dependent records whose owner is soft-deleted or missing.

    Owners in ``exclude_owners`` (typically those still waiting for a retry)
    are skipped; the next cascade handles them. So are owners updated after
    ``changed_after``, which the next poll surfaces again.
    """

    with unit_of_work_factory() as uow:
        orphans = [
            orphan
            for orphan in uow.repositories.dependents.orphaned()
            if orphan.owner_id not in exclude_owners
            and not _pending(orphan, changed_after)
        ]

    for orphan in orphans:
        reason = "soft-deleted" if orphan.owner_exists else "missing"
        log.warning(
            "Inconsistency: live record %s belongs to %s owner %s",
            orphan.record_id,
            reason,
            orphan.owner_id,
        )
    return orphans


def _pending(orphan: OrphanedRecord, changed_after: datetime | None) -> bool:
    if changed_after is None or orphan.owner_updated_at is None:
        return False
    return orphan.owner_updated_at > changed_after
