"""Propagate an owner's soft-delete to all of its dependent records."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .apply import WriteCounts

if TYPE_CHECKING:
    from datetime import datetime

    from reconciler.domain.model import DependentRecord, PrimaryEntity
    from reconciler.domain.ports import ControllerUnitOfWork

log = logging.getLogger(__name__)


def cascade_owner[TPrimary: PrimaryEntity, TRecord: DependentRecord](
    uow: ControllerUnitOfWork[TPrimary, TRecord],
    owner_id: int,
    *,
    now: datetime,
) -> WriteCounts:
    """Soft-delete every live dependent record of ``owner_id`` in one transaction.

    A soft-deleted owner has no desired state, so the reconcile function is not
    consulted. Records that are already deleted are left untouched.
    """

    counts = WriteCounts()
    for record in uow.repositories.dependents.live_for_owner(owner_id):
        if record.soft_delete(now):
            counts.deleted += 1

    if counts.deleted:
        uow.commit()
        log.info("Cascaded soft-delete of owner %s to %d record(s)", owner_id, counts.deleted)
    return counts
