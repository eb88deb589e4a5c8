"""Process-local high-water mark bounding each poll.

The cursor is owned by the controller loop and only mutated between ticks.
``position`` is ``None`` while rewound to the minimum, so the next poll is a
full scan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from reconciler.config.controller import CursorPolicy

if TYPE_CHECKING:
    from collections.abc import Collection
    from datetime import datetime

    from .detect import ChangeBatch

log = logging.getLogger(__name__)


@dataclass(slots=True)
class ReconciliationCursor:
    position: datetime | None = None

    def reset(self) -> None:
        """Rewind to the minimum timestamp, forcing a full re-scan."""
        self.position = None

    def advance_to(self, timestamp: datetime | None) -> bool:
        """Move forward to ``timestamp``; never moves backwards. Returns whether it moved."""
        if timestamp is None:
            return False
        if self.position is not None and timestamp <= self.position:
            return False
        self.position = timestamp
        return True


def next_position(
    batch: ChangeBatch,
    *,
    unfinished: Collection[int],
    policy: CursorPolicy,
) -> datetime | None:
    """Return the timestamp the cursor may advance to after ``batch`` was dispatched.

    ``unfinished`` holds owners that failed or were deferred. ``None`` means the
    cursor stays where it is.
    """

    if batch.is_empty:
        return None
    if policy is CursorPolicy.RETRY_QUEUE:
        return batch.high_water

    blocked = [marker.updated_at for marker in batch.markers if marker.id in unfinished]
    if not blocked:
        return batch.high_water
    earliest_blocked = min(blocked)
    # strictly below: ties with a failed owner must be re-surfaced too
    safe = [marker.updated_at for marker in batch.markers if marker.updated_at < earliest_blocked]
    if not safe:
        log.debug("Cursor held back: earliest unfinished owner is at the start of the batch")
        return None
    return max(safe)
