"""Change detection by polling the primary table's update timestamps."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from reconciler.domain.ports import ChangeMarker, ControllerUnitOfWork

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChangeBatch:
    """Primary rows updated after the cursor, ascending by ``updated_at``.

    Ordering among rows with identical timestamps is unspecified.
    """

    markers: tuple[ChangeMarker, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.markers

    @property
    def owner_ids(self) -> tuple[int, ...]:
        return tuple(dict.fromkeys(marker.id for marker in self.markers))

    @property
    def high_water(self) -> datetime | None:
        if not self.markers:
            return None
        return max(marker.updated_at for marker in self.markers)

    def __len__(self) -> int:
        return len(self.markers)


class ChangeDetector:
    """Find primary rows that are new, updated or newly soft-deleted since a cursor."""

    def __init__(
        self,
        unit_of_work_factory: Callable[[], ControllerUnitOfWork],
        *,
        batch_size: int | None = None,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._batch_size = batch_size

    def poll(self, after: datetime | None) -> ChangeBatch:
        """Return rows with ``updated_at`` strictly greater than ``after``."""

        with self._unit_of_work_factory() as uow:
            primaries = uow.repositories.primaries
            markers = primaries.changed_since(after, limit=self._batch_size)
            if self._batch_size is not None and len(markers) >= self._batch_size:
                # a full page may have cut through a run of equal timestamps
                last = markers[-1].updated_at
                seen = {marker.id for marker in markers}
                markers.extend(
                    marker for marker in primaries.changed_at(last) if marker.id not in seen
                )

        log.debug("Detected %d changed owners after %s", len(markers), after)
        return ChangeBatch(markers=tuple(markers))
