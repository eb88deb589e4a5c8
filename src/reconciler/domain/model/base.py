"""
Base building blocks:
store-assigned identity, timestamps and the soft-delete lifecycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Protocol


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def utcnow() -> datetime:
    return datetime.now(UTC)


class Lifecycle(StrEnum):
    LIVE = "live"
    DELETED = "deleted"


@dataclass(eq=False, kw_only=True)
class TrackedRow:
    """Row with creation, update and soft-delete timestamps.

    ``deleted_at`` is the only signal for removal: a row is live exactly when it
    is ``None``. Physical absence of a row never means "deleted".
    """

    id: int | None = None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    @property
    def is_live(self) -> bool:
        return self.deleted_at is None

    @property
    def lifecycle(self) -> Lifecycle:
        return Lifecycle.LIVE if self.is_live else Lifecycle.DELETED

    def touch(self, at: datetime) -> None:
        """Refresh ``updated_at`` without ever moving it backwards."""
        if at > self.updated_at:
            self.updated_at = at

    def soft_delete(self, at: datetime) -> bool:
        """Tombstone the row. Returns ``False`` when it was already deleted."""
        if self.deleted_at is not None:
            return False
        self.deleted_at = at
        self.touch(at)
        return True
