"""Ports for reading and writing reconciled tables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from reconciler.domain.model import DependentRecord, PrimaryEntity

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class ChangeMarker:
    """Identifier and update timestamp of a primary row seen by the detector."""

    id: int
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class OrphanedRecord:
    """Live dependent record whose owner is soft-deleted or gone."""

    record_id: int
    owner_id: int
    owner_exists: bool
    owner_updated_at: datetime | None = None


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent row store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class PrimaryRepository[TPrimary: PrimaryEntity](Repository[TPrimary], Protocol):
    """Read access to the primary table (plus ``add`` for external writers)."""

    def get(self, entity_id: int, *, for_update: bool = False) -> TPrimary | None: ...

    def changed_since(
        self, after: datetime | None, *, limit: int | None = None
    ) -> list[ChangeMarker]: ...

    def changed_at(self, at: datetime) -> list[ChangeMarker]: ...


@runtime_checkable
class DependentRepository[TRecord: DependentRecord](Repository[TRecord], Protocol):
    """Access to one dependent table, owned by the engine."""

    @property
    def record_type(self) -> type[TRecord]: ...

    def live_for_owner(self, owner_id: int) -> list[TRecord]: ...

    def all_for_owner(self, owner_id: int) -> list[TRecord]: ...

    def orphaned(self) -> list[OrphanedRecord]: ...
