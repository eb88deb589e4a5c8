"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from reconciler.domain.model import DependentRecord, PrimaryEntity

if TYPE_CHECKING:
    from types import TracebackType

    from reconciler.domain.ports.persistence import DependentRepository, PrimaryRepository


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection.

    Implementations translate transient store failures raised inside the
    ``with`` block into ``TransientStoreError`` when the block exits.
    """

    @property
    def repositories(self) -> TRepositories: ...  # the repo list itself should be immutable

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def ping(self) -> None: ...


@dataclass(slots=True)
class ControllerRepositories[TPrimary: PrimaryEntity, TRecord: DependentRecord](
    RepositoryCollection
):
    """Primary and dependent tables reconciled by one controller."""

    primaries: PrimaryRepository[TPrimary]
    dependents: DependentRepository[TRecord]


type ControllerUnitOfWork[TPrimary: PrimaryEntity, TRecord: DependentRecord] = UnitOfWork[
    ControllerRepositories[TPrimary, TRecord]
]
