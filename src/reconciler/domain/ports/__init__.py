"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    ChangeMarker,
    DependentRepository,
    OrphanedRecord,
    PrimaryRepository,
    Repository,
)
from .reconcile import DesiredItem, ReconcileFunction
from .unit_of_work import (
    ControllerRepositories,
    ControllerUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "ChangeMarker",
    "ControllerRepositories",
    "ControllerUnitOfWork",
    "DependentRepository",
    "DesiredItem",
    "OrphanedRecord",
    "PrimaryRepository",
    "ReconcileFunction",
    "Repository",
    "RepositoryCollection",
    "UnitOfWork",
]
