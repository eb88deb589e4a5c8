"""Binding of one primary/dependent table pair to its reconcile function."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from reconciler.domain.model import DependentRecord, PrimaryEntity
from reconciler.domain.ports import ControllerUnitOfWork, ReconcileFunction

type UnitOfWorkFactory[TPrimary: PrimaryEntity, TRecord: DependentRecord] = Callable[
    [], ControllerUnitOfWork[TPrimary, TRecord]
]


@dataclass(slots=True, frozen=True)
class Controller[TPrimary: PrimaryEntity, TRecord: DependentRecord]:
    """Everything a control loop needs to reconcile one dependent table."""

    name: str
    unit_of_work_factory: UnitOfWorkFactory[TPrimary, TRecord]
    reconcile: ReconcileFunction[TPrimary]
