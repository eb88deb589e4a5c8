"""Failure taxonomy shared by the reconciliation core and its adapters."""

from __future__ import annotations


class ReconcilerError(RuntimeError):
    """Base class for reconciliation failures."""


class TransientStoreError(ReconcilerError):
    """Connectivity loss, lock timeout or deadlock; safe to retry the transaction."""


class FatalStoreError(ReconcilerError):
    """The store cannot be reached at all; the controller loop must stop."""


class ReconcileFunctionError(ReconcilerError):
    """The reconcile function raised or produced invalid desired state."""

    def __init__(self, message: str, *, owner_id: int | None = None) -> None:
        super().__init__(message)
        self.owner_id = owner_id
