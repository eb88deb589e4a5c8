"""Reconciliation core: keep dependent records consistent with their owners.

Layered flow for one tick:
1) detect owners updated after the cursor (soft-deletes included)
2) route each owner: soft-deleted owners cascade, live owners reconcile
3) evaluate the reconcile function into a keyed desired set
4) diff live records against the desired set by key
5) apply inserts, in-place updates and soft-deletes in one transaction
6) advance the cursor according to the cursor policy
"""

from __future__ import annotations

from .apply import WriteCounts, apply_diff, reconcile_dependents
from .audit import find_inconsistencies
from .cascade import cascade_owner
from .cursor import ReconciliationCursor, next_position
from .desired import evaluate, normalize_desired
from .detect import ChangeBatch, ChangeDetector
from .diff import DependentDiff, compute_diff
from .dispatch import OwnerOutcome, OwnerReconciler, OwnerStatus

__all__ = [
    "ChangeBatch",
    "ChangeDetector",
    "DependentDiff",
    "OwnerOutcome",
    "OwnerReconciler",
    "OwnerStatus",
    "ReconciliationCursor",
    "WriteCounts",
    "apply_diff",
    "cascade_owner",
    "compute_diff",
    "evaluate",
    "find_inconsistencies",
    "next_position",
    "normalize_desired",
    "reconcile_dependents",
]
