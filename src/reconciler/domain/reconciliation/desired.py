"""Validation of reconcile function output into a keyed desired set."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from pydantic import ValidationError

from reconciler.domain.errors import ReconcileFunctionError
from reconciler.domain.model import DesiredRecord

if TYPE_CHECKING:
    from reconciler.domain.ports import DesiredItem, ReconcileFunction


def evaluate[TPrimary](
    reconcile: ReconcileFunction[TPrimary],
    owner: TPrimary,
    *,
    owner_id: int | None = None,
) -> dict[str, DesiredRecord]:
    """Invoke ``reconcile`` for ``owner`` and validate what it returns."""

    try:
        output = reconcile(owner)
        return normalize_desired(output, owner_id=owner_id)
    except ReconcileFunctionError:
        raise
    except Exception as exc:
        raise ReconcileFunctionError(
            f"Reconcile function failed for owner {owner_id}: {exc}", owner_id=owner_id
        ) from exc


def normalize_desired(
    output: Iterable[DesiredItem] | None,
    *,
    owner_id: int | None = None,
) -> dict[str, DesiredRecord]:
    """Return the desired records keyed by their stable match key.

    Identical duplicates collapse; two members with one key and different
    content are rejected.
    """

    if output is None or isinstance(output, (str, bytes, Mapping)):
        raise ReconcileFunctionError(
            f"Reconcile function must return an iterable of records, got {type(output).__name__}",
            owner_id=owner_id,
        )

    desired: dict[str, DesiredRecord] = {}
    for item in output:
        record = _coerce(item, owner_id=owner_id)
        existing = desired.get(record.key)
        if existing is not None and existing != record:
            raise ReconcileFunctionError(
                f"Conflicting desired content for key {record.key!r}", owner_id=owner_id
            )
        desired[record.key] = record
    return desired


def _coerce(item: object, *, owner_id: int | None) -> DesiredRecord:
    try:
        if isinstance(item, DesiredRecord):
            return item
        if isinstance(item, str):
            return DesiredRecord.from_text(item)
        if isinstance(item, Mapping):
            return DesiredRecord.model_validate(item)
    except ValidationError as exc:
        raise ReconcileFunctionError(
            f"Invalid desired record {item!r}: {exc.error_count()} validation error(s)",
            owner_id=owner_id,
        ) from exc
    raise ReconcileFunctionError(
        f"Unsupported desired record type {type(item).__name__}", owner_id=owner_id
    )
