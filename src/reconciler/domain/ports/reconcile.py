"""Port for the user-supplied mapping from an owner to its desired dependents."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping

from reconciler.domain.model import DesiredRecord

type DesiredItem = DesiredRecord | Mapping[str, object] | str

# Must be pure: no store writes, same output for the same entity fields.
type ReconcileFunction[TPrimary] = Callable[[TPrimary], Iterable[DesiredItem]]
