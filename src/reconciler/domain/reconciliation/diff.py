"""Pure diff between the live dependent records of one owner and its desired set."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from reconciler.domain.model import DependentRecord, DesiredRecord


@dataclass(slots=True)
class DependentDiff[TRecord: DependentRecord]:
    inserts: list[DesiredRecord] = field(default_factory=list["DesiredRecord"])
    updates: list[tuple[TRecord, DesiredRecord]] = field(
        default_factory=list[tuple["TRecord", "DesiredRecord"]]
    )
    deletes: list[TRecord] = field(default_factory=list["TRecord"])

    @property
    def is_empty(self) -> bool:
        return not (self.inserts or self.updates or self.deletes)


def _age(record: DependentRecord) -> tuple[object, int]:
    return (record.created_at, record.id if record.id is not None else 0)


def compute_diff[TRecord: DependentRecord](
    live: Iterable[TRecord],
    desired: Mapping[str, DesiredRecord],
) -> DependentDiff[TRecord]:
    """Compute the minimal writes turning ``live`` into ``desired``.

    Records are matched by key, never by row id. When several live records
    share a key the oldest one is kept and the others are deleted.
    """

    diff: DependentDiff[TRecord] = DependentDiff()
    by_key: dict[str, TRecord] = {}
    for record in sorted(live, key=_age):
        if not record.is_live:
            continue
        if record.key in by_key:
            diff.deletes.append(record)
            continue
        by_key[record.key] = record

    for key, wanted in desired.items():
        current = by_key.pop(key, None)
        if current is None:
            diff.inserts.append(wanted)
        elif not current.matches(wanted):
            diff.updates.append((current, wanted))

    diff.deletes.extend(by_key.values())
    return diff
