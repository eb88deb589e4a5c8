"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import or_, select

from reconciler.domain.model import DependentRecord, PrimaryEntity
from reconciler.domain.ports import ChangeMarker, OrphanedRecord

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy import Select, Table
    from sqlalchemy.orm import Session


class SqlAlchemyPrimaryRepository[TPrimary: PrimaryEntity]:
    """Read side of a primary table, ordered by ``updated_at`` for polling."""

    def __init__(self, session: Session, entity_cls: type[TPrimary], table: Table) -> None:
        self.session = session
        self._entity_cls = entity_cls
        self._table = table

    def add(self, entity: TPrimary) -> None:
        self.session.add(entity)

    def get(self, entity_id: int, *, for_update: bool = False) -> TPrimary | None:
        stmt = select(self._entity_cls).where(self._table.c.id == entity_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def changed_since(
        self, after: datetime | None, *, limit: int | None = None
    ) -> list[ChangeMarker]:
        columns = self._table.c
        stmt = select(columns.id, columns.updated_at).order_by(columns.updated_at, columns.id)
        if after is not None:
            stmt = stmt.where(columns.updated_at > after)
        if limit is not None:
            stmt = stmt.limit(limit)
        return self._markers(stmt)

    def changed_at(self, at: datetime) -> list[ChangeMarker]:
        columns = self._table.c
        stmt = (
            select(columns.id, columns.updated_at)
            .where(columns.updated_at == at)
            .order_by(columns.id)
        )
        return self._markers(stmt)

    def _markers(self, stmt: Select[Any]) -> list[ChangeMarker]:
        return [
            ChangeMarker(id=row.id, updated_at=row.updated_at) for row in self.session.execute(stmt)
        ]


class SqlAlchemyDependentRepository[TRecord: DependentRecord]:
    """Engine-owned dependent table; the owner table is only read for audits."""

    def __init__(
        self,
        session: Session,
        record_cls: type[TRecord],
        table: Table,
        owner_table: Table,
    ) -> None:
        self.session = session
        self._record_cls = record_cls
        self._table = table
        self._owner_table = owner_table

    @property
    def record_type(self) -> type[TRecord]:
        return self._record_cls

    def add(self, entity: TRecord) -> None:
        self.session.add(entity)

    def live_for_owner(self, owner_id: int) -> list[TRecord]:
        columns = self._table.c
        stmt = (
            select(self._record_cls)
            .where(columns.owner_id == owner_id)
            .where(columns.deleted_at.is_(None))
            .order_by(columns.created_at, columns.id)
        )
        return list(self.session.execute(stmt).scalars())

    def all_for_owner(self, owner_id: int) -> list[TRecord]:
        columns = self._table.c
        stmt = (
            select(self._record_cls)
            .where(columns.owner_id == owner_id)
            .order_by(columns.created_at, columns.id)
        )
        return list(self.session.execute(stmt).scalars())

    def orphaned(self) -> list[OrphanedRecord]:
        records = self._table
        owners = self._owner_table.alias("owner")
        stmt = (
            select(
                records.c.id,
                records.c.owner_id.label("owner_id"),
                owners.c.id.label("owner_row_id"),
                owners.c.updated_at.label("owner_updated_at"),
            )
            .select_from(records.outerjoin(owners, owners.c.id == records.c.owner_id))
            .where(records.c.deleted_at.is_(None))
            .where(or_(owners.c.id.is_(None), owners.c.deleted_at.is_not(None)))
            .order_by(records.c.owner_id, records.c.id)
        )
        return [
            OrphanedRecord(
                record_id=row.id,
                owner_id=row.owner_id,
                owner_exists=row.owner_row_id is not None,
                owner_updated_at=row.owner_updated_at,
            )
            for row in self.session.execute(stmt)
        ]
