from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from reconciler.domain.reconciliation import find_inconsistencies
from tests.helpers.hello import add_hello, add_status, purge_hello, soft_delete_hello

if TYPE_CHECKING:
    from collections.abc import Callable

    import pytest

    from reconciler.adapters.sqlalchemy import SqlAlchemyHelloUnitOfWork
    from tests.helpers.clock import TickingClock


def test_consistent_tables_report_nothing(
    hello_unit_of_work: Callable[[], SqlAlchemyHelloUnitOfWork],
    writer_clock: TickingClock,
) -> None:
    hello_id = add_hello(hello_unit_of_work, "Ann", at=writer_clock())
    add_status(hello_unit_of_work, hello_id, "Hello, Ann!", at=writer_clock())
    gone = add_hello(hello_unit_of_work, "Bob", at=writer_clock())
    deleted_at = writer_clock()
    add_status(hello_unit_of_work, gone, "Hello, Bob!", at=deleted_at, deleted_at=deleted_at)
    soft_delete_hello(hello_unit_of_work, gone, at=writer_clock())

    assert find_inconsistencies(hello_unit_of_work) == []


def test_live_records_of_deleted_or_missing_owners_are_reported(
    hello_unit_of_work: Callable[[], SqlAlchemyHelloUnitOfWork],
    writer_clock: TickingClock,
    caplog: pytest.LogCaptureFixture,
) -> None:
    soft_deleted = add_hello(hello_unit_of_work, "Ann", at=writer_clock())
    soft_record = add_status(hello_unit_of_work, soft_deleted, "Hello, Ann!", at=writer_clock())
    soft_delete_hello(hello_unit_of_work, soft_deleted, at=writer_clock())
    purged = add_hello(hello_unit_of_work, "Bob", at=writer_clock())
    purged_record = add_status(hello_unit_of_work, purged, "Hello, Bob!", at=writer_clock())
    purge_hello(purged)

    with caplog.at_level(logging.WARNING):
        orphans = find_inconsistencies(hello_unit_of_work)

    found = {(o.record_id, o.owner_id, o.owner_exists) for o in orphans}
    assert found == {(soft_record, soft_deleted, True), (purged_record, purged, False)}
    assert "Inconsistency" in caplog.text


def test_excluded_owners_are_skipped(
    hello_unit_of_work: Callable[[], SqlAlchemyHelloUnitOfWork],
    writer_clock: TickingClock,
) -> None:
    hello_id = add_hello(hello_unit_of_work, "Ann", at=writer_clock())
    add_status(hello_unit_of_work, hello_id, "Hello, Ann!", at=writer_clock())
    soft_delete_hello(hello_unit_of_work, hello_id, at=writer_clock())

    assert find_inconsistencies(hello_unit_of_work, exclude_owners={hello_id}) == []


def test_owners_changed_after_the_cursor_are_left_to_the_next_poll(
    hello_unit_of_work: Callable[[], SqlAlchemyHelloUnitOfWork],
    writer_clock: TickingClock,
) -> None:
    hello_id = add_hello(hello_unit_of_work, "Ann", at=writer_clock())
    add_status(hello_unit_of_work, hello_id, "Hello, Ann!", at=writer_clock())
    polled_through = writer_clock()
    deleted_at = writer_clock()
    soft_delete_hello(hello_unit_of_work, hello_id, at=deleted_at)

    assert find_inconsistencies(hello_unit_of_work, changed_after=polled_through) == []
    [orphan] = find_inconsistencies(hello_unit_of_work, changed_after=deleted_at)
    assert orphan.owner_id == hello_id
    assert orphan.owner_updated_at == deleted_at
