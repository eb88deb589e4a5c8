from __future__ import annotations

from typing import TYPE_CHECKING

from reconciler.domain.reconciliation import ChangeDetector
from tests.helpers.hello import add_hello, rename_hello, soft_delete_hello

if TYPE_CHECKING:
    from collections.abc import Callable

    from reconciler.adapters.sqlalchemy import SqlAlchemyHelloUnitOfWork
    from tests.helpers.clock import TickingClock


def test_poll_from_the_minimum_returns_every_row_in_timestamp_order(
    hello_unit_of_work: Callable[[], SqlAlchemyHelloUnitOfWork],
    writer_clock: TickingClock,
) -> None:
    first = add_hello(hello_unit_of_work, "Ann", at=writer_clock())
    second = add_hello(hello_unit_of_work, "Bob", at=writer_clock())
    rename_hello(hello_unit_of_work, first, "Anna", at=writer_clock())

    batch = ChangeDetector(hello_unit_of_work).poll(None)

    assert batch.owner_ids == (second, first)
    timestamps = [marker.updated_at for marker in batch.markers]
    assert timestamps == sorted(timestamps)
    assert batch.high_water == timestamps[-1]


def test_poll_is_strictly_after_the_cursor(
    hello_unit_of_work: Callable[[], SqlAlchemyHelloUnitOfWork],
    writer_clock: TickingClock,
) -> None:
    add_hello(hello_unit_of_work, "Ann", at=writer_clock())
    cursor = writer_clock()
    add_hello(hello_unit_of_work, "Bob", at=cursor)
    later = add_hello(hello_unit_of_work, "Cid", at=writer_clock())

    batch = ChangeDetector(hello_unit_of_work).poll(cursor)

    assert batch.owner_ids == (later,)


def test_soft_deletes_are_surfaced_like_updates(
    hello_unit_of_work: Callable[[], SqlAlchemyHelloUnitOfWork],
    writer_clock: TickingClock,
) -> None:
    hello_id = add_hello(hello_unit_of_work, "Ann", at=writer_clock())
    cursor = writer_clock()
    soft_delete_hello(hello_unit_of_work, hello_id, at=writer_clock())

    batch = ChangeDetector(hello_unit_of_work).poll(cursor)

    assert batch.owner_ids == (hello_id,)


def test_full_page_pulls_in_every_row_sharing_the_last_timestamp(
    hello_unit_of_work: Callable[[], SqlAlchemyHelloUnitOfWork],
    writer_clock: TickingClock,
) -> None:
    add_hello(hello_unit_of_work, "Ann", at=writer_clock())
    tied_at = writer_clock()
    tied = {add_hello(hello_unit_of_work, name, at=tied_at) for name in ("Bob", "Cid", "Dee")}
    add_hello(hello_unit_of_work, "Eve", at=writer_clock())

    batch = ChangeDetector(hello_unit_of_work, batch_size=2).poll(None)

    assert len(batch) == 4
    assert tied <= set(batch.owner_ids)
    assert batch.high_water == tied_at


def test_empty_table_yields_an_empty_batch(
    hello_unit_of_work: Callable[[], SqlAlchemyHelloUnitOfWork],
) -> None:
    batch = ChangeDetector(hello_unit_of_work, batch_size=10).poll(None)

    assert batch.is_empty
    assert batch.high_water is None
