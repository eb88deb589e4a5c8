from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from reconciler.domain.errors import ReconcileFunctionError
from reconciler.domain.greeting import greet
from reconciler.domain.reconciliation import OwnerReconciler, OwnerStatus
from tests.helpers.hello import (
    add_hello,
    add_status,
    live_contents,
    purge_hello,
    soft_delete_hello,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from reconciler.adapters.sqlalchemy import SqlAlchemyHelloUnitOfWork
    from reconciler.domain.model import Hello
    from tests.helpers.clock import TickingClock


def test_live_owner_is_reconciled_through_the_reconcile_function(
    hello_unit_of_work: Callable[[], SqlAlchemyHelloUnitOfWork],
    writer_clock: TickingClock,
) -> None:
    hello_id = add_hello(hello_unit_of_work, "World", at=writer_clock())

    outcome = OwnerReconciler(hello_unit_of_work, greet).reconcile_owner(hello_id)

    assert outcome.status is OwnerStatus.RECONCILED
    assert outcome.writes.inserted == 1
    assert outcome.finished
    assert live_contents(hello_unit_of_work, hello_id) == {"Hello, World!"}


def test_soft_deleted_owner_cascades_without_calling_the_reconcile_function(
    hello_unit_of_work: Callable[[], SqlAlchemyHelloUnitOfWork],
    writer_clock: TickingClock,
) -> None:
    hello_id = add_hello(hello_unit_of_work, "World", at=writer_clock())
    add_status(hello_unit_of_work, hello_id, "Hello, World!", at=writer_clock())
    soft_delete_hello(hello_unit_of_work, hello_id, at=writer_clock())
    calls: list[int | None] = []

    def spy(hello: Hello) -> list[str]:
        calls.append(hello.id)
        return []

    outcome = OwnerReconciler(hello_unit_of_work, spy).reconcile_owner(hello_id)

    assert outcome.status is OwnerStatus.CASCADED
    assert outcome.writes.deleted == 1
    assert calls == []
    assert live_contents(hello_unit_of_work, hello_id) == set()


def test_missing_owner_is_reported_and_left_alone(
    hello_unit_of_work: Callable[[], SqlAlchemyHelloUnitOfWork],
    writer_clock: TickingClock,
) -> None:
    hello_id = add_hello(hello_unit_of_work, "World", at=writer_clock())
    add_status(hello_unit_of_work, hello_id, "Hello, World!", at=writer_clock())
    purge_hello(hello_id)

    outcome = OwnerReconciler(hello_unit_of_work, greet).reconcile_owner(hello_id)

    assert outcome.status is OwnerStatus.MISSING
    assert outcome.finished
    assert live_contents(hello_unit_of_work, hello_id) == {"Hello, World!"}


def test_reconcile_function_failure_writes_nothing(
    hello_unit_of_work: Callable[[], SqlAlchemyHelloUnitOfWork],
    writer_clock: TickingClock,
) -> None:
    hello_id = add_hello(hello_unit_of_work, "World", at=writer_clock())
    add_status(hello_unit_of_work, hello_id, "stale", at=writer_clock())

    def broken(_hello: Hello) -> list[str]:
        raise ValueError("bad mapping")

    with pytest.raises(ReconcileFunctionError):
        OwnerReconciler(hello_unit_of_work, broken).reconcile_owner(hello_id)

    assert live_contents(hello_unit_of_work, hello_id) == {"stale"}
