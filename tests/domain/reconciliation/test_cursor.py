from __future__ import annotations

from datetime import datetime, timedelta

from reconciler.config import CursorPolicy
from reconciler.domain.ports import ChangeMarker
from reconciler.domain.reconciliation import ChangeBatch, ReconciliationCursor, next_position
from tests.helpers.clock import EPOCH


def _at(seconds: int) -> datetime:
    return EPOCH + timedelta(seconds=seconds)


def _batch(*pairs: tuple[int, int]) -> ChangeBatch:
    markers = (ChangeMarker(id=owner_id, updated_at=_at(seconds)) for owner_id, seconds in pairs)
    return ChangeBatch(markers=tuple(markers))


def test_cursor_starts_at_the_minimum_and_moves_forward() -> None:
    cursor = ReconciliationCursor()

    assert cursor.position is None
    assert cursor.advance_to(_at(5))
    assert cursor.position == _at(5)


def test_cursor_never_moves_backwards() -> None:
    cursor = ReconciliationCursor(position=_at(10))

    assert not cursor.advance_to(_at(3))
    assert not cursor.advance_to(_at(10))
    assert not cursor.advance_to(None)
    assert cursor.position == _at(10)


def test_reset_rewinds_to_the_minimum() -> None:
    cursor = ReconciliationCursor(position=_at(10))

    cursor.reset()

    assert cursor.position is None


def test_empty_batch_keeps_the_cursor() -> None:
    for policy in CursorPolicy:
        assert next_position(ChangeBatch(), unfinished=set(), policy=policy) is None


def test_retry_queue_policy_advances_to_the_high_water_mark_despite_failures() -> None:
    batch = _batch((1, 1), (2, 2), (3, 3))

    position = next_position(batch, unfinished={2}, policy=CursorPolicy.RETRY_QUEUE)

    assert position == _at(3)


def test_hold_back_policy_stops_strictly_below_the_earliest_failure() -> None:
    batch = _batch((1, 1), (2, 2), (3, 2), (4, 3))

    position = next_position(batch, unfinished={3, 4}, policy=CursorPolicy.HOLD_BACK)

    # owner 2 shares the failed timestamp, so it is surfaced again as well
    assert position == _at(1)


def test_hold_back_policy_without_failures_uses_the_high_water_mark() -> None:
    batch = _batch((1, 1), (2, 4))

    assert next_position(batch, unfinished=set(), policy=CursorPolicy.HOLD_BACK) == _at(4)


def test_hold_back_policy_does_not_move_when_the_first_owner_failed() -> None:
    batch = _batch((1, 1), (2, 2))

    assert next_position(batch, unfinished={1}, policy=CursorPolicy.HOLD_BACK) is None
