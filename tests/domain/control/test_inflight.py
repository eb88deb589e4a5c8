from __future__ import annotations

from reconciler.domain.control import InFlightRegistry


def test_an_owner_can_only_be_claimed_once() -> None:
    registry = InFlightRegistry()

    assert registry.try_acquire(1)
    assert not registry.try_acquire(1)
    assert registry.try_acquire(2)
    assert 1 in registry
    assert len(registry) == 2


def test_release_makes_the_owner_available_again() -> None:
    registry = InFlightRegistry()
    registry.try_acquire(1)

    registry.release(1)
    registry.release(1)

    assert 1 not in registry
    assert registry.snapshot() == frozenset()
    assert registry.try_acquire(1)
