"""Registry enforcing at most one in-flight reconciliation per owner."""

from __future__ import annotations

import threading


class InFlightRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._owners: set[int] = set()

    def try_acquire(self, owner_id: int) -> bool:
        """Claim ``owner_id``; returns ``False`` when it is already being processed."""
        with self._lock:
            if owner_id in self._owners:
                return False
            self._owners.add(owner_id)
            return True

    def release(self, owner_id: int) -> None:
        with self._lock:
            self._owners.discard(owner_id)

    def __contains__(self, owner_id: object) -> bool:
        with self._lock:
            return owner_id in self._owners

    def __len__(self) -> int:
        with self._lock:
            return len(self._owners)

    def snapshot(self) -> frozenset[int]:
        with self._lock:
            return frozenset(self._owners)
