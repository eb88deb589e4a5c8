"""Domain model for reconciled tables."""

from __future__ import annotations

from .base import Clock, Lifecycle, TrackedRow, utcnow
from .hello import Hello, HelloStatus
from .records import (
    MAX_CONTENT_LENGTH,
    MAX_KEY_LENGTH,
    DependentRecord,
    DesiredRecord,
    PrimaryEntity,
)

__all__ = [
    "MAX_CONTENT_LENGTH",
    "MAX_KEY_LENGTH",
    "Clock",
    "DependentRecord",
    "DesiredRecord",
    "Hello",
    "HelloStatus",
    "Lifecycle",
    "PrimaryEntity",
    "TrackedRow",
    "utcnow",
]
