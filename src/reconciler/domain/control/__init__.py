"""Scheduling of reconciliation: loops, retries and the controller host."""

from __future__ import annotations

from .controller import Controller, UnitOfWorkFactory
from .host import ControllerHost
from .inflight import InFlightRegistry
from .loop import ControllerLoop, LoopState, LoopStats, TickResult
from .retry import build_retrying

__all__ = [
    "Controller",
    "ControllerHost",
    "ControllerLoop",
    "InFlightRegistry",
    "LoopState",
    "LoopStats",
    "TickResult",
    "UnitOfWorkFactory",
    "build_retrying",
]
