"""The bundled hello controller model: ``hello`` rows and their ``hello_status`` rows."""

from __future__ import annotations

from dataclasses import dataclass

from .records import DependentRecord, PrimaryEntity


@dataclass(eq=False, kw_only=True)
class Hello(PrimaryEntity):
    name: str


@dataclass(eq=False, kw_only=True)
class HelloStatus(DependentRecord):
    """Status row; the ``hello_id``/``message`` columns map to ``owner_id``/``content``."""
