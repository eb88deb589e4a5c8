"""Reconcile function of the bundled hello controller."""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from reconciler.domain.model import MAX_CONTENT_LENGTH, DesiredRecord

if TYPE_CHECKING:
    from reconciler.domain.model import Hello

GREETING_KEY: Final[str] = "greeting"


def greeting_message(name: str) -> str:
    return f"Hello, {name}!"[:MAX_CONTENT_LENGTH]


def greet(hello: Hello) -> list[DesiredRecord]:
    """Every live hello owns exactly one status row carrying its greeting."""

    return [DesiredRecord(key=GREETING_KEY, content=greeting_message(hello.name))]
