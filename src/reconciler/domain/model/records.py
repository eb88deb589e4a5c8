"""Primary entities, dependent records and the desired dependent state."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from .base import TrackedRow

MAX_KEY_LENGTH = 256
MAX_CONTENT_LENGTH = 256


@dataclass(eq=False, kw_only=True)
class PrimaryEntity(TrackedRow):
    """Authoritative business row; subclasses add the business fields."""


@dataclass(eq=False, kw_only=True)
class DependentRecord(TrackedRow):
    """Engine-managed row derived from one primary entity.

    ``owner_id`` references the owner without relational integrity: cascade
    semantics are enforced by the engine, not by the store.
    """

    owner_id: int
    key: str
    content: str

    def matches(self, desired: DesiredRecord) -> bool:
        return self.key == desired.key and self.content == desired.content


class DesiredRecord(BaseModel):
    """One member of the desired dependent set produced by a reconcile function."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    key: str = Field(min_length=1, max_length=MAX_KEY_LENGTH)
    content: str = Field(max_length=MAX_CONTENT_LENGTH)

    @classmethod
    def from_text(cls, text: str) -> DesiredRecord:
        return cls(key=text, content=text)
