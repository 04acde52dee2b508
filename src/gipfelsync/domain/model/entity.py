"""Base building block: identity plus store bookkeeping timestamps."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, ClassVar
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from gipfelsync.domain.model.enums import Collection


def new_id() -> UUID:
    return uuid4()


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(eq=False, kw_only=True)
class Entity:
    """Internal identity exists immediately in the domain."""

    id: UUID = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    # class-level discriminator; subclasses must override
    COLLECTION: ClassVar[Collection]

    @property
    def collection(self) -> Collection:
        return self.COLLECTION

    def touch(self, now: datetime | None = None) -> None:
        self.updated_at = now or utcnow()
