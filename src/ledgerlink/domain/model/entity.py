"""Base building blocks: surrogate identity and timestamps."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4


def new_id() -> UUID:
    return uuid4()


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(eq=False, kw_only=True)
class Entity:
    """Stored document with a surrogate key.

    Domain keys (account ids, group ids, member ids) live on the subclasses; ``id``
    only identifies the stored row.
    """

    id: UUID = field(default_factory=new_id)
