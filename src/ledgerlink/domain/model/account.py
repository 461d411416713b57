"""Registered accounts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .entity import Entity, utcnow

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class Account(Entity):
    account_id: str
    email: str
    display_name: str
    first_name: str | None = None
    last_name: str | None = None

    # Assigned at registration; the linking engine never rewrites it.
    canonical_member_id: str | None = None
    # Projection of the alias graph, written only by the claim path.
    alias_member_ids: tuple[str, ...] = ()

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None

    @property
    def label(self) -> str:
        return self.display_name or self.email or "Unknown"
