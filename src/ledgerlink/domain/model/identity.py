"""Alias edges between member identities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .entity import Entity, utcnow

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class MemberAlias(Entity):
    """Directed edge ``alias_member_id -> canonical_member_id``.

    Edges are append-only: they are written once by a claim or merge and never
    rewritten, so the table doubles as the audit trail of every merge decision.
    """

    alias_member_id: str
    canonical_member_id: str
    account_email: str
    created_at: datetime = field(default_factory=utcnow)
