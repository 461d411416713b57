"""Per-account address book."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .entity import Entity, utcnow

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class FriendRecord(Entity):
    """One row per ``(account_email, member_id)``.

    The row becomes *linked* once the member identity is claimed by a real account;
    the ``linked_*`` fields then point at that account.
    """

    account_email: str
    member_id: str
    name: str
    nickname: str | None = None
    original_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    has_linked_account: bool = False
    linked_account_id: str | None = None
    linked_account_email: str | None = None
    linked_member_id: str | None = None

    updated_at: datetime = field(default_factory=utcnow)
