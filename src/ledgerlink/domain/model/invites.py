"""Invite tokens and link requests: the explicit triggers of a claim."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .entity import Entity, utcnow
from .enums import LinkRequestStatus

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class InviteToken(Entity):
    token_id: str
    creator_id: str
    creator_email: str
    target_member_id: str
    target_member_name: str
    expires_at: datetime
    created_at: datetime = field(default_factory=utcnow)
    claimed_by: str | None = None
    claimed_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now


@dataclass(eq=False, kw_only=True)
class LinkRequest(Entity):
    request_id: str
    requester_id: str
    requester_email: str
    requester_name: str
    recipient_email: str
    target_member_id: str
    target_member_name: str
    expires_at: datetime
    status: LinkRequestStatus = LinkRequestStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    rejected_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now
