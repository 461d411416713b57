"""Persistent state for scheduled maintenance jobs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .entity import Entity, utcnow

if TYPE_CHECKING:
    from datetime import datetime

DEFAULT_JANITOR_STATE_KEY = "default"


@dataclass(eq=False, kw_only=True)
class JanitorState(Entity):
    key: str = DEFAULT_JANITOR_STATE_KEY
    friends_cursor: str | None = None
    updated_at: datetime = field(default_factory=utcnow)
