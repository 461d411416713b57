"""Account-linking and maintenance defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta

from .env import env_bool, env_int

DEFAULT_JANITOR_PAGE_SIZE = 100
DEFAULT_JANITOR_MAX_DELETIONS = 5
DEFAULT_INVITE_TTL_DAYS = 30
DEFAULT_LINK_REQUEST_TTL_DAYS = 7


@dataclass(frozen=True, slots=True)
class LinkingConfig:
    janitor_page_size: int = DEFAULT_JANITOR_PAGE_SIZE
    janitor_max_deletions: int = DEFAULT_JANITOR_MAX_DELETIONS
    # Full-table scans for rows written before ids were normalized.
    legacy_alias_scan: bool = True
    invite_ttl: timedelta = field(default_factory=lambda: timedelta(days=DEFAULT_INVITE_TTL_DAYS))
    link_request_ttl: timedelta = field(
        default_factory=lambda: timedelta(days=DEFAULT_LINK_REQUEST_TTL_DAYS)
    )


@dataclass(frozen=True, slots=True)
class AdminConfig:
    admin_emails: frozenset[str] = frozenset()

    def is_admin(self, email: str | None) -> bool:
        if not email:
            return False
        return email.strip().lower() in self.admin_emails


def get_linking_config() -> LinkingConfig:
    return LinkingConfig(
        janitor_page_size=env_int(
            "LEDGERLINK_JANITOR_PAGE_SIZE", DEFAULT_JANITOR_PAGE_SIZE, minimum=1
        ),
        janitor_max_deletions=env_int(
            "LEDGERLINK_JANITOR_MAX_DELETIONS", DEFAULT_JANITOR_MAX_DELETIONS
        ),
        legacy_alias_scan=env_bool("LEDGERLINK_LEGACY_ALIAS_SCAN", True),
        invite_ttl=timedelta(
            days=env_int("LEDGERLINK_INVITE_TTL_DAYS", DEFAULT_INVITE_TTL_DAYS, minimum=1)
        ),
        link_request_ttl=timedelta(
            days=env_int(
                "LEDGERLINK_LINK_REQUEST_TTL_DAYS", DEFAULT_LINK_REQUEST_TTL_DAYS, minimum=1
            )
        ),
    )


def get_admin_config() -> AdminConfig:
    configured = [*os.getenv("ADMIN_EMAILS", "").split(","), os.getenv("ADMIN_EMAIL", "")]
    emails = frozenset(email.strip().lower() for email in configured if email.strip())
    return AdminConfig(admin_emails=emails)
