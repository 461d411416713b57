"""Normalization of member identities and emails.

Every comparison between member ids goes through ``normalize_member_id``; stored
values may still carry legacy casing or whitespace.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


def normalize_member_id(member_id: str) -> str:
    return member_id.strip().lower()


def normalize_member_ids(member_ids: Iterable[str | None]) -> tuple[str, ...]:
    """Normalize, drop empties and dedupe while keeping first-seen order."""

    seen: dict[str, None] = {}
    for member_id in member_ids:
        if not member_id:
            continue
        normalized = normalize_member_id(member_id)
        if normalized:
            seen.setdefault(normalized, None)
    return tuple(seen)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_emails(emails: Iterable[str | None]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for email in emails:
        if not email:
            continue
        normalized = normalize_email(email)
        if normalized:
            seen.setdefault(normalized, None)
    return tuple(seen)


def same_member(left: str | None, right: str | None) -> bool:
    if left is None or right is None:
        return False
    return normalize_member_id(left) == normalize_member_id(right)
