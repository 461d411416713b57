"""Member id lookups for accounts and friend rows.

``IndexedMemberLookup`` only issues indexed queries (normalized value, then the
raw value). ``LegacyScanMemberLookup`` adds full scans that compare normalized
values, for rows written before ids were normalized. Which one is used follows
the ``legacy_alias_scan`` setting, like the alias lookups in ``graph``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from .normalize import normalize_member_id, normalize_member_ids

if TYPE_CHECKING:
    from ledgerlink.domain.model import Account, FriendRecord
    from ledgerlink.domain.ports import AccountRepository, FriendRepository, LinkingRepositories

log = logging.getLogger(__name__)


class MemberLookup(Protocol):
    def find_account(self, member_id: str) -> Account | None: ...

    def find_friend(self, owner_email: str, member_id: str) -> FriendRecord | None: ...


class IndexedMemberLookup:
    def __init__(self, accounts: AccountRepository, friends: FriendRepository) -> None:
        self.accounts = accounts
        self.friends = friends

    def find_account(self, member_id: str) -> Account | None:
        """Account whose canonical id is ``member_id`` or has a direct alias edge from it."""

        if not normalize_member_id(member_id):
            return None
        return self.accounts.find_by_member_id(member_id)

    def find_friend(self, owner_email: str, member_id: str) -> FriendRecord | None:
        normalized = normalize_member_id(member_id)
        record = self.friends.get_by_member(owner_email, normalized)
        if record is None and member_id != normalized:
            record = self.friends.get_by_member(owner_email, member_id)
        return record


class LegacyScanMemberLookup(IndexedMemberLookup):
    """Indexed lookups plus scans over unnormalized legacy rows."""

    def find_account(self, member_id: str) -> Account | None:
        account = super().find_account(member_id)
        if account is not None:
            return account
        normalized = normalize_member_id(member_id)
        if not normalized:
            return None
        for candidate in self.accounts.list_all():
            if (
                candidate.canonical_member_id
                and normalize_member_id(candidate.canonical_member_id) == normalized
            ) or normalized in normalize_member_ids(candidate.alias_member_ids):
                log.debug("Account for %s found by legacy scan", normalized)
                return candidate
        return None

    def find_friend(self, owner_email: str, member_id: str) -> FriendRecord | None:
        record = super().find_friend(owner_email, member_id)
        if record is not None:
            return record
        normalized = normalize_member_id(member_id)
        for candidate in self.friends.list_by_owner(owner_email):
            if normalize_member_id(candidate.member_id) == normalized:
                log.debug("Friend %s of %s found by legacy scan", normalized, owner_email)
                return candidate
        return None


def member_lookup(repositories: LinkingRepositories, *, legacy_scan: bool) -> MemberLookup:
    if legacy_scan:
        return LegacyScanMemberLookup(repositories.accounts, repositories.friends)
    return IndexedMemberLookup(repositories.accounts, repositories.friends)
