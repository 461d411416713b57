from __future__ import annotations

from ledgerlink.domain.linking.lookup import (
    IndexedMemberLookup,
    LegacyScanMemberLookup,
    member_lookup,
)
from ledgerlink.domain.model import MemberAlias
from tests.helpers.ledger import make_account, make_friend, make_repositories

ALICE = "alice@example.com"


def test_indexed_lookup_uses_canonical_and_alias_edges() -> None:
    repos = make_repositories()
    bob = make_account("bob@example.com", "cb", aliases=("stale",))
    repos.accounts.add(bob)
    repos.aliases.add(
        MemberAlias(alias_member_id="t1", canonical_member_id="cb", account_email=ALICE)
    )
    lookup = IndexedMemberLookup(repos.accounts, repos.friends)

    assert lookup.find_account(" CB ") is bob
    assert lookup.find_account("T1") is bob
    assert lookup.find_account("stale") is None
    assert lookup.find_account("") is None


def test_legacy_lookup_scans_unnormalized_accounts() -> None:
    repos = make_repositories()
    legacy = make_account("bob@example.com", " CB ", aliases=(" Old ",))
    repos.accounts.add(legacy)

    indexed = member_lookup(repos, legacy_scan=False)
    scanning = member_lookup(repos, legacy_scan=True)

    assert isinstance(scanning, LegacyScanMemberLookup)
    assert indexed.find_account("cb") is None
    assert scanning.find_account("cb") is legacy
    assert scanning.find_account("old") is legacy
    assert scanning.find_account("missing") is None


def test_friend_lookup_scans_owner_rows_only_when_enabled() -> None:
    repos = make_repositories()
    legacy = make_friend(ALICE, " T1 ", "Bobby")
    exact = make_friend(ALICE, "m1", "Sam")
    repos.friends.add(legacy)
    repos.friends.add(exact)

    indexed = member_lookup(repos, legacy_scan=False)
    scanning = member_lookup(repos, legacy_scan=True)

    assert indexed.find_friend(ALICE, "M1") is exact
    assert indexed.find_friend(ALICE, "t1") is None
    assert scanning.find_friend(ALICE, "t1") is legacy
    assert scanning.find_friend("bob@example.com", "t1") is None
