from __future__ import annotations

from decimal import Decimal

import pytest

from ledgerlink.domain.linking import (
    ClaimContext,
    ClaimOrchestrator,
    ClaimState,
    ClaimStateError,
    LinkingError,
    LinkingErrorCode,
)
from ledgerlink.domain.linking.claims import ClaimProgress
from ledgerlink.domain.model import GroupMember, MemberAlias
from ledgerlink.domain.ports import LinkingRepositories
from tests.helpers.ledger import (
    make_account,
    make_expense,
    make_friend,
    make_group,
    make_repositories,
)

ALICE = "alice@example.com"
BOB = "bob@example.com"


@pytest.fixture
def repos() -> LinkingRepositories:
    """Alice tracks a placeholder member ``t1`` that Bob is about to claim."""

    repositories = make_repositories()
    repositories.accounts.add(make_account(ALICE, "ca"))
    repositories.accounts.add(make_account(BOB, "cb"))
    group = make_group(
        "g1",
        ALICE,
        [
            GroupMember(id="ca", name="Alice", is_current_user=True),
            GroupMember(id="t1", name="Bobby"),
        ],
    )
    repositories.groups.add(group)
    repositories.expenses.add(
        make_expense(
            "e1",
            group,
            paid_by="ca",
            shares={"ca": "10.00", "t1": "10.00"},
            participant_emails=[ALICE],
        )
    )
    repositories.friends.add(make_friend(ALICE, "t1", "Bobby"))
    return repositories


def _bob_claims(repos: LinkingRepositories, target: str = "t1"):
    bob = repos.accounts.get_by_email(BOB)
    assert bob is not None
    context = ClaimContext(target_member_id=target, creator_email=ALICE, creator_id="acct-alice")
    return bob, ClaimOrchestrator(repos).claim(bob, context)


def test_claim_links_alias_and_rewrites_ledger(repos: LinkingRepositories) -> None:
    bob, result = _bob_claims(repos)

    assert result.state is ClaimState.APPLIED
    assert result.alias_created
    assert result.canonical_member_id == "cb"
    assert bob.alias_member_ids == ("t1",)
    assert [(e.alias_member_id, e.canonical_member_id) for e in repos.aliases.list_all()] == [
        ("t1", "cb")
    ]

    alice_friend = repos.friends.get_by_member(ALICE, "cb")
    assert alice_friend is not None
    assert alice_friend.has_linked_account
    assert alice_friend.linked_account_email == BOB
    assert alice_friend.name == "Bob"
    assert alice_friend.original_name == "Bobby"
    assert repos.friends.get_by_member(ALICE, "t1") is None

    group = repos.groups.get("g1")
    assert group is not None
    assert group.member_ids == ("ca", "cb")

    expense = repos.expenses.get("e1")
    assert expense is not None
    assert {split.member_id: split.amount for split in expense.splits} == {
        "ca": Decimal("10.00"),
        "cb": Decimal("10.00"),
    }
    assert expense.split_total == expense.total_amount == Decimal("20.00")
    assert set(expense.participant_emails) == {ALICE, BOB}
    assert {row.account_id for row in repos.user_expenses.list_by_expense("e1")} == {
        "acct-alice",
        "acct-bob",
    }


def test_claim_creates_linked_friend_for_claimant(repos: LinkingRepositories) -> None:
    _bob_claims(repos)

    creator_row = repos.friends.get_by_member(BOB, "ca")
    assert creator_row is not None
    assert creator_row.linked_account_id == "acct-alice"
    assert creator_row.linked_member_id == "ca"


def test_claim_is_idempotent(repos: LinkingRepositories) -> None:
    _bob_claims(repos)
    _, second = _bob_claims(repos)

    assert not second.alias_created
    assert second.cascade.expenses_updated == 0
    assert len(repos.aliases.list_all()) == 1
    assert len(repos.user_expenses.list_by_expense("e1")) == 2
    expense = repos.expenses.get("e1")
    assert expense is not None
    assert expense.split_total == Decimal("20.00")
    friend = repos.friends.get_by_member(ALICE, "cb")
    assert friend is not None
    assert friend.original_name == "Bobby"


def test_self_claim_is_rejected(repos: LinkingRepositories) -> None:
    alice = repos.accounts.get_by_email(ALICE)
    assert alice is not None
    context = ClaimContext(target_member_id="t1", creator_email=ALICE)

    with pytest.raises(LinkingError) as excinfo:
        ClaimOrchestrator(repos).claim(alice, context)

    assert excinfo.value.code is LinkingErrorCode.SELF_CLAIM
    assert repos.aliases.list_all() == []


def test_claim_requires_claimant_member_id(repos: LinkingRepositories) -> None:
    bob = repos.accounts.get_by_email(BOB)
    assert bob is not None
    bob.canonical_member_id = None

    with pytest.raises(LinkingError) as excinfo:
        _bob_claims(repos)

    assert excinfo.value.code is LinkingErrorCode.PRECONDITION_MISSING


def test_claim_rejects_target_owned_by_other_account(repos: LinkingRepositories) -> None:
    repos.accounts.add(make_account("carol@example.com", "t1"))

    with pytest.raises(LinkingError) as excinfo:
        _bob_claims(repos)

    assert excinfo.value.code is LinkingErrorCode.ALIAS_CONFLICT
    assert "existing_account_id=acct-carol" in excinfo.value.details


def test_claim_rejects_target_resolving_elsewhere(repos: LinkingRepositories) -> None:
    repos.aliases.add(
        MemberAlias(alias_member_id="t1", canonical_member_id="cz", account_email=ALICE)
    )

    with pytest.raises(LinkingError) as excinfo:
        _bob_claims(repos)

    assert excinfo.value.code is LinkingErrorCode.ALIAS_CONFLICT
    assert len(repos.aliases.list_all()) == 1


def test_claim_rejects_cycle(repos: LinkingRepositories) -> None:
    repos.aliases.add(
        MemberAlias(alias_member_id="cb", canonical_member_id="t1", account_email=BOB)
    )

    with pytest.raises(LinkingError) as excinfo:
        _bob_claims(repos)

    assert excinfo.value.code is LinkingErrorCode.ALIAS_CYCLE
    friend = repos.friends.get_by_member(ALICE, "t1")
    assert friend is not None
    assert not friend.has_linked_account


def test_claim_progress_rejects_invalid_transition() -> None:
    progress = ClaimProgress()

    with pytest.raises(ClaimStateError):
        progress.advance(ClaimState.APPLIED)

    progress.advance(ClaimState.VALIDATED)
    progress.advance(ClaimState.APPLIED)
    assert progress.state is ClaimState.APPLIED


def test_claim_keeps_alias_cache_to_direct_edges(repos: LinkingRepositories) -> None:
    repos.aliases.add(
        MemberAlias(alias_member_id="x", canonical_member_id="t1", account_email=ALICE)
    )

    bob, result = _bob_claims(repos)

    assert bob.alias_member_ids == result.alias_member_ids == ("t1",)
    for alias in bob.alias_member_ids:
        edge = repos.aliases.get_by_alias(alias)
        assert edge is not None
        assert edge.canonical_member_id == "cb"


def test_claim_rewrites_payer_and_keeps_split_amount() -> None:
    repositories = make_repositories()
    repositories.accounts.add(make_account(ALICE, "ca"))
    claimant = make_account(BOB, "cx")
    repositories.accounts.add(claimant)
    group = make_group("g1", ALICE, [("ca", "Alice"), ("t1", "Bobby")])
    repositories.groups.add(group)
    repositories.expenses.add(
        make_expense("e1", group, paid_by="t1", shares={"t1": "20"}, participant_emails=[ALICE])
    )

    ClaimOrchestrator(repositories).claim(
        claimant, ClaimContext(target_member_id="t1", creator_email=ALICE)
    )

    expense = repositories.expenses.get("e1")
    assert expense is not None
    assert expense.paid_by_member_id == "cx"
    assert [(split.member_id, split.amount) for split in expense.splits] == [
        ("cx", Decimal(20))
    ]
    assert expense.total_amount == Decimal(20)
