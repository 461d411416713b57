from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.exc import IntegrityError

from ledgerlink.adapters.sqlalchemy.repositories import (
    SqlAlchemyAccountRepository,
    SqlAlchemyAliasRepository,
    SqlAlchemyExpenseRepository,
    SqlAlchemyFriendRepository,
    SqlAlchemyGroupRepository,
    SqlAlchemyLinkRequestRepository,
    SqlAlchemyUserExpenseRepository,
)
from ledgerlink.domain.model import (
    GroupMember,
    LinkRequest,
    LinkRequestStatus,
    MemberAlias,
    UserExpense,
)
from tests.helpers.ledger import make_account, make_expense, make_friend, make_group

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def _reload(session: Session) -> None:
    session.commit()
    session.expunge_all()


def test_account_lookup_by_email_canonical_and_alias(sqlite_session: Session) -> None:
    repo = SqlAlchemyAccountRepository(sqlite_session)
    repo.add(make_account("bob@example.com", "cb", aliases=("t1", "t2")))
    SqlAlchemyAliasRepository(sqlite_session).add(
        MemberAlias(alias_member_id="t2", canonical_member_id="cb", account_email="bob@example.com")
    )
    _reload(sqlite_session)

    by_email = repo.get_by_email(" BOB@example.com")
    assert by_email is not None
    assert by_email.alias_member_ids == ("t1", "t2")
    assert by_email.created_at.tzinfo is not None

    by_canonical = repo.find_by_member_id("CB")
    by_alias = repo.find_by_member_id("t2")
    assert by_canonical is not None
    assert by_alias is not None
    assert by_canonical.account_id == by_alias.account_id == "acct-bob"
    assert repo.find_by_member_id("unknown") is None
    # the cached alias list is not consulted
    assert repo.find_by_member_id("t1") is None
    assert [a.account_id for a in repo.list_by_emails(["bob@example.com", "x@y.z"])] == [
        "acct-bob"
    ]


def test_alias_column_is_unique(sqlite_session: Session) -> None:
    repo = SqlAlchemyAliasRepository(sqlite_session)
    repo.add(MemberAlias(alias_member_id="t1", canonical_member_id="cb", account_email="b@x.io"))
    sqlite_session.commit()

    repo.add(MemberAlias(alias_member_id="t1", canonical_member_id="cz", account_email="z@x.io"))
    with pytest.raises(IntegrityError):
        sqlite_session.commit()


def test_alias_lookups(sqlite_session: Session) -> None:
    repo = SqlAlchemyAliasRepository(sqlite_session)
    repo.add(MemberAlias(alias_member_id="t1", canonical_member_id="cb", account_email="b@x.io"))
    repo.add(MemberAlias(alias_member_id="t2", canonical_member_id="cb", account_email="b@x.io"))
    _reload(sqlite_session)

    edge = repo.get_by_alias("t1")
    assert edge is not None
    assert edge.canonical_member_id == "cb"
    assert sorted(e.alias_member_id for e in repo.list_by_canonical("cb")) == ["t1", "t2"]


def test_friend_rows_page_by_keyset(sqlite_session: Session) -> None:
    repo = SqlAlchemyFriendRepository(sqlite_session)
    for member_id in ("m1", "m2", "m3"):
        repo.add(make_friend("alice@example.com", member_id, member_id.upper()))
    _reload(sqlite_session)

    first, cursor = repo.list_page(None, 2)
    assert len(first) == 2
    assert cursor == str(first[-1].id)

    second, last_cursor = repo.list_page(cursor, 2)
    assert len(second) == 1
    assert last_cursor is None
    assert {f.member_id for f in (*first, *second)} == {"m1", "m2", "m3"}


def test_friend_linked_lookups(sqlite_session: Session) -> None:
    repo = SqlAlchemyFriendRepository(sqlite_session)
    repo.add(
        make_friend(
            "alice@example.com",
            "cb",
            "Bob",
            has_linked_account=True,
            linked_account_id="acct-bob",
            linked_account_email="bob@example.com",
            linked_member_id="cb",
        )
    )
    repo.add(make_friend("alice@example.com", "m1", "Sam"))
    _reload(sqlite_session)

    assert len(repo.list_linked_to(account_email="BOB@example.com")) == 1
    assert len(repo.list_linked_to(account_id="acct-bob", member_id="nope")) == 1
    assert repo.list_linked_to() == []
    record = repo.get_by_member("Alice@Example.com", "m1")
    assert record is not None
    assert repo.get(record.id) is not None
    assert len(repo.list_by_owner("alice@example.com")) == 2


def test_group_and_expense_value_objects_round_trip(sqlite_session: Session) -> None:
    groups = SqlAlchemyGroupRepository(sqlite_session)
    expenses = SqlAlchemyExpenseRepository(sqlite_session)
    group = make_group(
        "g1",
        "alice@example.com",
        [GroupMember(id="ca", name="Alice", is_current_user=True), GroupMember(id="t1", name="Bo")],
    )
    groups.add(group)
    expenses.add(
        make_expense(
            "e1",
            group,
            paid_by="ca",
            shares={"ca": "10.10", "t1": "9.90"},
            participant_emails=["alice@example.com"],
        )
    )
    _reload(sqlite_session)

    stored_group = groups.get("g1")
    assert stored_group is not None
    assert stored_group.members[0] == GroupMember(id="ca", name="Alice", is_current_user=True)
    assert [g.group_id for g in groups.list_containing(["T1"])] == ["g1"]
    assert groups.list_containing(["nobody"]) == []

    expense = expenses.get("e1")
    assert expense is not None
    assert expense.total_amount == Decimal("20.00")
    assert [split.amount for split in expense.splits] == [Decimal("10.10"), Decimal("9.90")]
    assert expense.participants[1].member_id == "t1"
    assert expense.participant_emails == ("alice@example.com",)
    assert [e.expense_id for e in expenses.list_by_group("g1")] == ["e1"]
    assert [e.expense_id for e in expenses.list_by_owner("alice@example.com")] == ["e1"]


def test_user_expense_pair_is_unique(sqlite_session: Session) -> None:
    repo = SqlAlchemyUserExpenseRepository(sqlite_session)
    repo.add(UserExpense(account_id="acct-a", expense_id="e1"))
    sqlite_session.commit()

    assert len(repo.list_by_account("acct-a")) == 1
    repo.add(UserExpense(account_id="acct-a", expense_id="e1"))
    with pytest.raises(IntegrityError):
        sqlite_session.commit()


def test_link_request_status_round_trip(sqlite_session: Session) -> None:
    repo = SqlAlchemyLinkRequestRepository(sqlite_session)
    now = datetime(2025, 1, 1, tzinfo=UTC)
    repo.add(
        LinkRequest(
            request_id="req-1",
            requester_id="acct-alice",
            requester_email="alice@example.com",
            requester_name="Alice",
            recipient_email="bob@example.com",
            target_member_id="t1",
            target_member_name="Bobby",
            created_at=now,
            expires_at=now + timedelta(days=7),
        )
    )
    _reload(sqlite_session)

    request = repo.get("req-1")
    assert request is not None
    assert request.status is LinkRequestStatus.PENDING
    assert request.expires_at == now + timedelta(days=7)
    assert [r.request_id for r in repo.list_by_recipient("Bob@example.com")] == ["req-1"]
    assert [r.request_id for r in repo.list_by_requester("acct-alice")] == ["req-1"]
