from __future__ import annotations

from ledgerlink.domain.linking import VisibilityReconciler
from ledgerlink.domain.model import UserExpense
from tests.helpers.ledger import (
    FakeAccountRepository,
    FakeUserExpenseRepository,
    make_account,
    make_expense,
    make_group,
)


def test_reconcile_adds_missing_and_removes_unexpected() -> None:
    rows = FakeUserExpenseRepository(
        [
            UserExpense(account_id="acct-a", expense_id="e1"),
            UserExpense(account_id="acct-a", expense_id="e1"),
            UserExpense(account_id="acct-gone", expense_id="e1"),
            UserExpense(account_id="acct-gone", expense_id="e2"),
        ]
    )
    reconciler = VisibilityReconciler(rows, FakeAccountRepository())

    diff = reconciler.reconcile("e1", ["acct-a", "acct-b"])

    assert diff.added == ("acct-b",)
    assert diff.removed == ("acct-gone",)
    assert sorted(row.account_id for row in rows.list_by_expense("e1")) == ["acct-a", "acct-b"]
    assert len(rows.list_by_expense("e2")) == 1


def test_reconcile_is_idempotent() -> None:
    rows = FakeUserExpenseRepository()
    reconciler = VisibilityReconciler(rows, FakeAccountRepository())

    reconciler.reconcile("e1", ["acct-a"])
    second = reconciler.reconcile("e1", ["acct-a"])

    assert not second.changed
    assert len(rows.items) == 1


def test_reconcile_expense_maps_participant_emails_to_accounts() -> None:
    accounts = FakeAccountRepository([make_account("alice@example.com", "ca")])
    rows = FakeUserExpenseRepository()
    group = make_group("g1", "alice@example.com", [("ca", "Alice"), ("t1", "Bob")])
    expense = make_expense(
        "e1",
        group,
        paid_by="ca",
        shares={"ca": "1", "t1": "1"},
        participant_emails=["ALICE@example.com", "nobody@example.com"],
    )

    diff = VisibilityReconciler(rows, accounts).reconcile_expense(expense)

    assert diff.added == ("acct-alice",)
