"""Reconciliation of the per-account expense visibility index."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ledgerlink.domain.model import UserExpense

from .normalize import normalize_emails

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ledgerlink.domain.model import Expense
    from ledgerlink.domain.ports import AccountRepository, UserExpenseRepository

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VisibilityDiff:
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


class VisibilityReconciler:
    def __init__(self, user_expenses: UserExpenseRepository, accounts: AccountRepository) -> None:
        self.user_expenses = user_expenses
        self.accounts = accounts

    def expected_accounts_for(self, expense: Expense) -> tuple[str, ...]:
        emails = normalize_emails(expense.participant_emails)
        if not emails:
            return ()
        return tuple(account.account_id for account in self.accounts.list_by_emails(emails))

    def reconcile(self, expense_id: str, expected_account_ids: Iterable[str]) -> VisibilityDiff:
        """Insert missing rows and delete unexpected ones; safe to repeat."""

        expected = dict.fromkeys(account_id for account_id in expected_account_ids if account_id)
        present: set[str] = set()
        removed: list[str] = []
        for row in self.user_expenses.list_by_expense(expense_id):
            if row.account_id in expected and row.account_id not in present:
                present.add(row.account_id)
                continue
            # unexpected account or duplicate row
            self.user_expenses.delete(row)
            if row.account_id not in expected:
                removed.append(row.account_id)

        added = [account_id for account_id in expected if account_id not in present]
        for account_id in added:
            self.user_expenses.add(UserExpense(account_id=account_id, expense_id=expense_id))

        diff = VisibilityDiff(added=tuple(added), removed=tuple(removed))
        if diff.changed:
            log.debug(
                "Visibility for %s: +%d -%d", expense_id, len(diff.added), len(diff.removed)
            )
        return diff

    def reconcile_expense(self, expense: Expense) -> VisibilityDiff:
        return self.reconcile(expense.expense_id, self.expected_accounts_for(expense))
