"""Public domain model surface."""

from __future__ import annotations

from ledgerlink.domain.model.account import Account
from ledgerlink.domain.model.entity import Entity, new_id, utcnow
from ledgerlink.domain.model.enums import IssueSeverity, IssueType, LinkRequestStatus
from ledgerlink.domain.model.friends import FriendRecord
from ledgerlink.domain.model.identity import MemberAlias
from ledgerlink.domain.model.invites import InviteToken, LinkRequest
from ledgerlink.domain.model.ledger import (
    Expense,
    ExpenseParticipant,
    ExpenseSplit,
    Group,
    GroupMember,
    UserExpense,
)
from ledgerlink.domain.model.maintenance import DEFAULT_JANITOR_STATE_KEY, JanitorState

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "new_id",
    "utcnow",
    # identity
    "Account",
    "MemberAlias",
    "FriendRecord",
    # ledger
    "Group",
    "GroupMember",
    "Expense",
    "ExpenseSplit",
    "ExpenseParticipant",
    "UserExpense",
    # invites
    "InviteToken",
    "LinkRequest",
    # maintenance
    "JanitorState",
    "DEFAULT_JANITOR_STATE_KEY",
    # enums
    "IssueSeverity",
    "IssueType",
    "LinkRequestStatus",
]
