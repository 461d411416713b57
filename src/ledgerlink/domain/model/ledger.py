"""Groups, expenses and the per-account expense visibility index."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from .entity import Entity, utcnow

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True, kw_only=True)
class GroupMember:
    id: str
    name: str
    is_current_user: bool = False


@dataclass(eq=False, kw_only=True)
class Group(Entity):
    group_id: str
    name: str
    owner_email: str
    owner_account_id: str | None = None
    members: tuple[GroupMember, ...] = ()
    is_direct: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def member_ids(self) -> tuple[str, ...]:
        return tuple(member.id for member in self.members)


@dataclass(frozen=True, slots=True, kw_only=True)
class ExpenseSplit:
    split_id: str
    member_id: str
    amount: Decimal
    is_settled: bool = False


@dataclass(frozen=True, slots=True, kw_only=True)
class ExpenseParticipant:
    member_id: str
    name: str
    linked_account_id: str | None = None
    linked_account_email: str | None = None


@dataclass(eq=False, kw_only=True)
class Expense(Entity):
    """One shared expense.

    ``splits`` must always sum to ``total_amount``; identity merges combine rows
    instead of dropping them.
    """

    expense_id: str
    group_id: str
    description: str
    total_amount: Decimal
    paid_by_member_id: str
    owner_email: str
    involved_member_ids: tuple[str, ...] = ()
    participant_member_ids: tuple[str, ...] = ()
    splits: tuple[ExpenseSplit, ...] = ()
    participants: tuple[ExpenseParticipant, ...] = ()
    participant_emails: tuple[str, ...] = ()
    is_settled: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def split_total(self) -> Decimal:
        return sum((split.amount for split in self.splits), Decimal(0))


@dataclass(eq=False, kw_only=True)
class UserExpense(Entity):
    """Visibility row: ``account_id`` must see ``expense_id``.

    Derived from ``Expense.participant_emails``; never authoritative.
    """

    account_id: str
    expense_id: str
    updated_at: datetime = field(default_factory=utcnow)
