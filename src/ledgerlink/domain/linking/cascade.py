"""Cascading rewrite of stored documents after two member ids were unified.

A cascade is keyed by ``(target, canonical)``: every occurrence of ``target`` is
rewritten to ``canonical``. Each step only touches documents that still mention the
target, so a second run with the same key finds nothing left to do.

Steps, in order:
- friend rows keyed by the target, under every owner that can see the member
- group member lists (rewrite, rename, dedupe)
- expenses of those groups (payer, member lists, splits, participants), followed by
  a visibility reconcile per touched expense
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from ledgerlink.domain.model import utcnow

from .lookup import member_lookup
from .normalize import (
    normalize_email,
    normalize_emails,
    normalize_member_id,
    normalize_member_ids,
)
from .visibility import VisibilityReconciler

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ledgerlink.domain.model import (
        Account,
        Expense,
        ExpenseParticipant,
        ExpenseSplit,
        FriendRecord,
        Group,
        GroupMember,
    )
    from ledgerlink.domain.ports import LinkingRepositories

    from .lookup import MemberLookup

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class CascadePlan:
    target_member_id: str
    canonical_member_id: str
    actor_email: str
    linked_account: Account | None = None

    @property
    def target(self) -> str:
        return normalize_member_id(self.target_member_id)

    @property
    def canonical(self) -> str:
        return normalize_member_id(self.canonical_member_id)


@dataclass(slots=True)
class CascadeResult:
    groups_updated: int = 0
    expenses_updated: int = 0
    friends_updated: int = 0
    friends_removed: int = 0
    visibility_added: int = 0
    visibility_removed: int = 0


def canonicalize(member_id: str, target: str, canonical: str) -> str:
    normalized = normalize_member_id(member_id)
    return canonical if normalized == target else normalized


def link_friend_to_account(record: FriendRecord, account: Account) -> None:
    """Point ``record`` at ``account`` and adopt its display name."""

    display_name = account.label
    if record.nickname and record.nickname.strip().lower() == display_name.strip().lower():
        record.nickname = None
    if record.name != display_name:
        record.original_name = record.name
    record.name = display_name
    record.first_name = account.first_name
    record.last_name = account.last_name
    record.has_linked_account = True
    record.linked_account_id = account.account_id
    record.linked_account_email = account.email
    record.linked_member_id = (
        normalize_member_id(account.canonical_member_id) if account.canonical_member_id else None
    )
    record.updated_at = utcnow()


def touches_member(expense: Expense, member_id: str) -> bool:
    if normalize_member_id(expense.paid_by_member_id) == member_id:
        return True
    ids = (
        *expense.involved_member_ids,
        *expense.participant_member_ids,
        *(split.member_id for split in expense.splits),
    )
    return any(normalize_member_id(candidate) == member_id for candidate in ids)


def merge_splits(
    splits: Iterable[ExpenseSplit], target: str, canonical: str
) -> tuple[ExpenseSplit, ...]:
    """Rewrite target splits and fold duplicates: amounts add, settled only if all are."""

    merged: dict[str, ExpenseSplit] = {}
    for split in splits:
        key = canonicalize(split.member_id, target, canonical)
        existing = merged.get(key)
        if existing is None:
            merged[key] = replace(split, member_id=key)
            continue
        merged[key] = replace(
            existing,
            amount=existing.amount + split.amount,
            is_settled=existing.is_settled and split.is_settled,
        )
    return tuple(merged.values())


def merge_participants(
    participants: Iterable[ExpenseParticipant],
    target: str,
    canonical: str,
    linked_account: Account | None = None,
) -> tuple[ExpenseParticipant, ...]:
    merged: dict[str, ExpenseParticipant] = {}
    for participant in participants:
        key = canonicalize(participant.member_id, target, canonical)
        candidate = replace(participant, member_id=key)
        if linked_account is not None and key == canonical:
            candidate = replace(
                candidate,
                name=linked_account.label or participant.name,
                linked_account_id=linked_account.account_id,
                linked_account_email=linked_account.email,
            )
        existing = merged.get(key)
        if existing is None:
            merged[key] = candidate
            continue
        merged[key] = replace(
            existing,
            name=candidate.name or existing.name,
            linked_account_id=candidate.linked_account_id or existing.linked_account_id,
            linked_account_email=candidate.linked_account_email or existing.linked_account_email,
        )
    return tuple(merged.values())


def dedupe_members(
    members: Iterable[GroupMember],
    target: str,
    canonical: str,
    linked_account: Account | None = None,
) -> tuple[GroupMember, ...]:
    """Rewrite and dedupe; a duplicate replaces the kept one only if it is the current user."""

    merged: dict[str, GroupMember] = {}
    for member in members:
        key = canonicalize(member.id, target, canonical)
        name = member.name
        if linked_account is not None and key == canonical:
            name = linked_account.label or member.name
        candidate = replace(member, id=key, name=name)
        existing = merged.get(key)
        if existing is None or (not existing.is_current_user and candidate.is_current_user):
            merged[key] = candidate
    return tuple(merged.values())


class CascadeRewriter:
    def __init__(
        self,
        repositories: LinkingRepositories,
        *,
        visibility: VisibilityReconciler | None = None,
        lookup: MemberLookup | None = None,
        legacy_scan: bool = True,
    ) -> None:
        self.repositories = repositories
        self.lookup = lookup or member_lookup(repositories, legacy_scan=legacy_scan)
        self.visibility = visibility or VisibilityReconciler(
            repositories.user_expenses, repositories.accounts
        )

    def apply(self, plan: CascadePlan) -> CascadeResult:
        target, canonical = plan.target, plan.canonical
        result = CascadeResult()
        groups = self.repositories.groups.list_containing((target, canonical))

        for owner_email in self._affected_owner_emails(plan, groups):
            self._relink_friend(owner_email, plan, result)

        for group in groups:
            self._rewrite_group(group, plan, result)

        for group in groups:
            for expense in self.repositories.expenses.list_by_group(group.group_id):
                if touches_member(expense, target):
                    self._rewrite_expense(expense, plan, result)

        log.info(
            "Cascade %s -> %s: %d groups, %d expenses, %d friends updated, %d removed",
            target,
            canonical,
            result.groups_updated,
            result.expenses_updated,
            result.friends_updated,
            result.friends_removed,
        )
        return result

    def _affected_owner_emails(self, plan: CascadePlan, groups: Iterable[Group]) -> list[str]:
        target, canonical = plan.target, plan.canonical
        excluded = normalize_email(plan.linked_account.email) if plan.linked_account else None
        emails: dict[str, None] = {normalize_email(plan.actor_email): None}
        for group in groups:
            if group.owner_email:
                emails.setdefault(normalize_email(group.owner_email), None)
            for member_id in normalize_member_ids(group.member_ids):
                if member_id in (target, canonical):
                    continue
                owner = self.lookup.find_account(member_id)
                if owner is not None and owner.email:
                    emails.setdefault(normalize_email(owner.email), None)
        return [email for email in emails if email and email != excluded]

    def _relink_friend(self, owner_email: str, plan: CascadePlan, result: CascadeResult) -> None:
        record = self.lookup.find_friend(owner_email, plan.target)
        if record is None:
            return

        canonical_record = (
            self.lookup.find_friend(owner_email, plan.canonical)
            if plan.canonical != plan.target
            else None
        )
        if canonical_record is not None and canonical_record is not record:
            # the discarded row only fills gaps
            if not canonical_record.nickname and record.nickname:
                canonical_record.nickname = record.nickname
            if not canonical_record.original_name and record.original_name:
                canonical_record.original_name = record.original_name
            if plan.linked_account is not None:
                link_friend_to_account(canonical_record, plan.linked_account)
            canonical_record.updated_at = utcnow()
            self.repositories.friends.delete(record)
            result.friends_removed += 1
            return

        record.member_id = plan.canonical
        if plan.linked_account is not None:
            link_friend_to_account(record, plan.linked_account)
        record.updated_at = utcnow()
        result.friends_updated += 1

    def _rewrite_group(self, group: Group, plan: CascadePlan, result: CascadeResult) -> None:
        members = dedupe_members(group.members, plan.target, plan.canonical, plan.linked_account)
        if members == group.members:
            return
        group.members = members
        group.updated_at = utcnow()
        result.groups_updated += 1

    def _rewrite_expense(self, expense: Expense, plan: CascadePlan, result: CascadeResult) -> None:
        target, canonical = plan.target, plan.canonical
        expense.paid_by_member_id = canonicalize(expense.paid_by_member_id, target, canonical)
        expense.involved_member_ids = normalize_member_ids(
            canonicalize(member_id, target, canonical) for member_id in expense.involved_member_ids
        )
        expense.participant_member_ids = normalize_member_ids(
            canonicalize(member_id, target, canonical)
            for member_id in expense.participant_member_ids
        )
        expense.splits = merge_splits(expense.splits, target, canonical)
        expense.participants = merge_participants(
            expense.participants, target, canonical, plan.linked_account
        )
        emails = list(expense.participant_emails)
        if plan.linked_account is not None:
            emails.append(plan.linked_account.email)
        expense.participant_emails = normalize_emails(emails)
        expense.updated_at = utcnow()
        result.expenses_updated += 1

        diff = self.visibility.reconcile_expense(expense)
        result.visibility_added += len(diff.added)
        result.visibility_removed += len(diff.removed)
