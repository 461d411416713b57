"""Scheduled cleanup of data that points at deleted accounts.

One run inspects a single page of friend rows (resuming from the persisted cursor)
plus every group owner, and hard-deletes at most ``max_deletions`` orphan targets:
linked emails first, then linked account ids, then linked member ids, then owner
emails with no account. Each target runs inside its own savepoint, so a failure
only undoes that target; it is logged and recorded and the sweep moves on.
"""

from __future__ import annotations

import json
import logging
from contextlib import nullcontext
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import uuid4

from ledgerlink.domain.model import DEFAULT_JANITOR_STATE_KEY, JanitorState, utcnow

from .lookup import member_lookup
from .normalize import normalize_email, normalize_emails

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from contextlib import AbstractContextManager

    from ledgerlink.domain.model import FriendRecord
    from ledgerlink.domain.ports import LinkingRepositories

    from .lookup import MemberLookup

log = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
MAX_ORPHANS_PER_RUN = 5


class OrphanKind(StrEnum):
    LINKED_EMAIL = "linked"
    LINKED_ACCOUNT_ID = "linked_account_id"
    LINKED_MEMBER_ID = "linked_member_id"
    OWNER = "owner"


@dataclass(frozen=True, slots=True, kw_only=True)
class CleanupOutcome:
    kind: OrphanKind
    key: str
    success: bool
    deleted: int = 0
    error: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class JanitorResult:
    orphans_found: int
    orphans_cleaned: int
    remaining_orphans: int
    results: tuple[CleanupOutcome, ...] = ()


@dataclass(slots=True)
class PurgeResult:
    friends_deleted: int = 0
    groups_deleted: int = 0
    expenses_deleted: int = 0
    visibility_deleted: int = 0

    @property
    def total(self) -> int:
        return (
            self.friends_deleted
            + self.groups_deleted
            + self.expenses_deleted
            + self.visibility_deleted
        )


def purge_account_data(
    repositories: LinkingRepositories, email: str, *, account_id: str | None = None
) -> PurgeResult:
    """Hard-delete everything owned by or linked to ``email`` (the account row excluded)."""

    email = normalize_email(email)
    result = PurgeResult()

    friends = {
        friend.id: friend
        for friend in (
            *repositories.friends.list_by_owner(email),
            *repositories.friends.list_linked_to(account_email=email),
            *(repositories.friends.list_linked_to(account_id=account_id) if account_id else ()),
        )
    }
    for friend in friends.values():
        repositories.friends.delete(friend)
    result.friends_deleted = len(friends)

    expenses = {expense.id: expense for expense in repositories.expenses.list_by_owner(email)}
    groups = repositories.groups.list_by_owner(email)
    for group in groups:
        for expense in repositories.expenses.list_by_group(group.group_id):
            expenses.setdefault(expense.id, expense)
    for expense in expenses.values():
        for row in repositories.user_expenses.list_by_expense(expense.expense_id):
            repositories.user_expenses.delete(row)
            result.visibility_deleted += 1
        repositories.expenses.delete(expense)
    result.expenses_deleted = len(expenses)

    for group in groups:
        repositories.groups.delete(group)
    result.groups_deleted = len(groups)

    if account_id:
        for row in repositories.user_expenses.list_by_account(account_id):
            repositories.user_expenses.delete(row)
            result.visibility_deleted += 1

    log.info("Purged data for %s: %s", email, result)
    return result


@dataclass(slots=True)
class _Orphans:
    linked_emails: list[str] = field(default_factory=list[str])
    linked_account_ids: list[str] = field(default_factory=list[str])
    linked_member_ids: list[str] = field(default_factory=list[str])
    owner_emails: list[str] = field(default_factory=list[str])

    @property
    def total(self) -> int:
        return (
            len(self.linked_emails)
            + len(self.linked_account_ids)
            + len(self.linked_member_ids)
            + len(self.owner_emails)
        )


class OrphanJanitor:
    def __init__(
        self,
        repositories: LinkingRepositories,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_deletions: int = MAX_ORPHANS_PER_RUN,
        state_key: str = DEFAULT_JANITOR_STATE_KEY,
        legacy_scan: bool = True,
        lookup: MemberLookup | None = None,
        savepoint: Callable[[], AbstractContextManager[object]] = nullcontext,
    ) -> None:
        self.repositories = repositories
        self.page_size = page_size
        self.max_deletions = max_deletions
        self.state_key = state_key
        self.lookup = lookup or member_lookup(repositories, legacy_scan=legacy_scan)
        self.savepoint = savepoint

    def cleanup(self) -> JanitorResult:
        operation_id = uuid4().hex
        self._log_step(operation_id, "start")

        state = self.repositories.janitor_state.get(self.state_key)
        if state is None:
            state = JanitorState(key=self.state_key)
            self.repositories.janitor_state.add(state)
        cursor_was_empty = state.friends_cursor is None

        page, next_cursor = self.repositories.friends.list_page(
            state.friends_cursor, self.page_size
        )
        friend_owner_emails = normalize_emails(friend.account_email for friend in page)
        linked_emails = normalize_emails(friend.linked_account_email for friend in page)
        linked_account_ids = _unique(friend.linked_account_id for friend in page)
        linked_member_ids = _unique(friend.linked_member_id for friend in page)
        groups = self.repositories.groups.list_all()
        group_owner_emails = normalize_emails(group.owner_email for group in groups)
        owner_emails = _unique((*friend_owner_emails, *group_owner_emails))

        self._log_step(
            operation_id,
            "scan_complete",
            friend_email_count=len(friend_owner_emails),
            group_email_count=len(group_owner_emails),
            linked_email_count=len(linked_emails),
            linked_account_id_count=len(linked_account_ids),
            linked_member_id_count=len(linked_member_ids),
            total_owner_emails=len(owner_emails),
            friend_page_size=len(page),
            groups_total_size=len(groups),
            friend_cursor_was_null=cursor_was_empty,
        )

        state.friends_cursor = next_cursor
        state.updated_at = utcnow()

        accounts = self.repositories.accounts
        orphans = _Orphans(
            linked_emails=[
                email for email in linked_emails if accounts.get_by_email(email) is None
            ],
            linked_account_ids=[
                account_id
                for account_id in linked_account_ids
                if accounts.get(account_id) is None
            ],
            linked_member_ids=[
                member_id
                for member_id in linked_member_ids
                if self.lookup.find_account(member_id) is None
            ],
            owner_emails=[
                email for email in owner_emails if accounts.get_by_email(email) is None
            ],
        )
        self._log_step(
            operation_id,
            "orphans_identified",
            orphan_owner_count=len(orphans.owner_emails),
            orphan_linked_count=len(orphans.linked_emails),
            orphan_linked_account_id_count=len(orphans.linked_account_ids),
            orphan_linked_member_id_count=len(orphans.linked_member_ids),
        )

        if orphans.total == 0:
            self._log_step(operation_id, "complete", orphans_found=0, orphans_cleaned=0)
            return JanitorResult(orphans_found=0, orphans_cleaned=0, remaining_orphans=0)

        friends = self.repositories.friends
        batches: list[tuple[OrphanKind, list[str], Callable[[str], int]]] = [
            (
                OrphanKind.LINKED_EMAIL,
                orphans.linked_emails,
                lambda key: self._delete_friends(friends.list_linked_to(account_email=key)),
            ),
            (
                OrphanKind.LINKED_ACCOUNT_ID,
                orphans.linked_account_ids,
                lambda key: self._delete_friends(friends.list_linked_to(account_id=key)),
            ),
            (
                OrphanKind.LINKED_MEMBER_ID,
                orphans.linked_member_ids,
                lambda key: self._delete_friends(friends.list_linked_to(member_id=key)),
            ),
            (
                OrphanKind.OWNER,
                orphans.owner_emails,
                lambda key: purge_account_data(self.repositories, key).total,
            ),
        ]

        slots = self.max_deletions
        results: list[CleanupOutcome] = []
        for kind, keys, action in batches:
            selected = keys[: max(0, slots)]
            slots -= len(selected)
            results.extend(self._run(operation_id, kind, key, action) for key in selected)

        cleaned = len(results)
        result = JanitorResult(
            orphans_found=orphans.total,
            orphans_cleaned=cleaned,
            remaining_orphans=orphans.total - cleaned,
            results=tuple(results),
        )
        self._log_step(
            operation_id,
            "complete",
            orphans_found=result.orphans_found,
            orphans_cleaned=result.orphans_cleaned,
            remaining_orphans=result.remaining_orphans,
            failures=sum(1 for outcome in results if not outcome.success),
        )
        return result

    def _run(
        self,
        operation_id: str,
        kind: OrphanKind,
        key: str,
        action: Callable[[str], int],
    ) -> CleanupOutcome:
        try:
            with self.savepoint():
                deleted = action(key)
        except Exception as error:  # noqa: BLE001
            log.exception(
                json.dumps(
                    {
                        "scope": "janitor",
                        "operation_id": operation_id,
                        "step": f"{kind}_cleanup_error",
                        "key": key,
                        "error": str(error),
                    }
                )
            )
            return CleanupOutcome(kind=kind, key=key, success=False, error=str(error))
        return CleanupOutcome(kind=kind, key=key, success=True, deleted=deleted)

    def _delete_friends(self, records: Iterable[FriendRecord]) -> int:
        count = 0
        for record in list(records):
            self.repositories.friends.delete(record)
            count += 1
        return count

    @staticmethod
    def _log_step(operation_id: str, step: str, **fields: object) -> None:
        log.info(
            json.dumps({"scope": "janitor", "operation_id": operation_id, "step": step, **fields})
        )


def _unique(values: Iterable[str | None]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(value for value in values if value))
