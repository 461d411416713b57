"""Read-only data integrity audit."""

from __future__ import annotations

import json
import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from ledgerlink.domain.model import IssueSeverity, IssueType

from .normalize import normalize_email, normalize_member_id

if TYPE_CHECKING:
    from ledgerlink.domain.model import Expense, FriendRecord, Group
    from ledgerlink.domain.ports import LinkingRepositories

log = logging.getLogger(__name__)

_BREAKDOWN_LABELS: dict[IssueType, str] = {
    IssueType.ORPHANED_FRIEND_LINK: "Orphaned friend links",
    IssueType.ORPHANED_FRIEND_EMAIL_LINK: "Orphaned friend email links",
    IssueType.MEMBER_ID_FRAGMENTATION: "Member ID fragmentation in friends",
    IssueType.FRIEND_GROUP_MEMBER_ID_MISMATCH: "Friend/Group member ID mismatches",
    IssueType.ORPHANED_EXPENSE_PARTICIPANT_LINK: "Orphaned expense participant links",
    IssueType.ORPHANED_EXPENSE_PARTICIPANT_EMAIL_LINK: (
        "Orphaned expense participant email links"
    ),
}


@dataclass(frozen=True, slots=True, kw_only=True)
class Issue:
    type: IssueType
    severity: IssueSeverity
    description: str
    details: dict[str, Any] = field(default_factory=dict[str, Any])


@dataclass(frozen=True, slots=True)
class IntegrityReport:
    issues: tuple[Issue, ...]
    summary: str

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity is IssueSeverity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity is IssueSeverity.WARNING)

    def of_type(self, issue_type: IssueType) -> tuple[Issue, ...]:
        return tuple(issue for issue in self.issues if issue.type is issue_type)


class IntegrityAuditor:
    def __init__(self, repositories: LinkingRepositories) -> None:
        self.repositories = repositories

    def check(self) -> IntegrityReport:
        operation_id = uuid4().hex
        accounts = self.repositories.accounts.list_all()
        account_ids = {account.account_id for account in accounts}
        account_emails = {normalize_email(account.email) for account in accounts}
        friends = self.repositories.friends.list_all()
        groups = self.repositories.groups.list_all()
        expenses = self.repositories.expenses.list_all()
        self._log_step(
            operation_id,
            "loaded",
            accounts=len(accounts),
            friends=len(friends),
            groups=len(groups),
            expenses=len(expenses),
        )

        issues: list[Issue] = []
        issues.extend(self._orphaned_friend_links(friends, account_ids, account_emails))

        friends_by_owner: dict[str, list[FriendRecord]] = defaultdict(list)
        for friend in friends:
            friends_by_owner[normalize_email(friend.account_email)].append(friend)
        issues.extend(self._fragmentation(friends_by_owner))
        issues.extend(self._group_mismatches(friends_by_owner, groups))
        issues.extend(self._orphaned_participants(expenses, account_ids, account_emails))

        report = IntegrityReport(issues=tuple(issues), summary=_summarize(issues))
        self._log_step(
            operation_id,
            "complete",
            issues=len(issues),
            errors=report.error_count,
            warnings=report.warning_count,
        )
        return report

    @staticmethod
    def _orphaned_friend_links(
        friends: list[FriendRecord], account_ids: set[str], account_emails: set[str]
    ) -> list[Issue]:
        issues: list[Issue] = []
        for friend in friends:
            if not friend.has_linked_account:
                continue
            base = {
                "friend_id": str(friend.id),
                "account_email": friend.account_email,
                "member_name": friend.name,
                "member_id": friend.member_id,
            }
            if friend.linked_account_id and friend.linked_account_id not in account_ids:
                issues.append(
                    Issue(
                        type=IssueType.ORPHANED_FRIEND_LINK,
                        severity=IssueSeverity.ERROR,
                        description=(
                            "Friend record has linked_account_id pointing to non-existent account"
                        ),
                        details={
                            **base,
                            "linked_account_id": friend.linked_account_id,
                            "linked_account_email": friend.linked_account_email,
                        },
                    )
                )
            if (
                friend.linked_account_email
                and normalize_email(friend.linked_account_email) not in account_emails
            ):
                issues.append(
                    Issue(
                        type=IssueType.ORPHANED_FRIEND_EMAIL_LINK,
                        severity=IssueSeverity.ERROR,
                        description=(
                            "Friend record has linked_account_email pointing to "
                            "non-existent account"
                        ),
                        details={**base, "linked_account_email": friend.linked_account_email},
                    )
                )
        return issues

    @staticmethod
    def _fragmentation(friends_by_owner: dict[str, list[FriendRecord]]) -> list[Issue]:
        issues: list[Issue] = []
        for owner_email, friends in friends_by_owner.items():
            by_name: dict[str, list[FriendRecord]] = defaultdict(list)
            for friend in friends:
                by_name[friend.name.strip().lower()].append(friend)
            for name, records in by_name.items():
                member_ids = sorted({normalize_member_id(record.member_id) for record in records})
                if len(member_ids) < 2:  # noqa: PLR2004
                    continue
                issues.append(
                    Issue(
                        type=IssueType.MEMBER_ID_FRAGMENTATION,
                        severity=IssueSeverity.WARNING,
                        description=(
                            "Multiple member IDs found for the same friend name in account_friends"
                        ),
                        details={
                            "account_email": owner_email,
                            "friend_name": name,
                            "member_ids": member_ids,
                            "friend_records": [
                                {
                                    "friend_id": str(record.id),
                                    "member_id": record.member_id,
                                    "has_linked_account": record.has_linked_account,
                                    "linked_account_email": record.linked_account_email,
                                }
                                for record in records
                            ],
                        },
                    )
                )
        return issues

    @staticmethod
    def _group_mismatches(
        friends_by_owner: dict[str, list[FriendRecord]], groups: list[Group]
    ) -> list[Issue]:
        groups_by_owner: dict[str, list[Group]] = defaultdict(list)
        for group in groups:
            groups_by_owner[normalize_email(group.owner_email)].append(group)

        issues: list[Issue] = []
        for owner_email, friends in friends_by_owner.items():
            for friend in friends:
                name = friend.name.strip().lower()
                friend_member_id = normalize_member_id(friend.member_id)
                for group in groups_by_owner.get(owner_email, ()):
                    for member in group.members:
                        if member.name.strip().lower() != name:
                            continue
                        if normalize_member_id(member.id) == friend_member_id:
                            continue
                        issues.append(
                            Issue(
                                type=IssueType.FRIEND_GROUP_MEMBER_ID_MISMATCH,
                                severity=IssueSeverity.WARNING,
                                description=(
                                    "Same person name has different member IDs in "
                                    "account_friends vs groups"
                                ),
                                details={
                                    "account_email": owner_email,
                                    "person_name": friend.name,
                                    "friend_member_id": friend.member_id,
                                    "group_member_id": member.id,
                                    "group_id": group.group_id,
                                    "group_name": group.name,
                                },
                            )
                        )
        return issues

    @staticmethod
    def _orphaned_participants(
        expenses: list[Expense], account_ids: set[str], account_emails: set[str]
    ) -> list[Issue]:
        issues: list[Issue] = []
        for expense in expenses:
            for participant in expense.participants:
                base = {
                    "expense_id": expense.expense_id,
                    "expense_description": expense.description,
                    "group_id": expense.group_id,
                    "participant_member_id": participant.member_id,
                    "participant_name": participant.name,
                }
                if (
                    participant.linked_account_id
                    and participant.linked_account_id not in account_ids
                ):
                    issues.append(
                        Issue(
                            type=IssueType.ORPHANED_EXPENSE_PARTICIPANT_LINK,
                            severity=IssueSeverity.ERROR,
                            description=(
                                "Expense participant has linked_account_id pointing to "
                                "non-existent account"
                            ),
                            details={
                                **base,
                                "linked_account_id": participant.linked_account_id,
                                "linked_account_email": participant.linked_account_email,
                            },
                        )
                    )
                if (
                    participant.linked_account_email
                    and normalize_email(participant.linked_account_email) not in account_emails
                ):
                    issues.append(
                        Issue(
                            type=IssueType.ORPHANED_EXPENSE_PARTICIPANT_EMAIL_LINK,
                            severity=IssueSeverity.ERROR,
                            description=(
                                "Expense participant has linked_account_email pointing to "
                                "non-existent account"
                            ),
                            details={
                                **base,
                                "linked_account_email": participant.linked_account_email,
                            },
                        )
                    )
        return issues

    @staticmethod
    def _log_step(operation_id: str, step: str, **counters: int) -> None:
        log.info(
            json.dumps(
                {"scope": "integrity", "operation_id": operation_id, "step": step, **counters}
            )
        )


def _summarize(issues: list[Issue]) -> str:
    by_type = Counter(issue.type for issue in issues)
    errors = sum(1 for issue in issues if issue.severity is IssueSeverity.ERROR)
    lines = [
        "Data Integrity Check Complete",
        f"Total Issues: {len(issues)}",
        f"Errors: {errors}",
        f"Warnings: {len(issues) - errors}",
        "",
        "Issue Breakdown:",
    ]
    lines.extend(
        f"- {label}: {by_type[issue_type]}" for issue_type, label in _BREAKDOWN_LABELS.items()
    )
    return "\n".join(lines)
