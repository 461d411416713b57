from __future__ import annotations

from ledgerlink.domain.linking import IntegrityAuditor
from ledgerlink.domain.model import ExpenseParticipant, IssueSeverity, IssueType
from ledgerlink.domain.ports import LinkingRepositories
from tests.helpers.ledger import (
    make_account,
    make_expense,
    make_friend,
    make_group,
    make_repositories,
)

ALICE = "alice@example.com"


def _seed_broken_data() -> LinkingRepositories:
    repos = make_repositories()
    repos.accounts.add(make_account(ALICE, "ca"))
    repos.friends.add(
        make_friend(
            ALICE,
            "t9",
            "Ghost",
            has_linked_account=True,
            linked_account_id="acct-ghost",
            linked_account_email="ghost@example.com",
        )
    )
    repos.friends.add(make_friend(ALICE, "m1", "Sam"))
    repos.friends.add(make_friend(ALICE, "m2", "sam "))
    group = make_group("g1", ALICE, [("ca", "Alice"), ("m3", "Sam")])
    repos.groups.add(group)
    expense = make_expense("e1", group, paid_by="ca", shares={"ca": "5", "m3": "5"})
    expense.participants = (
        ExpenseParticipant(
            member_id="m3",
            name="Sam",
            linked_account_id="acct-ghost",
            linked_account_email="ghost@example.com",
        ),
    )
    repos.expenses.add(expense)
    return repos


def test_check_reports_every_issue_type() -> None:
    report = IntegrityAuditor(_seed_broken_data()).check()

    assert len(report.issues) == 7
    assert report.error_count == 4
    assert report.warning_count == 3
    assert len(report.of_type(IssueType.ORPHANED_FRIEND_LINK)) == 1
    assert len(report.of_type(IssueType.ORPHANED_FRIEND_EMAIL_LINK)) == 1
    assert len(report.of_type(IssueType.FRIEND_GROUP_MEMBER_ID_MISMATCH)) == 2
    assert len(report.of_type(IssueType.ORPHANED_EXPENSE_PARTICIPANT_LINK)) == 1
    assert len(report.of_type(IssueType.ORPHANED_EXPENSE_PARTICIPANT_EMAIL_LINK)) == 1

    (fragmentation,) = report.of_type(IssueType.MEMBER_ID_FRAGMENTATION)
    assert fragmentation.severity is IssueSeverity.WARNING
    assert fragmentation.details["friend_name"] == "sam"
    assert fragmentation.details["member_ids"] == ["m1", "m2"]


def test_check_summary_lists_breakdown() -> None:
    summary = IntegrityAuditor(_seed_broken_data()).check().summary

    assert summary.startswith("Data Integrity Check Complete")
    assert "Total Issues: 7" in summary
    assert "Errors: 4" in summary
    assert "- Orphaned friend links: 1" in summary
    assert "- Friend/Group member ID mismatches: 2" in summary


def test_check_is_read_only_and_clean_data_passes() -> None:
    repos = make_repositories()
    repos.accounts.add(make_account(ALICE, "ca"))
    repos.friends.add(make_friend(ALICE, "m1", "Sam"))
    repos.groups.add(make_group("g1", ALICE, [("ca", "Alice"), ("m1", "Sam")]))

    report = IntegrityAuditor(repos).check()

    assert report.issues == ()
    assert "Total Issues: 0" in report.summary
    assert len(repos.friends.list_all()) == 1
