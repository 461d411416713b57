"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class LinkRequestStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class IssueSeverity(StrEnum):
    ERROR = "error"
    WARNING = "warning"


class IssueType(StrEnum):
    ORPHANED_FRIEND_LINK = "orphaned_friend_link"
    ORPHANED_FRIEND_EMAIL_LINK = "orphaned_friend_email_link"
    MEMBER_ID_FRAGMENTATION = "member_id_fragmentation"
    FRIEND_GROUP_MEMBER_ID_MISMATCH = "friend_group_member_id_mismatch"
    ORPHANED_EXPENSE_PARTICIPANT_LINK = "orphaned_expense_participant_link"
    ORPHANED_EXPENSE_PARTICIPANT_EMAIL_LINK = "orphaned_expense_participant_email_link"
