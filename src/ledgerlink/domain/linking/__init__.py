"""Identity canonicalization and account linking."""

from __future__ import annotations

from .cascade import CascadePlan, CascadeResult, CascadeRewriter
from .claims import (
    AliasLink,
    ClaimContext,
    ClaimOrchestrator,
    ClaimResult,
    ClaimState,
    MergeResult,
)
from .errors import (
    AccountNotFoundError,
    AuthorizationError,
    ClaimStateError,
    FriendNotFoundError,
    GroupNotFoundError,
    InviteTokenClaimedError,
    InviteTokenError,
    InviteTokenExpiredError,
    InviteTokenNotFoundError,
    LinkingError,
    LinkingErrorCode,
    LinkRequestError,
    LinkRequestNotFoundError,
    NotFoundError,
    UnauthenticatedError,
)
from .graph import AliasGraph, IndexedAliasLookup, LegacyScanAliasLookup
from .integrity import IntegrityAuditor, IntegrityReport, Issue
from .invites import ExpensePreview, InviteManager, InviteValidation
from .janitor import JanitorResult, OrphanJanitor, PurgeResult, purge_account_data
from .lookup import IndexedMemberLookup, LegacyScanMemberLookup, MemberLookup, member_lookup
from .normalize import normalize_email, normalize_member_id, normalize_member_ids
from .visibility import VisibilityDiff, VisibilityReconciler

__all__ = [
    "AccountNotFoundError",
    "AliasGraph",
    "AliasLink",
    "AuthorizationError",
    "CascadePlan",
    "CascadeResult",
    "CascadeRewriter",
    "ClaimContext",
    "ClaimOrchestrator",
    "ClaimResult",
    "ClaimState",
    "ClaimStateError",
    "ExpensePreview",
    "FriendNotFoundError",
    "GroupNotFoundError",
    "IndexedAliasLookup",
    "IndexedMemberLookup",
    "IntegrityAuditor",
    "IntegrityReport",
    "InviteManager",
    "InviteTokenClaimedError",
    "InviteTokenError",
    "InviteTokenExpiredError",
    "InviteTokenNotFoundError",
    "InviteValidation",
    "Issue",
    "JanitorResult",
    "LegacyScanAliasLookup",
    "LegacyScanMemberLookup",
    "LinkRequestError",
    "LinkRequestNotFoundError",
    "LinkingError",
    "LinkingErrorCode",
    "MemberLookup",
    "NotFoundError",
    "OrphanJanitor",
    "PurgeResult",
    "UnauthenticatedError",
    "VisibilityDiff",
    "VisibilityReconciler",
    "member_lookup",
    "normalize_email",
    "normalize_member_id",
    "normalize_member_ids",
    "purge_account_data",
]
