"""Error taxonomy for identity linking and its surrounding services."""

from __future__ import annotations

from enum import StrEnum


class LinkingErrorCode(StrEnum):
    SELF_CLAIM = "SELF_CLAIM"
    ALIAS_CONFLICT = "ALIAS_CONFLICT"
    ALIAS_CYCLE = "ALIAS_CYCLE"
    PRECONDITION_MISSING = "PRECONDITION_MISSING"
    FRIEND_LINKED = "FRIEND_LINKED"


class LinkingError(Exception):
    """Rejected claim or merge. Rendered as ``CODE:details``."""

    def __init__(self, code: LinkingErrorCode, details: str) -> None:
        super().__init__(f"{code}:{details}")
        self.code = code
        self.details = details


class ClaimStateError(RuntimeError):
    """Raised on an invalid claim state transition."""


class NotFoundError(LookupError):
    """Base class for missing domain records."""


class AccountNotFoundError(NotFoundError):
    pass


class FriendNotFoundError(NotFoundError):
    pass


class GroupNotFoundError(NotFoundError):
    pass


class InviteTokenNotFoundError(NotFoundError):
    pass


class LinkRequestNotFoundError(NotFoundError):
    pass


class InviteTokenError(ValueError):
    """Invite token exists but cannot be used."""


class InviteTokenExpiredError(InviteTokenError):
    pass


class InviteTokenClaimedError(InviteTokenError):
    pass


class LinkRequestError(ValueError):
    """Link request exists but is no longer actionable."""


class AuthorizationError(PermissionError):
    """Caller is authenticated but not allowed to perform the operation."""


class UnauthenticatedError(PermissionError):
    """No authenticated identity was supplied."""


__all__ = [
    "AccountNotFoundError",
    "AuthorizationError",
    "ClaimStateError",
    "FriendNotFoundError",
    "GroupNotFoundError",
    "InviteTokenClaimedError",
    "InviteTokenError",
    "InviteTokenExpiredError",
    "InviteTokenNotFoundError",
    "LinkRequestError",
    "LinkRequestNotFoundError",
    "LinkingError",
    "LinkingErrorCode",
    "NotFoundError",
    "UnauthenticatedError",
]
