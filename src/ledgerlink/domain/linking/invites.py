"""Invite tokens and link requests: the explicit triggers of a claim.

Both flows end in ``ClaimOrchestrator.claim`` with the token or request creator as
the claim's creator. The claim is validated before the trigger is marked as used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from ledgerlink.domain.model import InviteToken, LinkRequest, LinkRequestStatus, utcnow

from .claims import ClaimContext
from .errors import (
    AuthorizationError,
    InviteTokenClaimedError,
    InviteTokenExpiredError,
    InviteTokenNotFoundError,
    LinkRequestError,
    LinkRequestNotFoundError,
)
from .normalize import normalize_email, normalize_member_id

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from ledgerlink.domain.model import Account, Expense
    from ledgerlink.domain.ports import LinkingRepositories

    from .claims import ClaimOrchestrator, ClaimResult

log = logging.getLogger(__name__)

DEFAULT_INVITE_TTL = timedelta(days=30)
DEFAULT_LINK_REQUEST_TTL = timedelta(days=7)


@dataclass(frozen=True, slots=True, kw_only=True)
class ExpensePreview:
    expense_count: int
    group_names: tuple[str, ...]
    total_balance: Decimal


@dataclass(frozen=True, slots=True, kw_only=True)
class InviteValidation:
    is_valid: bool
    error: str | None = None
    token: InviteToken | None = None
    creator_name: str | None = None
    expense_preview: ExpensePreview | None = None


def preview_expenses(
    expenses: list[Expense], member_id: str, group_names: dict[str, str]
) -> ExpensePreview:
    """Summarize what ``member_id`` would inherit; positive balance means others owe them."""

    target = normalize_member_id(member_id)
    involved = [
        expense
        for expense in expenses
        if normalize_member_id(expense.paid_by_member_id) == target
        or any(normalize_member_id(m) == target for m in expense.involved_member_ids)
    ]

    balance = Decimal(0)
    for expense in involved:
        if normalize_member_id(expense.paid_by_member_id) == target:
            balance += sum(
                (
                    split.amount
                    for split in expense.splits
                    if normalize_member_id(split.member_id) != target
                ),
                Decimal(0),
            )
            continue
        own = next(
            (s for s in expense.splits if normalize_member_id(s.member_id) == target), None
        )
        if own is not None:
            balance -= own.amount

    names = dict.fromkeys(
        group_names[expense.group_id] for expense in involved if expense.group_id in group_names
    )
    return ExpensePreview(
        expense_count=len(involved), group_names=tuple(names), total_balance=balance
    )


class InviteManager:
    def __init__(
        self,
        repositories: LinkingRepositories,
        orchestrator: ClaimOrchestrator,
        *,
        invite_ttl: timedelta = DEFAULT_INVITE_TTL,
        link_request_ttl: timedelta = DEFAULT_LINK_REQUEST_TTL,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.repositories = repositories
        self.orchestrator = orchestrator
        self.invite_ttl = invite_ttl
        self.link_request_ttl = link_request_ttl
        self.clock = clock

    # Invite tokens -----------------------------------------------------------

    def create_invite(
        self,
        creator: Account,
        token_id: str,
        target_member_id: str,
        target_member_name: str,
    ) -> InviteToken:
        existing = self.repositories.invite_tokens.get(token_id)
        if existing is not None:
            return existing
        now = self.clock()
        token = InviteToken(
            token_id=token_id,
            creator_id=creator.account_id,
            creator_email=normalize_email(creator.email),
            target_member_id=normalize_member_id(target_member_id),
            target_member_name=target_member_name,
            created_at=now,
            expires_at=now + self.invite_ttl,
        )
        self.repositories.invite_tokens.add(token)
        log.info("Invite %s created by %s", token_id, creator.email)
        return token

    def validate_invite(self, token_id: str) -> InviteValidation:
        token = self.repositories.invite_tokens.get(token_id)
        if token is None:
            return InviteValidation(is_valid=False, error="Token not found")

        creator = self.repositories.accounts.get_by_email(token.creator_email)
        creator_name = creator.display_name if creator is not None else None
        if token.is_expired(self.clock()):
            return InviteValidation(
                is_valid=False, error="Token has expired", token=token, creator_name=creator_name
            )
        if token.claimed_by:
            return InviteValidation(
                is_valid=False,
                error="Token has already been claimed",
                token=token,
                creator_name=creator_name,
            )

        group_names = {group.group_id: group.name for group in self.repositories.groups.list_all()}
        preview = preview_expenses(
            self.repositories.expenses.list_all(), token.target_member_id, group_names
        )
        return InviteValidation(
            is_valid=True, token=token, creator_name=creator_name, expense_preview=preview
        )

    def claim_invite(self, account: Account, token_id: str) -> ClaimResult:
        token = self.repositories.invite_tokens.get(token_id)
        if token is None:
            raise InviteTokenNotFoundError(f"Token {token_id} not found")
        now = self.clock()
        if token.is_expired(now):
            raise InviteTokenExpiredError("Token has expired")
        if token.claimed_by and token.claimed_by != account.account_id:
            raise InviteTokenClaimedError("Token has already been claimed")

        context = ClaimContext(
            target_member_id=token.target_member_id,
            creator_email=token.creator_email,
            creator_id=token.creator_id,
        )
        self.orchestrator.validate(account, context)
        if not token.claimed_by:
            token.claimed_by = account.account_id
            token.claimed_at = now
        return self.orchestrator.claim(account, context)

    def revoke_invite(self, account: Account, token_id: str) -> None:
        token = self.repositories.invite_tokens.get(token_id)
        if token is None:
            raise InviteTokenNotFoundError(f"Token {token_id} not found")
        if token.creator_id != account.account_id:
            raise AuthorizationError("Not authorized to revoke this token")
        self.repositories.invite_tokens.delete(token)
        log.info("Invite %s revoked", token_id)

    def list_active_invites(self, account: Account) -> list[InviteToken]:
        now = self.clock()
        return [
            token
            for token in self.repositories.invite_tokens.list_by_creator(account.account_id)
            if not token.claimed_by and not token.is_expired(now)
        ]

    # Link requests -----------------------------------------------------------

    def create_link_request(
        self,
        requester: Account,
        request_id: str,
        recipient_email: str,
        target_member_id: str,
        target_member_name: str,
    ) -> LinkRequest:
        existing = self.repositories.link_requests.get(request_id)
        if existing is not None:
            return existing
        now = self.clock()
        request = LinkRequest(
            request_id=request_id,
            requester_id=requester.account_id,
            requester_email=normalize_email(requester.email),
            requester_name=requester.display_name,
            recipient_email=normalize_email(recipient_email),
            target_member_id=normalize_member_id(target_member_id),
            target_member_name=target_member_name,
            created_at=now,
            expires_at=now + self.link_request_ttl,
        )
        self.repositories.link_requests.add(request)
        return request

    def accept_link_request(self, account: Account, request_id: str) -> ClaimResult:
        request = self._require_request(request_id)
        if request.recipient_email != normalize_email(account.email):
            raise AuthorizationError("Not authorized to accept this request")
        if request.status != LinkRequestStatus.PENDING:
            raise LinkRequestError("Request is no longer pending")
        if request.is_expired(self.clock()):
            raise LinkRequestError("Request has expired")

        context = ClaimContext(
            target_member_id=request.target_member_id,
            creator_email=request.requester_email,
            creator_id=request.requester_id,
        )
        self.orchestrator.validate(account, context)
        request.status = LinkRequestStatus.ACCEPTED
        return self.orchestrator.claim(account, context)

    def decline_link_request(self, account: Account, request_id: str) -> None:
        request = self._require_request(request_id)
        if request.recipient_email != normalize_email(account.email):
            raise AuthorizationError("Not authorized to decline this request")
        request.status = LinkRequestStatus.DECLINED
        request.rejected_at = self.clock()

    def cancel_link_request(self, account: Account, request_id: str) -> None:
        request = self._require_request(request_id)
        if request.requester_id != account.account_id:
            raise AuthorizationError("Not authorized to cancel this request")
        self.repositories.link_requests.delete(request)

    def list_incoming(self, account: Account) -> list[LinkRequest]:
        return self.repositories.link_requests.list_by_recipient(normalize_email(account.email))

    def list_outgoing(self, account: Account) -> list[LinkRequest]:
        return self.repositories.link_requests.list_by_requester(account.account_id)

    def _require_request(self, request_id: str) -> LinkRequest:
        request = self.repositories.link_requests.get(request_id)
        if request is None:
            raise LinkRequestNotFoundError(f"Request {request_id} not found")
        return request
