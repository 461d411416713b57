"""Claim and merge workflows that unify member identities.

A claim attaches a member id created by another account (the *creator*) to the
claimant's own canonical member id. Validation runs to completion before anything is
written; the first failing rule decides the error:

1. self-claim
2. claimant has no canonical id
3. target already owned by another account
4. target resolves to an unrelated canonical
5. an edge for the target points elsewhere
6. the claimant's canonical resolves back to the target
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from ledgerlink.domain.model import FriendRecord, utcnow

from .cascade import (
    CascadePlan,
    CascadeResult,
    CascadeRewriter,
    link_friend_to_account,
)
from .errors import ClaimStateError, FriendNotFoundError, LinkingError, LinkingErrorCode
from .graph import AliasGraph
from .lookup import member_lookup
from .normalize import normalize_email, normalize_member_id

if TYPE_CHECKING:
    from ledgerlink.domain.model import Account, MemberAlias
    from ledgerlink.domain.ports import LinkingRepositories

    from .lookup import MemberLookup

log = logging.getLogger(__name__)


class ClaimState(StrEnum):
    PENDING = "pending"
    VALIDATED = "validated"
    APPLIED = "applied"
    REJECTED = "rejected"


_ALLOWED_TRANSITIONS: dict[ClaimState, frozenset[ClaimState]] = {
    ClaimState.PENDING: frozenset({ClaimState.VALIDATED, ClaimState.REJECTED}),
    ClaimState.VALIDATED: frozenset({ClaimState.APPLIED}),
    ClaimState.APPLIED: frozenset(),
    ClaimState.REJECTED: frozenset(),
}


@dataclass(slots=True)
class ClaimProgress:
    state: ClaimState = ClaimState.PENDING

    def advance(self, new_state: ClaimState) -> None:
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise ClaimStateError(f"Cannot move claim from {self.state} to {new_state}")
        self.state = new_state


@dataclass(frozen=True, slots=True, kw_only=True)
class ClaimContext:
    target_member_id: str
    creator_email: str
    creator_id: str | None = None

    def normalized(self) -> ClaimContext:
        return ClaimContext(
            target_member_id=normalize_member_id(self.target_member_id),
            creator_email=normalize_email(self.creator_email),
            creator_id=self.creator_id,
        )


@dataclass(slots=True, kw_only=True)
class ClaimResult:
    target_member_id: str
    canonical_member_id: str
    alias_member_ids: tuple[str, ...]
    linked_member_id: str
    linked_account_id: str
    linked_account_email: str
    alias_created: bool
    state: ClaimState
    cascade: CascadeResult = field(default_factory=CascadeResult)


@dataclass(frozen=True, slots=True, kw_only=True)
class AliasLink:
    alias_member_id: str
    canonical_member_id: str
    resolved_canonical: str


@dataclass(slots=True, kw_only=True)
class MergeResult:
    success: bool
    already_existed: bool
    canonical_member_id: str
    alias: AliasLink | None = None
    cascade: CascadeResult | None = None


@dataclass(frozen=True, slots=True)
class _ValidatedClaim:
    target: str
    canonical: str
    existing_edge: MemberAlias | None


class ClaimOrchestrator:
    """Entry point for claims and manual merges over one repository collection."""

    def __init__(
        self,
        repositories: LinkingRepositories,
        *,
        legacy_scan: bool = True,
        graph: AliasGraph | None = None,
        cascade: CascadeRewriter | None = None,
        lookup: MemberLookup | None = None,
    ) -> None:
        self.repositories = repositories
        self.graph = graph or AliasGraph(repositories.aliases, legacy_scan=legacy_scan)
        self.lookup = lookup or member_lookup(repositories, legacy_scan=legacy_scan)
        self.cascade = cascade or CascadeRewriter(repositories, lookup=self.lookup)

    # Claims ------------------------------------------------------------------

    def claim(self, account: Account, context: ClaimContext) -> ClaimResult:
        ctx = context.normalized()
        progress = ClaimProgress()
        try:
            validated = self.validate(account, ctx)
        except LinkingError as error:
            progress.advance(ClaimState.REJECTED)
            log.info("Claim of %s by %s rejected: %s", ctx.target_member_id, account.email, error)
            raise
        progress.advance(ClaimState.VALIDATED)

        target, canonical = validated.target, validated.canonical
        alias_created = False
        if target != canonical and validated.existing_edge is None:
            self.graph.add_edge(target, canonical, account.email)
            alias_created = True

        account.alias_member_ids = self._alias_projection(canonical, target)
        account.updated_at = utcnow()

        creator = self.repositories.accounts.get_by_email(ctx.creator_email)
        if creator is not None and creator.canonical_member_id:
            self._link_claimant_friend(account, creator)

        cascade = self.cascade.apply(
            CascadePlan(
                target_member_id=target,
                canonical_member_id=canonical,
                actor_email=ctx.creator_email,
                linked_account=account,
            )
        )
        progress.advance(ClaimState.APPLIED)
        log.info("Claim of %s by %s applied (canonical %s)", target, account.email, canonical)

        return ClaimResult(
            target_member_id=target,
            canonical_member_id=canonical,
            alias_member_ids=account.alias_member_ids,
            linked_member_id=canonical,
            linked_account_id=account.account_id,
            linked_account_email=account.email,
            alias_created=alias_created,
            state=progress.state,
            cascade=cascade,
        )

    def validate(self, account: Account, context: ClaimContext) -> _ValidatedClaim:
        """Run every claim rule without writing; raises ``LinkingError`` on the first failure."""

        ctx = context.normalized()
        target = ctx.target_member_id
        if ctx.creator_email == normalize_email(account.email) or (
            ctx.creator_id is not None and ctx.creator_id == account.account_id
        ):
            raise LinkingError(
                LinkingErrorCode.SELF_CLAIM,
                f"account_id={account.account_id},target_member_id={target}",
            )

        canonical = normalize_member_id(account.canonical_member_id or "")
        if not canonical:
            raise LinkingError(
                LinkingErrorCode.PRECONDITION_MISSING,
                f"account_id={account.account_id} has no member_id assigned",
            )
        if not target:
            raise LinkingError(LinkingErrorCode.PRECONDITION_MISSING, "target_member_id is empty")

        owner = self.lookup.find_account(target)
        if owner is not None and owner.account_id != account.account_id:
            raise LinkingError(
                LinkingErrorCode.ALIAS_CONFLICT,
                f"target_member_id={target},existing_account_id={owner.account_id}",
            )

        resolved = self.graph.resolve_canonical(target)
        if resolved not in (canonical, target):
            raise LinkingError(
                LinkingErrorCode.ALIAS_CONFLICT,
                f"target_member_id={target},resolved_canonical={resolved},"
                f"claimer_canonical={canonical}",
            )

        existing_edge: MemberAlias | None = None
        if target != canonical:
            existing_edge = self.graph.find_edge(target)
            if (
                existing_edge is not None
                and normalize_member_id(existing_edge.canonical_member_id) != canonical
            ):
                raise LinkingError(
                    LinkingErrorCode.ALIAS_CONFLICT,
                    f"alias_member_id={target},"
                    f"existing_canonical={existing_edge.canonical_member_id},"
                    f"claimer_canonical={canonical}",
                )
            if existing_edge is None and self.graph.would_create_cycle(target, canonical):
                raise LinkingError(
                    LinkingErrorCode.ALIAS_CYCLE,
                    f"source_id={target},target_id={canonical}",
                )

        return _ValidatedClaim(target=target, canonical=canonical, existing_edge=existing_edge)

    def _alias_projection(self, canonical: str, target: str) -> tuple[str, ...]:
        aliases = dict.fromkeys(self.graph.aliases_for(canonical))
        if target != canonical:
            aliases.setdefault(target, None)
        return tuple(aliases)

    def _link_claimant_friend(self, account: Account, creator: Account) -> None:
        creator_member_id = normalize_member_id(creator.canonical_member_id or "")
        owner_email = normalize_email(account.email)
        record = self.lookup.find_friend(owner_email, creator_member_id)
        if record is None:
            record = FriendRecord(
                account_email=owner_email,
                member_id=creator_member_id,
                name=creator.label,
            )
            self.repositories.friends.add(record)
        else:
            record.member_id = creator_member_id
        link_friend_to_account(record, creator)

    # Manual merges -----------------------------------------------------------

    def merge_member_ids(self, actor: Account, source_id: str, target_id: str) -> MergeResult:
        """Make ``source_id`` an alias of whatever ``target_id`` resolves to."""

        source = normalize_member_id(source_id)
        target = normalize_member_id(target_id)
        if not source or not target:
            raise LinkingError(
                LinkingErrorCode.PRECONDITION_MISSING, "source and target ids are required"
            )
        if source == target:
            return MergeResult(success=True, already_existed=True, canonical_member_id=target)

        existing = self.graph.find_edge(source)
        if existing is not None:
            existing_root = self.graph.resolve_canonical(existing.canonical_member_id)
            requested_root = self.graph.resolve_canonical(target)
            if existing_root != requested_root:
                raise LinkingError(
                    LinkingErrorCode.ALIAS_CONFLICT,
                    f"source_id={source},existing_canonical={existing.canonical_member_id},"
                    f"requested_target={target}",
                )
            return MergeResult(
                success=True,
                already_existed=True,
                canonical_member_id=existing_root,
                alias=AliasLink(
                    alias_member_id=source,
                    canonical_member_id=normalize_member_id(existing.canonical_member_id),
                    resolved_canonical=existing_root,
                ),
            )

        if self.graph.would_create_cycle(source, target):
            raise LinkingError(
                LinkingErrorCode.ALIAS_CYCLE, f"source_id={source},target_id={target}"
            )

        resolved = self.graph.resolve_canonical(target)
        self.graph.add_edge(source, resolved, actor.email)
        cascade = self.cascade.apply(
            CascadePlan(
                target_member_id=source,
                canonical_member_id=resolved,
                actor_email=actor.email,
                linked_account=self.lookup.find_account(resolved),
            )
        )
        return MergeResult(
            success=True,
            already_existed=False,
            canonical_member_id=resolved,
            alias=AliasLink(
                alias_member_id=source,
                canonical_member_id=resolved,
                resolved_canonical=resolved,
            ),
            cascade=cascade,
        )

    def merge_unlinked_friends(
        self, actor: Account, friend_id_1: str, friend_id_2: str
    ) -> MergeResult:
        """Fold friend 2 into friend 1; both must be unlinked rows of ``actor``."""

        first = normalize_member_id(friend_id_1)
        second = normalize_member_id(friend_id_2)
        owner_email = normalize_email(actor.email)
        if first == second:
            return MergeResult(success=True, already_existed=True, canonical_member_id=first)

        records = []
        for member_id in (first, second):
            record = self.lookup.find_friend(owner_email, member_id)
            if record is None:
                raise FriendNotFoundError(f"Friend with member_id {member_id} not found")
            records.append(record)
        for record in records:
            if record.has_linked_account:
                raise LinkingError(
                    LinkingErrorCode.FRIEND_LINKED,
                    f"member_id={normalize_member_id(record.member_id)},name={record.name}",
                )

        canonical = self.graph.resolve_canonical(first)
        existing = self.graph.find_edge(second)
        if existing is not None:
            existing_root = self.graph.resolve_canonical(existing.canonical_member_id)
            if existing_root == canonical:
                return MergeResult(
                    success=True, already_existed=True, canonical_member_id=canonical
                )
            raise LinkingError(
                LinkingErrorCode.ALIAS_CONFLICT,
                f"source_id={second},existing_canonical={existing.canonical_member_id},"
                f"requested_target={first}",
            )
        if self.graph.would_create_cycle(second, first):
            raise LinkingError(
                LinkingErrorCode.ALIAS_CYCLE, f"source_id={second},target_id={first}"
            )

        self.graph.add_edge(second, canonical, owner_email)
        cascade = self.cascade.apply(
            CascadePlan(
                target_member_id=second,
                canonical_member_id=canonical,
                actor_email=owner_email,
            )
        )
        return MergeResult(
            success=True,
            already_existed=False,
            canonical_member_id=canonical,
            alias=AliasLink(
                alias_member_id=second,
                canonical_member_id=canonical,
                resolved_canonical=canonical,
            ),
            cascade=cascade,
        )
