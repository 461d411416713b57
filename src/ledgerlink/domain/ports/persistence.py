"""Ports for persisting linking aggregates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ledgerlink.domain.model import (
    Account,
    Expense,
    FriendRecord,
    Group,
    InviteToken,
    JanitorState,
    LinkRequest,
    MemberAlias,
    UserExpense,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class DeletableRepository[TEntity](Repository[TEntity], Protocol):
    def delete(self, entity: TEntity) -> None: ...


@runtime_checkable
class AccountRepository(DeletableRepository[Account], Protocol):
    """Persistence contract for registered accounts."""

    def get(self, account_id: str) -> Account | None: ...

    def get_by_email(self, email: str) -> Account | None: ...

    def find_by_member_id(self, member_id: str) -> Account | None:
        """Indexed lookup: canonical id, then the account a direct alias edge points at."""
        ...

    def list_by_emails(self, emails: Iterable[str]) -> list[Account]: ...

    def list_all(self) -> list[Account]: ...


@runtime_checkable
class AliasRepository(Repository[MemberAlias], Protocol):
    """Persistence contract for the append-only alias edge table."""

    def get_by_alias(self, alias_member_id: str) -> MemberAlias | None:
        """Exact (unnormalized) lookup on the unique alias column."""
        ...

    def list_by_canonical(self, canonical_member_id: str) -> list[MemberAlias]: ...

    def list_all(self) -> list[MemberAlias]: ...


@runtime_checkable
class FriendRepository(DeletableRepository[FriendRecord], Protocol):
    """Persistence contract for per-account friend rows."""

    def get(self, friend_id: UUID) -> FriendRecord | None: ...

    def get_by_member(self, account_email: str, member_id: str) -> FriendRecord | None: ...

    def list_by_owner(self, account_email: str) -> list[FriendRecord]: ...

    def list_linked_to(
        self,
        *,
        account_id: str | None = None,
        account_email: str | None = None,
        member_id: str | None = None,
    ) -> list[FriendRecord]:
        """Rows linked to any of the given account id, account email or member id."""
        ...

    def list_page(
        self, cursor: str | None, limit: int
    ) -> tuple[list[FriendRecord], str | None]:
        """Return one keyset page and the cursor of the next page (``None`` when done)."""
        ...

    def list_all(self) -> list[FriendRecord]: ...


@runtime_checkable
class GroupRepository(DeletableRepository[Group], Protocol):
    """Persistence contract for groups."""

    def get(self, group_id: str) -> Group | None: ...

    def list_by_owner(self, owner_email: str) -> list[Group]: ...

    def list_containing(self, member_ids: Iterable[str]) -> list[Group]:
        """Return groups with at least one member whose normalized id is in ``member_ids``."""
        ...

    def list_all(self) -> list[Group]: ...


@runtime_checkable
class ExpenseRepository(DeletableRepository[Expense], Protocol):
    """Persistence contract for expenses."""

    def get(self, expense_id: str) -> Expense | None: ...

    def list_by_group(self, group_id: str) -> list[Expense]: ...

    def list_by_owner(self, owner_email: str) -> list[Expense]: ...

    def list_all(self) -> list[Expense]: ...


@runtime_checkable
class UserExpenseRepository(DeletableRepository[UserExpense], Protocol):
    """Persistence contract for the derived expense visibility index."""

    def list_by_expense(self, expense_id: str) -> list[UserExpense]: ...

    def list_by_account(self, account_id: str) -> list[UserExpense]: ...


@runtime_checkable
class InviteTokenRepository(DeletableRepository[InviteToken], Protocol):
    def get(self, token_id: str) -> InviteToken | None: ...

    def list_by_creator(self, creator_id: str) -> list[InviteToken]: ...


@runtime_checkable
class LinkRequestRepository(DeletableRepository[LinkRequest], Protocol):
    def get(self, request_id: str) -> LinkRequest | None: ...

    def list_by_recipient(self, recipient_email: str) -> list[LinkRequest]: ...

    def list_by_requester(self, requester_id: str) -> list[LinkRequest]: ...


@runtime_checkable
class JanitorStateRepository(Repository[JanitorState], Protocol):
    def get(self, key: str) -> JanitorState | None: ...
