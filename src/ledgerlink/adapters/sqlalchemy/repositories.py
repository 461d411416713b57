"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, cast

from sqlalchemy import or_, select

from ledgerlink.adapters.sqlalchemy.mappings import (
    account_friend_table,
    account_table,
    expense_table,
    group_table,
    invite_token_table,
    janitor_state_table,
    link_request_table,
    member_alias_table,
    user_expense_table,
)
from ledgerlink.domain.linking.normalize import (
    normalize_email,
    normalize_emails,
    normalize_member_id,
    normalize_member_ids,
)
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

    from sqlalchemy import ColumnElement
    from sqlalchemy.orm import Session


class SqlAlchemyRepository[TEntity]:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: TEntity) -> None:
        self.session.add(entity)

    def delete(self, entity: TEntity) -> None:
        self.session.delete(entity)


class SqlAlchemyAccountRepository(SqlAlchemyRepository[Account]):
    def get(self, account_id: str) -> Account | None:
        stmt = select(Account).where(account_table.c.account_id == account_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def get_by_email(self, email: str) -> Account | None:
        stmt = select(Account).where(account_table.c.email == normalize_email(email))
        return self.session.execute(stmt).scalar_one_or_none()

    def find_by_member_id(self, member_id: str) -> Account | None:
        normalized = normalize_member_id(member_id)
        if not normalized:
            return None
        candidates = tuple(dict.fromkeys((normalized, member_id)))
        stmt = (
            select(Account)
            .where(account_table.c.canonical_member_id.in_(candidates))
            .limit(1)
        )
        account = self.session.execute(stmt).scalars().first()
        if account is not None:
            return account
        stmt = (
            select(Account)
            .join(
                member_alias_table,
                member_alias_table.c.canonical_member_id
                == account_table.c.canonical_member_id,
            )
            .where(member_alias_table.c.alias_member_id.in_(candidates))
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def list_by_emails(self, emails: Iterable[str]) -> list[Account]:
        normalized = normalize_emails(emails)
        if not normalized:
            return []
        stmt = select(Account).where(account_table.c.email.in_(normalized))
        return list(self.session.execute(stmt).scalars())

    def list_all(self) -> list[Account]:
        stmt = select(Account).order_by(account_table.c.created_at)
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyAliasRepository(SqlAlchemyRepository[MemberAlias]):
    def get_by_alias(self, alias_member_id: str) -> MemberAlias | None:
        stmt = select(MemberAlias).where(member_alias_table.c.alias_member_id == alias_member_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def list_by_canonical(self, canonical_member_id: str) -> list[MemberAlias]:
        stmt = (
            select(MemberAlias)
            .where(member_alias_table.c.canonical_member_id == canonical_member_id)
            .order_by(member_alias_table.c.created_at)
        )
        return list(self.session.execute(stmt).scalars())

    def list_all(self) -> list[MemberAlias]:
        stmt = select(MemberAlias).order_by(member_alias_table.c.created_at)
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyFriendRepository(SqlAlchemyRepository[FriendRecord]):
    def get(self, friend_id: uuid.UUID) -> FriendRecord | None:
        stmt = select(FriendRecord).where(account_friend_table.c.id == friend_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def get_by_member(self, account_email: str, member_id: str) -> FriendRecord | None:
        stmt = (
            select(FriendRecord)
            .where(account_friend_table.c.account_email == normalize_email(account_email))
            .where(account_friend_table.c.member_id == member_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_by_owner(self, account_email: str) -> list[FriendRecord]:
        stmt = (
            select(FriendRecord)
            .where(account_friend_table.c.account_email == normalize_email(account_email))
            .order_by(account_friend_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())

    def list_linked_to(
        self,
        *,
        account_id: str | None = None,
        account_email: str | None = None,
        member_id: str | None = None,
    ) -> list[FriendRecord]:
        conditions: list[ColumnElement[bool]] = []
        if account_id:
            conditions.append(account_friend_table.c.linked_account_id == account_id)
        if account_email:
            candidates = tuple(dict.fromkeys((normalize_email(account_email), account_email)))
            conditions.append(account_friend_table.c.linked_account_email.in_(candidates))
        if member_id:
            conditions.append(account_friend_table.c.linked_member_id == member_id)
        if not conditions:
            return []
        stmt = (
            select(FriendRecord).where(or_(*conditions)).order_by(account_friend_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())

    def list_page(
        self, cursor: str | None, limit: int
    ) -> tuple[list[FriendRecord], str | None]:
        stmt = select(FriendRecord).order_by(account_friend_table.c.id).limit(limit + 1)
        if cursor:
            stmt = stmt.where(account_friend_table.c.id > uuid.UUID(cursor))
        rows = list(self.session.execute(stmt).scalars())
        page = rows[:limit]
        if len(rows) > limit and page:
            return page, str(page[-1].id)
        return page, None

    def list_all(self) -> list[FriendRecord]:
        stmt = select(FriendRecord).order_by(account_friend_table.c.id)
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyGroupRepository(SqlAlchemyRepository[Group]):
    def get(self, group_id: str) -> Group | None:
        stmt = select(Group).where(group_table.c.group_id == group_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def list_by_owner(self, owner_email: str) -> list[Group]:
        stmt = (
            select(Group)
            .where(group_table.c.owner_email == normalize_email(owner_email))
            .order_by(group_table.c.created_at)
        )
        return list(self.session.execute(stmt).scalars())

    def list_containing(self, member_ids: Iterable[str]) -> list[Group]:
        wanted = set(normalize_member_ids(member_ids))
        if not wanted:
            return []
        return [
            group
            for group in self.list_all()
            if any(normalize_member_id(member.id) in wanted for member in group.members)
        ]

    def list_all(self) -> list[Group]:
        stmt = select(Group).order_by(group_table.c.created_at)
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyExpenseRepository(SqlAlchemyRepository[Expense]):
    def get(self, expense_id: str) -> Expense | None:
        stmt = select(Expense).where(expense_table.c.expense_id == expense_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def list_by_group(self, group_id: str) -> list[Expense]:
        stmt = (
            select(Expense)
            .where(expense_table.c.group_id == group_id)
            .order_by(expense_table.c.created_at)
        )
        return list(self.session.execute(stmt).scalars())

    def list_by_owner(self, owner_email: str) -> list[Expense]:
        stmt = (
            select(Expense)
            .where(expense_table.c.owner_email == normalize_email(owner_email))
            .order_by(expense_table.c.created_at)
        )
        return list(self.session.execute(stmt).scalars())

    def list_all(self) -> list[Expense]:
        stmt = select(Expense).order_by(expense_table.c.created_at)
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyUserExpenseRepository(SqlAlchemyRepository[UserExpense]):
    def list_by_expense(self, expense_id: str) -> list[UserExpense]:
        stmt = select(UserExpense).where(user_expense_table.c.expense_id == expense_id)
        return list(self.session.execute(stmt).scalars())

    def list_by_account(self, account_id: str) -> list[UserExpense]:
        stmt = select(UserExpense).where(user_expense_table.c.account_id == account_id)
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyInviteTokenRepository(SqlAlchemyRepository[InviteToken]):
    def get(self, token_id: str) -> InviteToken | None:
        stmt = select(InviteToken).where(invite_token_table.c.token_id == token_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def list_by_creator(self, creator_id: str) -> list[InviteToken]:
        stmt = (
            select(InviteToken)
            .where(invite_token_table.c.creator_id == creator_id)
            .order_by(invite_token_table.c.created_at)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyLinkRequestRepository(SqlAlchemyRepository[LinkRequest]):
    def get(self, request_id: str) -> LinkRequest | None:
        stmt = select(LinkRequest).where(link_request_table.c.request_id == request_id)
        return self.session.execute(stmt).scalar_one_or_none()

    def list_by_recipient(self, recipient_email: str) -> list[LinkRequest]:
        stmt = (
            select(LinkRequest)
            .where(link_request_table.c.recipient_email == normalize_email(recipient_email))
            .order_by(link_request_table.c.created_at)
        )
        return list(self.session.execute(stmt).scalars())

    def list_by_requester(self, requester_id: str) -> list[LinkRequest]:
        stmt = (
            select(LinkRequest)
            .where(link_request_table.c.requester_id == requester_id)
            .order_by(link_request_table.c.created_at)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyJanitorStateRepository(SqlAlchemyRepository[JanitorState]):
    def get(self, key: str) -> JanitorState | None:
        stmt = select(JanitorState).where(janitor_state_table.c.key == key)
        return self.session.execute(stmt).scalar_one_or_none()


if TYPE_CHECKING:
    from ledgerlink.domain.ports import (
        AccountRepository,
        AliasRepository,
        ExpenseRepository,
        FriendRepository,
        GroupRepository,
        InviteTokenRepository,
        JanitorStateRepository,
        LinkRequestRepository,
        UserExpenseRepository,
    )

    _session_stub = cast("Session", object())
    _account_repo: AccountRepository = SqlAlchemyAccountRepository(_session_stub)
    _alias_repo: AliasRepository = SqlAlchemyAliasRepository(_session_stub)
    _friend_repo: FriendRepository = SqlAlchemyFriendRepository(_session_stub)
    _group_repo: GroupRepository = SqlAlchemyGroupRepository(_session_stub)
    _expense_repo: ExpenseRepository = SqlAlchemyExpenseRepository(_session_stub)
    _user_expense_repo: UserExpenseRepository = SqlAlchemyUserExpenseRepository(_session_stub)
    _invite_repo: InviteTokenRepository = SqlAlchemyInviteTokenRepository(_session_stub)
    _request_repo: LinkRequestRepository = SqlAlchemyLinkRequestRepository(_session_stub)
    _janitor_repo: JanitorStateRepository = SqlAlchemyJanitorStateRepository(_session_stub)
