"""SQLAlchemy mapping metadata for the ledgerlink domain model."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from functools import cache
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers

from ledgerlink.domain.model import (
    Account,
    Expense,
    ExpenseParticipant,
    ExpenseSplit,
    FriendRecord,
    Group,
    GroupMember,
    InviteToken,
    JanitorState,
    LinkRequest,
    LinkRequestStatus,
    MemberAlias,
    UserExpense,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class DecimalType(TypeDecorator[Decimal]):
    """Exact decimal stored as text; SQLite has no fixed-point column type."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: Dialect) -> Decimal | None:
        _ = dialect
        if value is None:
            return None
        return Decimal(value)


class JsonTupleType[TItem](TypeDecorator[tuple[TItem, ...]]):
    """Tuple of value objects serialized as a JSON array."""

    impl = Text
    cache_ok = True

    def dump_item(self, item: TItem) -> Any:
        return item

    def load_item(self, payload: Any) -> TItem:
        return cast(TItem, payload)

    def process_bind_param(
        self, value: tuple[TItem, ...] | None, dialect: Dialect
    ) -> str | None:
        _ = dialect
        if value is None:
            return json.dumps([])
        return json.dumps([self.dump_item(item) for item in value])

    def process_result_value(self, value: str | None, dialect: Dialect) -> tuple[TItem, ...]:
        _ = dialect
        if value is None:
            return ()
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return ()
        return tuple(self.load_item(item) for item in cast(list[Any], loaded))


class StringListType(JsonTupleType[str]):
    cache_ok = True

    def load_item(self, payload: Any) -> str:
        return str(payload)


class MemberListType(JsonTupleType[GroupMember]):
    cache_ok = True

    def dump_item(self, item: GroupMember) -> dict[str, Any]:
        return {"id": item.id, "name": item.name, "is_current_user": item.is_current_user}

    def load_item(self, payload: Any) -> GroupMember:
        data = cast(dict[str, Any], payload)
        return GroupMember(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            is_current_user=bool(data.get("is_current_user", False)),
        )


class SplitListType(JsonTupleType[ExpenseSplit]):
    cache_ok = True

    def dump_item(self, item: ExpenseSplit) -> dict[str, Any]:
        return {
            "split_id": item.split_id,
            "member_id": item.member_id,
            "amount": str(item.amount),
            "is_settled": item.is_settled,
        }

    def load_item(self, payload: Any) -> ExpenseSplit:
        data = cast(dict[str, Any], payload)
        return ExpenseSplit(
            split_id=str(data["split_id"]),
            member_id=str(data["member_id"]),
            amount=Decimal(str(data["amount"])),
            is_settled=bool(data.get("is_settled", False)),
        )


class ParticipantListType(JsonTupleType[ExpenseParticipant]):
    cache_ok = True

    def dump_item(self, item: ExpenseParticipant) -> dict[str, Any]:
        return {
            "member_id": item.member_id,
            "name": item.name,
            "linked_account_id": item.linked_account_id,
            "linked_account_email": item.linked_account_email,
        }

    def load_item(self, payload: Any) -> ExpenseParticipant:
        data = cast(dict[str, Any], payload)
        return ExpenseParticipant(
            member_id=str(data["member_id"]),
            name=str(data.get("name", "")),
            linked_account_id=data.get("linked_account_id"),
            linked_account_email=data.get("linked_account_email"),
        )


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Identity ----------------------------------------------------------------------

account_table = Table(
    "account",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("account_id", String, nullable=False, unique=True),
    Column("email", String, nullable=False, unique=True),
    Column("display_name", String, nullable=False),
    Column("first_name", String, nullable=True),
    Column("last_name", String, nullable=True),
    Column("member_id", String, key="canonical_member_id", nullable=True, index=True),
    Column("alias_member_ids", StringListType(), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=True),
)

member_alias_table = Table(
    "member_alias",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("alias_member_id", String, nullable=False, unique=True),
    Column("canonical_member_id", String, nullable=False, index=True),
    Column("account_email", String, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
)

account_friend_table = Table(
    "account_friend",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("account_email", String, nullable=False, index=True),
    Column("member_id", String, nullable=False),
    Column("name", String, nullable=False),
    Column("nickname", String, nullable=True),
    Column("original_name", String, nullable=True),
    Column("first_name", String, nullable=True),
    Column("last_name", String, nullable=True),
    Column("has_linked_account", Boolean, nullable=False, default=False),
    Column("linked_account_id", String, nullable=True, index=True),
    Column("linked_account_email", String, nullable=True, index=True),
    Column("linked_member_id", String, nullable=True, index=True),
    Column("updated_at", UTCDateTime(), nullable=False),
    UniqueConstraint("account_email", "member_id"),
)

# Ledger ------------------------------------------------------------------------

group_table = Table(
    "ledger_group",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("group_id", String, nullable=False, unique=True),
    Column("name", String, nullable=False),
    Column("owner_email", String, nullable=False, index=True),
    Column("owner_account_id", String, nullable=True),
    Column("members", MemberListType(), nullable=False),
    Column("is_direct", Boolean, nullable=False, default=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
)

expense_table = Table(
    "expense",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("expense_id", String, nullable=False, unique=True),
    Column("group_id", String, nullable=False, index=True),
    Column("description", String, nullable=False),
    Column("total_amount", DecimalType(), nullable=False),
    Column("paid_by_member_id", String, nullable=False),
    Column("owner_email", String, nullable=False, index=True),
    Column("involved_member_ids", StringListType(), nullable=False),
    Column("participant_member_ids", StringListType(), nullable=False),
    Column("splits", SplitListType(), nullable=False),
    Column("participants", ParticipantListType(), nullable=False),
    Column("participant_emails", StringListType(), nullable=False),
    Column("is_settled", Boolean, nullable=False, default=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
)

user_expense_table = Table(
    "user_expense",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("account_id", String, nullable=False, index=True),
    Column("expense_id", String, nullable=False, index=True),
    Column("updated_at", UTCDateTime(), nullable=False),
    UniqueConstraint("account_id", "expense_id"),
)

# Invites -----------------------------------------------------------------------

invite_token_table = Table(
    "invite_token",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("token_id", String, nullable=False, unique=True),
    Column("creator_id", String, nullable=False, index=True),
    Column("creator_email", String, nullable=False),
    Column("target_member_id", String, nullable=False),
    Column("target_member_name", String, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("expires_at", UTCDateTime(), nullable=False),
    Column("claimed_by", String, nullable=True),
    Column("claimed_at", UTCDateTime(), nullable=True),
)

link_request_table = Table(
    "link_request",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("request_id", String, nullable=False, unique=True),
    Column("requester_id", String, nullable=False, index=True),
    Column("requester_email", String, nullable=False),
    Column("requester_name", String, nullable=False),
    Column("recipient_email", String, nullable=False, index=True),
    Column("target_member_id", String, nullable=False),
    Column("target_member_name", String, nullable=False),
    Column(
        "status",
        Enum(LinkRequestStatus, native_enum=False),
        nullable=False,
        default=LinkRequestStatus.PENDING,
    ),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("expires_at", UTCDateTime(), nullable=False),
    Column("rejected_at", UTCDateTime(), nullable=True),
)

# Maintenance -------------------------------------------------------------------

janitor_state_table = Table(
    "janitor_state",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("key", String, nullable=False, unique=True),
    Column("friends_cursor", String, nullable=True),
    Column("updated_at", UTCDateTime(), nullable=False),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Account, account_table)
    mapper_registry.map_imperatively(MemberAlias, member_alias_table)
    mapper_registry.map_imperatively(FriendRecord, account_friend_table)
    mapper_registry.map_imperatively(Group, group_table)
    mapper_registry.map_imperatively(Expense, expense_table)
    mapper_registry.map_imperatively(UserExpense, user_expense_table)
    mapper_registry.map_imperatively(InviteToken, invite_token_table)
    mapper_registry.map_imperatively(LinkRequest, link_request_table)
    mapper_registry.map_imperatively(JanitorState, janitor_state_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
