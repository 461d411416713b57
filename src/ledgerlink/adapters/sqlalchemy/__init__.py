"""SQLAlchemy adapter package for ledgerlink."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyAccountRepository,
    SqlAlchemyAliasRepository,
    SqlAlchemyExpenseRepository,
    SqlAlchemyFriendRepository,
    SqlAlchemyGroupRepository,
    SqlAlchemyInviteTokenRepository,
    SqlAlchemyJanitorStateRepository,
    SqlAlchemyLinkRequestRepository,
    SqlAlchemyUserExpenseRepository,
)
from .unit_of_work import (
    SqlAlchemyLinkingUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyAccountRepository",
    "SqlAlchemyAliasRepository",
    "SqlAlchemyExpenseRepository",
    "SqlAlchemyFriendRepository",
    "SqlAlchemyGroupRepository",
    "SqlAlchemyInviteTokenRepository",
    "SqlAlchemyJanitorStateRepository",
    "SqlAlchemyLinkRequestRepository",
    "SqlAlchemyLinkingUnitOfWork",
    "SqlAlchemyUserExpenseRepository",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "startup",
]
