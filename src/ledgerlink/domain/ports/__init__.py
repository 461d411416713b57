"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    AccountRepository,
    AliasRepository,
    DeletableRepository,
    ExpenseRepository,
    FriendRepository,
    GroupRepository,
    InviteTokenRepository,
    JanitorStateRepository,
    LinkRequestRepository,
    Repository,
    UserExpenseRepository,
)
from .unit_of_work import (
    LinkingRepositories,
    LinkingUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AccountRepository",
    "AliasRepository",
    "DeletableRepository",
    "ExpenseRepository",
    "FriendRepository",
    "GroupRepository",
    "InviteTokenRepository",
    "JanitorStateRepository",
    "LinkRequestRepository",
    "LinkingRepositories",
    "LinkingUnitOfWork",
    "Repository",
    "RepositoryCollection",
    "UnitOfWork",
    "UserExpenseRepository",
]
