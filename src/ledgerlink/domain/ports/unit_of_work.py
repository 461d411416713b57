"""Transaction boundary for linking requests.

A request opens one unit of work, reads and writes through ``repositories`` and
either commits or leaves the block with an exception, which rolls everything back.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from contextlib import AbstractContextManager
    from types import TracebackType

    from ledgerlink.domain.ports.persistence import (
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


@runtime_checkable
class RepositoryCollection(Protocol):
    """Repositories sharing one session."""


@dataclass(slots=True)
class LinkingRepositories(RepositoryCollection):
    accounts: AccountRepository
    aliases: AliasRepository
    friends: FriendRepository
    groups: GroupRepository
    expenses: ExpenseRepository
    # derived visibility index, rebuilt by the cascade
    user_expenses: UserExpenseRepository
    invite_tokens: InviteTokenRepository
    link_requests: LinkRequestRepository
    janitor_state: JanitorStateRepository


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def savepoint(self) -> AbstractContextManager[object]:
        """Nested scope; an exception leaving it undoes only the writes made inside."""
        ...


type LinkingUnitOfWork = UnitOfWork[LinkingRepositories]
