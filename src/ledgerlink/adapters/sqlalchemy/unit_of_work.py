"""Engine lifecycle and the SQLAlchemy unit of work for linking requests.

``startup()`` binds one process-wide engine; every unit of work opens its own
session from it and closes that session on exit, rolling back on error.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledgerlink.adapters.sqlalchemy.mappings import create_all_tables, start_mappers
from ledgerlink.adapters.sqlalchemy.repositories import (
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
from ledgerlink.config import get_database_config
from ledgerlink.domain.ports.unit_of_work import LinkingRepositories, RepositoryCollection

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Connection, Engine
    from sqlalchemy.orm import SessionTransaction

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """The adapter was used before ``startup()`` or configured twice."""


@dataclass(slots=True)
class _AdapterState:
    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = field(default=None, repr=False)

    def bind(self, engine: Engine) -> None:
        self.engine = engine
        self.sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def reset(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self.sessions = None

    def open_session(self) -> Session:
        if self.sessions is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised; call "
                "ledgerlink.adapters.sqlalchemy.unit_of_work.startup() first"
            )
        return self.sessions()


_STATE = _AdapterState()


def enable_sqlite_savepoints(engine: Engine) -> Engine:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT works on pysqlite.

    Must be called before the engine opens its first connection.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection: Any, _record: object) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(connection: Connection) -> None:
        connection.exec_driver_sql("BEGIN")

    return engine


def _create_engine(uri: str, *, echo: bool) -> Engine:
    if uri.startswith("sqlite") and ":memory:" in uri:
        # one shared connection, otherwise every session sees an empty database
        engine = create_engine(
            uri,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(uri, echo=echo)
    if engine.dialect.name == "sqlite":
        enable_sqlite_savepoints(engine)
    return engine


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the adapter to ``engine`` (or one built from configuration) and create tables."""

    if _STATE.engine is not None and not force:
        raise StartupError("SQLAlchemy adapter already initialised; pass force=True")
    if _STATE.engine is not None and _STATE.engine is not engine:
        _STATE.reset()

    if engine is None:
        database = get_database_config()
        engine = _create_engine(database_uri or database.uri, echo=database.echo)
    start_mappers()
    create_all_tables(engine)
    _STATE.bind(engine)
    log.debug("SQLAlchemy adapter bound to %s", engine.url.render_as_string(hide_password=True))


def configured_engine() -> Engine | None:
    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the engine; a later ``startup()`` may bind a new one."""

    _STATE.reset()


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """One session per ``with`` block; repositories are rebuilt for each session."""

    def __init__(self) -> None:
        if _STATE.sessions is None:
            raise StartupError("SQLAlchemy adapter not initialised")
        self._session: Session | None = None
        self._repositories: TRepositories | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        if self._session is not None:
            raise StartupError("Unit of work already entered")
        self._session = _STATE.open_session()
        self._repositories = self._build_repositories(self._session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def savepoint(self) -> SessionTransaction:
        return self.session.begin_nested()

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work used outside its context")
        return self._session

    @property
    def repositories(self) -> TRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work used outside its context")
        return self._repositories


class SqlAlchemyLinkingUnitOfWork(BaseSqlAlchemyUnitOfWork[LinkingRepositories]):
    def _build_repositories(self, session: Session) -> LinkingRepositories:
        return LinkingRepositories(
            accounts=SqlAlchemyAccountRepository(session),
            aliases=SqlAlchemyAliasRepository(session),
            friends=SqlAlchemyFriendRepository(session),
            groups=SqlAlchemyGroupRepository(session),
            expenses=SqlAlchemyExpenseRepository(session),
            user_expenses=SqlAlchemyUserExpenseRepository(session),
            invite_tokens=SqlAlchemyInviteTokenRepository(session),
            link_requests=SqlAlchemyLinkRequestRepository(session),
            janitor_state=SqlAlchemyJanitorStateRepository(session),
        )


if TYPE_CHECKING:
    from ledgerlink.domain.ports.unit_of_work import LinkingUnitOfWork

    _uow_check: LinkingUnitOfWork = SqlAlchemyLinkingUnitOfWork()
