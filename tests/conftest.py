from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledgerlink.adapters.sqlalchemy import create_all_tables, start_mappers
from ledgerlink.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyLinkingUnitOfWork,
    enable_sqlite_savepoints,
    shutdown,
    startup,
)
from tests.helpers.ledger import FakeUnitOfWork

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = enable_sqlite_savepoints(
        create_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    )
    start_mappers()
    create_all_tables(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, expire_on_commit=False)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyLinkingUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyLinkingUnitOfWork:
        return SqlAlchemyLinkingUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def fake_unit_of_work() -> FakeUnitOfWork:
    return FakeUnitOfWork()
