from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from ledgerlink.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyLinkingUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from tests.helpers.ledger import make_account

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_unit_of_work_requires_startup() -> None:
    assert not is_started()
    with pytest.raises(StartupError):
        SqlAlchemyLinkingUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:")
    engine_b = create_engine("sqlite+pysqlite:///:memory:")

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b


def test_unit_of_work_commits(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyLinkingUnitOfWork() as uow:
        uow.repositories.accounts.add(make_account("alice@example.com", "ca"))
        uow.commit()

    with SqlAlchemyLinkingUnitOfWork() as uow:
        stored = uow.repositories.accounts.get_by_email("alice@example.com")
        assert stored is not None
        assert stored.canonical_member_id == "ca"


def test_unit_of_work_rolls_back_on_error(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with pytest.raises(RuntimeError), SqlAlchemyLinkingUnitOfWork() as uow:
        uow.repositories.accounts.add(make_account("alice@example.com", "ca"))
        uow.session.flush()
        raise RuntimeError("boom")

    with SqlAlchemyLinkingUnitOfWork() as uow:
        assert uow.repositories.accounts.list_all() == []


def test_savepoint_undoes_only_nested_writes(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyLinkingUnitOfWork() as uow:
        uow.repositories.accounts.add(make_account("alice@example.com", "ca"))
        with pytest.raises(RuntimeError), uow.savepoint():
            uow.repositories.accounts.add(make_account("bob@example.com", "cb"))
            uow.session.flush()
            raise RuntimeError("boom")
        uow.commit()

    with SqlAlchemyLinkingUnitOfWork() as uow:
        stored = uow.repositories.accounts.list_all()
        assert [account.email for account in stored] == ["alice@example.com"]


def test_repositories_unavailable_outside_context(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    uow = SqlAlchemyLinkingUnitOfWork()

    with pytest.raises(StartupError):
        _ = uow.repositories
