from __future__ import annotations

import logging

import pytest

from ledgerlink.domain.linking import AliasGraph, LinkingError, LinkingErrorCode
from ledgerlink.domain.model import MemberAlias
from tests.helpers.ledger import FakeAliasRepository


def _edge(alias: str, canonical: str) -> MemberAlias:
    return MemberAlias(
        alias_member_id=alias, canonical_member_id=canonical, account_email="a@example.com"
    )


def test_resolve_follows_chain_to_root() -> None:
    graph = AliasGraph(FakeAliasRepository([_edge("a", "b"), _edge("b", "c")]))

    assert graph.resolve_canonical("A") == "c"
    assert graph.resolve_canonical("c") == "c"
    assert graph.resolve_canonical("unknown") == "unknown"


def test_resolve_terminates_on_legacy_cycle(caplog: pytest.LogCaptureFixture) -> None:
    graph = AliasGraph(FakeAliasRepository([_edge("a", "b"), _edge("b", "a")]))

    with caplog.at_level(logging.WARNING):
        resolved = graph.resolve_canonical("a")

    assert resolved in {"a", "b"}
    assert "cycle" in caplog.text


def test_transitive_aliases_and_equivalence_class() -> None:
    graph = AliasGraph(
        FakeAliasRepository([_edge("x", "root"), _edge("y", "x"), _edge("z", "root")])
    )

    assert graph.aliases_for("root") == ("x", "z")
    assert set(graph.transitive_aliases("root")) == {"x", "y", "z"}
    assert graph.equivalence_class("y")[0] == "root"
    assert set(graph.equivalence_class("y")) == {"root", "x", "y", "z"}


def test_add_edge_normalizes_and_persists() -> None:
    repo = FakeAliasRepository()
    graph = AliasGraph(repo)

    edge = graph.add_edge(" T1 ", "CB", "Owner@Example.com")

    assert (edge.alias_member_id, edge.canonical_member_id) == ("t1", "cb")
    assert edge.account_email == "owner@example.com"
    assert repo.items == [edge]


def test_add_edge_rejects_existing_alias() -> None:
    graph = AliasGraph(FakeAliasRepository([_edge("t1", "ca")]))

    with pytest.raises(LinkingError) as excinfo:
        graph.add_edge("t1", "cb", "b@example.com")

    assert excinfo.value.code is LinkingErrorCode.ALIAS_CONFLICT
    assert str(excinfo.value).startswith("ALIAS_CONFLICT:")


def test_add_edge_rejects_cycle() -> None:
    graph = AliasGraph(FakeAliasRepository([_edge("b", "a")]))

    with pytest.raises(LinkingError) as excinfo:
        graph.add_edge("a", "b", "a@example.com")

    assert excinfo.value.code is LinkingErrorCode.ALIAS_CYCLE


def test_add_edge_requires_both_ids() -> None:
    graph = AliasGraph(FakeAliasRepository())

    with pytest.raises(LinkingError) as excinfo:
        graph.add_edge(" ", "cb", "a@example.com")

    assert excinfo.value.code is LinkingErrorCode.PRECONDITION_MISSING


def test_legacy_scan_finds_unnormalized_rows() -> None:
    legacy_rows = [_edge(" T1", "CB ")]

    indexed = AliasGraph(FakeAliasRepository(legacy_rows), legacy_scan=False)
    scanning = AliasGraph(FakeAliasRepository(legacy_rows), legacy_scan=True)

    assert indexed.resolve_canonical("t1") == "t1"
    assert scanning.resolve_canonical("t1") == "cb"
    assert scanning.aliases_for("cb") == ("t1",)

