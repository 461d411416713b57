"""Alias graph over member identities.

Edges point from an alias to its canonical member id. The graph is kept acyclic on
write, but resolution still guards against cycles left behind by older data and
never raises.

Lookups come in two flavours:
- ``IndexedAliasLookup`` uses the unique alias index (normalized value first, then
  the raw value for rows written before normalization)
- ``LegacyScanAliasLookup`` additionally falls back to a full scan comparing
  normalized values; it exists only until stored ids are backfilled
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from ledgerlink.domain.model import MemberAlias

from .errors import LinkingError, LinkingErrorCode
from .normalize import normalize_email, normalize_member_id, normalize_member_ids

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ledgerlink.domain.ports import AliasRepository

log = logging.getLogger(__name__)


class AliasLookup(Protocol):
    def find_edge(self, alias_member_id: str) -> MemberAlias | None: ...

    def aliases_for(self, canonical_member_id: str) -> list[MemberAlias]: ...


class IndexedAliasLookup:
    def __init__(self, aliases: AliasRepository) -> None:
        self.aliases = aliases

    def find_edge(self, alias_member_id: str) -> MemberAlias | None:
        normalized = normalize_member_id(alias_member_id)
        edge = self.aliases.get_by_alias(normalized)
        if edge is None and alias_member_id != normalized:
            edge = self.aliases.get_by_alias(alias_member_id)
        return edge

    def aliases_for(self, canonical_member_id: str) -> list[MemberAlias]:
        normalized = normalize_member_id(canonical_member_id)
        edges = self.aliases.list_by_canonical(normalized)
        if canonical_member_id != normalized:
            known = {edge.id for edge in edges}
            edges.extend(
                edge
                for edge in self.aliases.list_by_canonical(canonical_member_id)
                if edge.id not in known
            )
        return edges


class LegacyScanAliasLookup(IndexedAliasLookup):
    """Indexed lookup plus a full-table scan for unnormalized legacy rows."""

    def find_edge(self, alias_member_id: str) -> MemberAlias | None:
        edge = super().find_edge(alias_member_id)
        if edge is not None:
            return edge
        normalized = normalize_member_id(alias_member_id)
        for candidate in self.aliases.list_all():
            if normalize_member_id(candidate.alias_member_id) == normalized:
                log.debug("Alias %s found by legacy scan", normalized)
                return candidate
        return None

    def aliases_for(self, canonical_member_id: str) -> list[MemberAlias]:
        edges = super().aliases_for(canonical_member_id)
        if edges:
            return edges
        normalized = normalize_member_id(canonical_member_id)
        return [
            edge
            for edge in self.aliases.list_all()
            if normalize_member_id(edge.canonical_member_id) == normalized
        ]


class AliasGraph:
    """Resolution, traversal and guarded writes over the alias edge table."""

    def __init__(self, aliases: AliasRepository, *, legacy_scan: bool = True) -> None:
        self.aliases = aliases
        self.lookup: AliasLookup = (
            LegacyScanAliasLookup(aliases) if legacy_scan else IndexedAliasLookup(aliases)
        )

    def find_edge(self, alias_member_id: str) -> MemberAlias | None:
        return self.lookup.find_edge(alias_member_id)

    def resolve_canonical(self, member_id: str, visited: Iterable[str] | None = None) -> str:
        """Follow outgoing edges until an id without one is reached.

        Returns the first repeated id when the chain loops.
        """

        current = normalize_member_id(member_id)
        seen = set(visited or ())
        while current not in seen:
            seen.add(current)
            edge = self.find_edge(current)
            if edge is None:
                return current
            current = normalize_member_id(edge.canonical_member_id)
        log.warning("Alias cycle detected while resolving %s", member_id)
        return current

    def aliases_for(self, canonical_member_id: str) -> tuple[str, ...]:
        """Direct aliases of ``canonical_member_id`` (normalized, deduped)."""

        return normalize_member_ids(
            edge.alias_member_id for edge in self.lookup.aliases_for(canonical_member_id)
        )

    def transitive_aliases(self, canonical_member_id: str) -> tuple[str, ...]:
        """Every id whose chain of edges ends at ``canonical_member_id`` (root excluded)."""

        root = normalize_member_id(canonical_member_id)
        members: dict[str, None] = {root: None}
        frontier = [root]
        while frontier:
            node = frontier.pop()
            for alias in self.aliases_for(node):
                if alias not in members:
                    members[alias] = None
                    frontier.append(alias)
        return tuple(member for member in members if member != root)

    def equivalence_class(self, member_id: str) -> tuple[str, ...]:
        """Canonical id first, then every id that resolves to it, then the input."""

        canonical = self.resolve_canonical(member_id)
        members = dict.fromkeys((canonical, *self.transitive_aliases(canonical)))
        members.setdefault(normalize_member_id(member_id), None)
        return tuple(members)

    def would_create_cycle(self, source_member_id: str, target_member_id: str) -> bool:
        return self.resolve_canonical(target_member_id) == normalize_member_id(source_member_id)

    def add_edge(
        self, alias_member_id: str, canonical_member_id: str, owner_email: str
    ) -> MemberAlias:
        alias = normalize_member_id(alias_member_id)
        canonical = normalize_member_id(canonical_member_id)
        if not alias or not canonical:
            raise LinkingError(
                LinkingErrorCode.PRECONDITION_MISSING, "alias and canonical ids are required"
            )
        existing = self.find_edge(alias)
        if existing is not None:
            raise LinkingError(
                LinkingErrorCode.ALIAS_CONFLICT,
                f"{alias} is already linked to {existing.canonical_member_id}",
            )
        if self.would_create_cycle(alias, canonical):
            raise LinkingError(
                LinkingErrorCode.ALIAS_CYCLE, f"linking {alias} to {canonical} would loop"
            )
        edge = MemberAlias(
            alias_member_id=alias,
            canonical_member_id=canonical,
            account_email=normalize_email(owner_email),
        )
        self.aliases.add(edge)
        log.info("Alias edge %s -> %s written", alias, canonical)
        return edge
