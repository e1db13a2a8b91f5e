"""Grouping of selected filter nodes and N-way merging of their values."""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from quizgraph.filters.base import ResolutionContext
from quizgraph.filters.registry import FilterRegistry
from quizgraph.graph import Node, QuizGraph, scope_key, source_scope_ids

logger = logging.getLogger(__name__)


@dataclass
class FilterGroup:
    """Selected filter nodes sharing a definition id and a source scope."""

    definition_id: str
    scope_source_ids: list[str]
    nodes: list[Node] = field(default_factory=list)

    @property
    def key(self) -> tuple[str, str]:
        return self.definition_id, scope_key(self.scope_source_ids)


@dataclass
class ResolvedFilter:
    """One filter entry of the resolved configuration.

    Attributes:
        definition_id: Filter kind.
        settings: Resolved (and possibly merged) value.
        scope_source_ids: Source ids the filter is restricted to; empty
            means every source.
        node_ids: Ids of the nodes that produced this entry.
        is_merged: True when several nodes were combined.
        is_default: True when no node survived and the kind's default
            settings were used.
    """

    definition_id: str
    settings: dict[str, Any]
    scope_source_ids: list[str] = field(default_factory=list)
    node_ids: list[str] = field(default_factory=list)
    is_merged: bool = False
    is_default: bool = False


def group_filters(nodes: Sequence[Node], graph: QuizGraph) -> list[FilterGroup]:
    """Group filter nodes by (definition id, source scope), first-seen order.

    Nodes scoped to different sources are never placed in the same group.
    """
    groups: dict[tuple[str, str], FilterGroup] = {}
    for node in nodes:
        source_ids = source_scope_ids(graph, node.id)
        group = FilterGroup(node.definition_id, source_ids)
        groups.setdefault(group.key, group).nodes.append(node)
    return list(groups.values())


def resolve_group(
    group: FilterGroup,
    registry: FilterRegistry,
    context: ResolutionContext,
    rng: random.Random,
) -> ResolvedFilter:
    """Resolve every node of a group and merge the results.

    Raises:
        UnknownFilterError: If the group's definition id is not registered.
        MissingFieldError: If a node's settings are incomplete.
    """
    kind = registry.get(group.definition_id)
    values = [kind.resolve(node.settings, context, rng) for node in group.nodes]
    node_ids = [node.id for node in group.nodes]

    if len(values) == 1:
        return ResolvedFilter(
            definition_id=group.definition_id,
            settings=values[0],
            scope_source_ids=list(group.scope_source_ids),
            node_ids=node_ids,
        )

    logger.debug(
        "Merging %d '%s' filters (scope %s)",
        len(values),
        group.definition_id,
        scope_key(group.scope_source_ids),
    )
    return ResolvedFilter(
        definition_id=group.definition_id,
        settings=kind.merge(values, context),
        scope_source_ids=list(group.scope_source_ids),
        node_ids=node_ids,
        is_merged=True,
    )
