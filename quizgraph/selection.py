"""Cardinality constraints on groups of same-type nodes.

A selection modifier node caps how many nodes of one type survive the
execution rolls (``max``) and guarantees at least one survivor when every
roll fails.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass

from quizgraph.errors import AmbiguousModifierError
from quizgraph.graph import SELECTION_MODIFIER, Node, QuizGraph
from quizgraph.rng import pick, shuffled
from quizgraph.routing import node_passes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionModifierSpec:
    """Min/max number of nodes kept for one node type."""

    node_id: str
    min: int = 1
    max: int = 1

    @classmethod
    def from_node(cls, node: Node) -> SelectionModifierSpec:
        settings = node.settings
        minimum = settings.get("minSelection") or 1
        maximum = settings.get("maxSelection")
        return cls(
            node_id=node.id,
            min=int(minimum),
            max=int(maximum) if maximum is not None else int(minimum),
        )


def _is_modifier(node: Node) -> bool:
    return (
        node.type_tag == SELECTION_MODIFIER
        and node.settings.get("maxSelection") is not None
    )


def modifier_candidates(group: Sequence[Node], graph: QuizGraph) -> list[Node]:
    """Selection modifiers that could apply to a group of nodes.

    Modifiers with an edge into a member of the group are preferred. When
    none is linked, the modifiers not linked to any node are candidates.
    """
    modifiers = [n for n in graph.nodes if _is_modifier(n)]
    member_ids = {n.id for n in group}
    linked = [
        m
        for m in modifiers
        if any(e.target in member_ids for e in graph.outgoing(m.id))
    ]
    if linked:
        return linked
    return [m for m in modifiers if not graph.outgoing(m.id)]


def find_modifier(group: Sequence[Node], graph: QuizGraph) -> SelectionModifierSpec | None:
    """Locate the modifier spec for a group.

    Raises:
        AmbiguousModifierError: If two distinct modifiers could apply.
    """
    candidates = modifier_candidates(group, graph)
    if not candidates:
        return None
    if len(candidates) > 1:
        ids = ", ".join(m.id for m in candidates)
        type_name = group[0].definition_id or group[0].type_tag
        raise AmbiguousModifierError(
            f"Multiple selection modifiers target '{type_name}': {ids}"
        )
    return SelectionModifierSpec.from_node(candidates[0])


def select_nodes(
    group: Sequence[Node], graph: QuizGraph, rng: random.Random
) -> list[Node]:
    """Apply execution rolls and the group's selection modifier.

    Without any node flagged ``selection_modified`` (or without a modifier
    to apply) each node is rolled and the passers are kept. Otherwise:

    - no passer: one node of the original group is picked uniformly;
    - at most ``max`` passers: all are kept;
    - more than ``max`` passers: exactly ``max`` are sampled uniformly.

    Args:
        group: Nodes of one type, in authoring order.
        graph: The full graph (used to locate modifiers).
        rng: Random stream of the current pass.

    Returns:
        The selected nodes.
    """
    if not group:
        return []

    modifier = None
    if any(n.selection_modified for n in group):
        modifier = find_modifier(group, graph)

    eligible = [n for n in group if node_passes(n, rng)]
    if modifier is None:
        return eligible

    if not eligible:
        forced = pick(list(group), rng)
        logger.debug("No node passed its roll, forcing %s", forced.label)
        return [forced]
    if len(eligible) <= modifier.max:
        return eligible

    sampled = set(shuffled(eligible, rng)[: modifier.max])
    chosen = [n for n in eligible if n in sampled]
    logger.debug(
        "Selection modifier %s kept %d of %d nodes",
        modifier.node_id,
        len(chosen),
        len(eligible),
    )
    return chosen


def select_by_definition(
    nodes: Sequence[Node], graph: QuizGraph, rng: random.Random
) -> list[Node]:
    """Run `select_nodes` separately for each definition id, in first-seen order."""
    groups: dict[str, list[Node]] = {}
    for node in nodes:
        groups.setdefault(node.definition_id, []).append(node)
    selected: list[Node] = []
    for group in groups.values():
        selected.extend(select_nodes(group, graph, rng))
    return selected
