"""Resolution of a quiz graph into one concrete quiz configuration.

This module sequences routing, reachability pruning, selection, filter
merging and source list resolution. All randomness comes from one seeded
stream consumed in a fixed order, so a (graph, seed) pair always yields the
same configuration.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from quizgraph.filters.base import ResolutionContext
from quizgraph.filters.registry import FilterRegistry
from quizgraph.graph import (
    BASIC_SETTINGS,
    FILTER,
    NUMBER_OF_SONGS,
    ROUTER,
    SOURCE_LIST,
    Node,
    QuizGraph,
    connected_to_terminal,
    filter_by_route,
    reachable_from_route,
)
from quizgraph.lobby import DEFAULT_SONG_COUNT, resolve_basic_settings, resolve_number_of_songs
from quizgraph.merging import ResolvedFilter, group_filters, resolve_group
from quizgraph.rng import fresh_seed, make_rng, pick
from quizgraph.routing import Route, select_route
from quizgraph.selection import select_by_definition, select_nodes
from quizgraph.sources import ResolvedSourceList, resolve_source_list

logger = logging.getLogger(__name__)


@dataclass
class ResolvedConfiguration:
    """Concrete quiz configuration produced by one resolution pass.

    Attributes:
        seed: Seed of the pass; replaying it reproduces this configuration.
        route: Route taken at the router, if any.
        router_id: Id of the router node, if any.
        basic_settings: Resolved lobby settings, if a node survived.
        basic_settings_node: Id of the node the lobby settings came from.
        number_of_songs: Resolved song count, if a node survived.
        inherited_song_count: Song count percentages were converted against.
        filters: One entry per (filter kind, source scope).
        source_lists: Resolved song sources.
    """

    seed: str
    route: Route | None = None
    router_id: str | None = None
    basic_settings: dict[str, Any] | None = None
    basic_settings_node: str | None = None
    number_of_songs: int | None = None
    inherited_song_count: int = DEFAULT_SONG_COUNT
    filters: list[ResolvedFilter] = field(default_factory=list)
    source_lists: list[ResolvedSourceList] = field(default_factory=list)

    def filter(self, definition_id: str) -> list[ResolvedFilter]:
        """All resolved entries of one filter kind."""
        return [f for f in self.filters if f.definition_id == definition_id]


class _Pass:
    """State of one resolution pass."""

    def __init__(self, graph: QuizGraph, rng: random.Random) -> None:
        self.graph = graph
        self.rng = rng
        self.reachable: set[str] = set()

    def candidates(self, nodes: Sequence[Node], by_route: bool = True) -> list[Node]:
        """Apply route reachability (optionally) and terminal connectivity."""
        kept = filter_by_route(nodes, self.reachable) if by_route else list(nodes)
        if by_route and len(kept) < len(nodes):
            dropped = [n.label for n in nodes if n not in kept]
            logger.debug("Off-route nodes excluded: %s", ", ".join(dropped))
        connected = connected_to_terminal(kept, self.graph.nodes, self.graph.edges)
        if len(connected) < len(kept):
            dropped = [n.label for n in kept if n not in connected]
            logger.debug("Disconnected nodes excluded: %s", ", ".join(dropped))
        return connected

    def single(self, type_tag: str) -> Node | None:
        """The one effective node of a never-merged type."""
        survivors = select_nodes(self.candidates(self.graph.of_type(type_tag)), self.graph, self.rng)
        if not survivors:
            return None
        if len(survivors) == 1:
            return survivors[0]
        chosen = pick(survivors, self.rng)
        logger.debug("Picked %s among %d %s nodes", chosen.label, len(survivors), type_tag)
        return chosen


def simulate_quiz_configuration(
    graph: QuizGraph,
    registry: FilterRegistry,
    seed: str | None = None,
    *,
    fallback_song_count: int = DEFAULT_SONG_COUNT,
    today: date | None = None,
) -> ResolvedConfiguration:
    """Resolve a quiz graph into one concrete configuration.

    Steps, in the order randomness is consumed:

    1. Router: pick a route and compute the nodes reachable through it.
    2. Basic settings, then number of songs: prune by route and terminal
       connectivity, apply selection, pick one survivor, resolve it.
    3. Filters: prune, select per definition id, group by (definition id,
       source scope), resolve and merge each group. Filter kinds authored
       in the graph without any survivor are emitted with default settings.
    4. Source lists: prune by connectivity only and resolve percentages.

    Args:
        graph: Authored nodes and edges.
        registry: Filter kinds keyed by definition id.
        seed: Seed to replay; a fresh one is generated when omitted.
        fallback_song_count: Song count used when no number of songs node
            survives.
        today: Date for the open end of vintage ranges (defaults to today).

    Returns:
        The resolved configuration, carrying the seed used.

    Raises:
        ResolutionError: If a filter's settings are incomplete, a filter kind
            is unknown, or selection modifiers are ambiguous.
    """
    if seed is None:
        seed = fresh_seed()
    state = _Pass(graph, make_rng(seed))
    result = ResolvedConfiguration(seed=seed)
    logger.debug("Resolving %d nodes with seed %s", len(graph.nodes), seed)

    routers = graph.of_type(ROUTER)
    if routers:
        router = routers[0]
        if len(routers) > 1:
            logger.warning("Graph has %d routers; only %s is used", len(routers), router.id)
        result.router_id = router.id
        result.route = select_route(router, state.rng)
        if result.route is not None:
            state.reachable = reachable_from_route(graph.edges, router.id, result.route.id)
            logger.debug(
                "Route %s selected, %d nodes reachable",
                result.route.name or result.route.id,
                len(state.reachable),
            )
        else:
            logger.debug("Router %s has no enabled route", router.id)

    basic = state.single(BASIC_SETTINGS)
    if basic is not None:
        result.basic_settings = resolve_basic_settings(basic.settings, state.rng)
        result.basic_settings_node = basic.id

    songs = state.single(NUMBER_OF_SONGS)
    if songs is not None:
        result.number_of_songs = resolve_number_of_songs(songs.settings, state.rng)
    result.inherited_song_count = result.number_of_songs or fallback_song_count

    context = ResolutionContext(
        inherited_song_count=result.inherited_song_count,
        today=today or date.today(),
    )

    authored_filters = graph.of_type(FILTER)
    selected = select_by_definition(state.candidates(authored_filters), graph, state.rng)
    for group in group_filters(selected, graph):
        result.filters.append(resolve_group(group, registry, context, state.rng))

    emitted = {f.definition_id for f in result.filters}
    for definition_id in dict.fromkeys(n.definition_id for n in authored_filters):
        if definition_id in emitted:
            continue
        kind = registry.get(definition_id)
        logger.debug("No '%s' filter survived, using defaults", definition_id)
        result.filters.append(
            ResolvedFilter(
                definition_id=definition_id,
                settings=kind.default_settings(context),
                is_default=True,
            )
        )

    sources = state.candidates(graph.of_type(SOURCE_LIST), by_route=False)
    result.source_lists = [resolve_source_list(node, state.rng) for node in sources]

    logger.debug(
        "Resolved %d filters and %d sources (%s songs)",
        len(result.filters),
        len(result.source_lists),
        result.inherited_song_count,
    )
    return result
