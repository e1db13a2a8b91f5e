"""Quiz graph data structures and reachability analysis.

A quiz graph is authored in the editor as typed nodes joined by edges. The
engine only reads it: nodes and edges are never modified during resolution.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

# Node type tags
ROUTER = "router"
BASIC_SETTINGS = "basicSettings"
NUMBER_OF_SONGS = "numberOfSongs"
FILTER = "filter"
SOURCE_LIST = "sourceList"
SELECTION_MODIFIER = "selectionModifier"
SOURCE_SELECTOR = "sourceSelector"

NODE_TYPES = frozenset(
    {
        ROUTER,
        BASIC_SETTINGS,
        NUMBER_OF_SONGS,
        FILTER,
        SOURCE_LIST,
        SELECTION_MODIFIER,
        SOURCE_SELECTOR,
    }
)

# Source list definition ids
SONG_LIST = "song-list"
BATCH_USER_LIST = "batch-user-list"
LIVE_NODE = "live-node"

SOURCE_SELECTOR_HANDLE = "source-selector"
ALL_SOURCES = "all-sources"


@dataclass(frozen=True, eq=False)
class Node:
    """One configuration block of the quiz graph.

    Nodes are read-only input. They are identified by their `id` field, and
    two nodes with the same id are considered equal regardless of other
    fields.
    """

    id: str
    type_tag: str
    definition_id: str = ""
    settings: dict[str, Any] = field(default_factory=dict)
    execution_chance: Any = None  # None, a number, or {"min", "max"}
    selection_modified: bool = False
    title: str = ""

    def __hash__(self) -> int:
        """Hash by id only."""
        return hash(self.id)

    def __eq__(self, other: object) -> bool:
        """Equality by id only."""
        if not isinstance(other, Node):
            return NotImplemented
        return self.id == other.id

    @property
    def label(self) -> str:
        """Human-readable name for logs and reports."""
        return self.title or self.definition_id or self.id


@dataclass(frozen=True)
class Edge:
    """A directed edge between two nodes.

    `source_handle` names the router route an edge leaves from. A
    `target_handle` of "source-selector" marks a scoping link into a filter.
    """

    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None


@dataclass
class QuizGraph:
    """The authored quiz graph: nodes in authoring order plus edges."""

    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    def get(self, node_id: str) -> Node | None:
        """Look up a node by id."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def of_type(self, type_tag: str) -> list[Node]:
        """All nodes with the given type tag, in authoring order."""
        return [n for n in self.nodes if n.type_tag == type_tag]

    def outgoing(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges if e.source == node_id]

    def incoming(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges if e.target == node_id]

    def find_cycle(self) -> list[str] | None:
        """Return one cycle as a list of node ids, or None if acyclic."""
        adjacency = forward_adjacency(self.edges)
        white, grey, black = 0, 1, 2
        color: dict[str, int] = {}
        parent: dict[str, str] = {}

        for root in [n.id for n in self.nodes]:
            if color.get(root, white) != white:
                continue
            stack: list[tuple[str, Iterable[str]]] = [
                (root, iter(adjacency.get(root, ())))
            ]
            color[root] = grey
            while stack:
                node_id, children = stack[-1]
                advanced = False
                for child in children:
                    state = color.get(child, white)
                    if state == white:
                        color[child] = grey
                        parent[child] = node_id
                        stack.append((child, iter(adjacency.get(child, ()))))
                        advanced = True
                        break
                    if state == grey:
                        cycle = [child]
                        current = node_id
                        while current != child:
                            cycle.append(current)
                            current = parent[current]
                        cycle.append(child)
                        return list(reversed(cycle))
                if not advanced:
                    color[node_id] = black
                    stack.pop()
        return None


def forward_adjacency(edges: Iterable[Edge]) -> dict[str, list[str]]:
    """Map each source id to its distinct targets, in edge order."""
    adjacency: dict[str, list[str]] = {}
    for edge in edges:
        targets = adjacency.setdefault(edge.source, [])
        if edge.target not in targets:
            targets.append(edge.target)
    return adjacency


def undirected_adjacency(edges: Iterable[Edge]) -> dict[str, list[str]]:
    """Map each node id to its neighbours ignoring edge direction."""
    adjacency: dict[str, list[str]] = {}
    for edge in edges:
        for a, b in ((edge.source, edge.target), (edge.target, edge.source)):
            neighbours = adjacency.setdefault(a, [])
            if b not in neighbours:
                neighbours.append(b)
    return adjacency


def reachable_from_route(
    edges: Sequence[Edge], router_id: str, route_id: str
) -> set[str]:
    """Find every node reachable through one route of a router.

    The BFS starts at the targets of edges leaving `router_id` on handle
    `route_id` and then follows all forward edges. The router itself is part
    of the result. An empty set means no route was taken and callers must
    treat it as "no filtering".

    Args:
        edges: All graph edges.
        router_id: Id of the router node.
        route_id: Id of the selected route (the edges' source handle).

    Returns:
        Set of reachable node ids, router included.
    """
    adjacency = forward_adjacency(edges)
    seen = {router_id}
    queue = deque(
        e.target for e in edges if e.source == router_id and e.source_handle == route_id
    )
    while queue:
        node_id = queue.popleft()
        if node_id in seen:
            continue
        seen.add(node_id)
        for neighbour in adjacency.get(node_id, ()):
            if neighbour not in seen:
                queue.append(neighbour)
    return seen


def filter_by_route(nodes: Sequence[Node], reachable: set[str]) -> list[Node]:
    """Keep the nodes in `reachable`; an empty set keeps everything."""
    if not reachable:
        return list(nodes)
    return [n for n in nodes if n.id in reachable]


def _can_reach_terminal(adjacency: dict[str, list[str]], start: str, terminals: set[str]) -> bool:
    visited: set[str] = set()
    queue = deque([start])
    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        if current in terminals:
            return True
        queue.extend(n for n in adjacency.get(current, ()) if n not in visited)
    return False


def connected_to_terminal(
    candidates: Sequence[Node],
    all_nodes: Sequence[Node],
    edges: Sequence[Edge],
    terminal_type: str = NUMBER_OF_SONGS,
) -> list[Node]:
    """Drop candidates that are not attached to any terminal node.

    A candidate is kept when a forward BFS from it reaches a node of
    `terminal_type`, or when a BFS ignoring edge direction reaches a node
    that can. Fully isolated nodes are dropped. When the graph contains no
    terminal node at all, every candidate is kept.

    Args:
        candidates: Nodes to filter, order preserved.
        all_nodes: Every node of the graph (terminals are looked up here).
        edges: All graph edges.
        terminal_type: Type tag of terminal nodes.

    Returns:
        The candidates that survive.
    """
    terminals = {n.id for n in all_nodes if n.type_tag == terminal_type}
    if not terminals:
        return list(candidates)

    forward = forward_adjacency(edges)
    undirected = undirected_adjacency(edges)
    reaching: dict[str, bool] = {}

    def reaches(node_id: str) -> bool:
        if node_id not in reaching:
            reaching[node_id] = _can_reach_terminal(forward, node_id, terminals)
        return reaching[node_id]

    kept: list[Node] = []
    for node in candidates:
        if reaches(node.id):
            kept.append(node)
            continue
        visited: set[str] = set()
        queue = deque([node.id])
        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)
            if reaches(current):
                kept.append(node)
                break
            queue.extend(n for n in undirected.get(current, ()) if n not in visited)
    return kept


def source_scope_ids(graph: QuizGraph, filter_id: str) -> list[str]:
    """Sorted source ids a filter is restricted to by source selectors.

    Source-selector nodes linked into the filter on the "source-selector"
    handle contribute their `targetSourceId` setting.
    """
    ids: set[str] = set()
    for edge in graph.incoming(filter_id):
        if edge.target_handle != SOURCE_SELECTOR_HANDLE:
            continue
        selector = graph.get(edge.source)
        if selector is None:
            continue
        target = selector.settings.get("targetSourceId")
        if target:
            ids.add(str(target))
    return sorted(ids)


def scope_key(source_ids: Sequence[str]) -> str:
    """Group key for a filter's source scope ("all-sources" when unscoped)."""
    return "+".join(source_ids) if source_ids else ALL_SOURCES
