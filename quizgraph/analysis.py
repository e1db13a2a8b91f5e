"""Route distribution analysis for quiz graphs.

This module replays the router alone over many seeds to check that the
observed route shares match the authored weights.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from quizgraph.graph import ROUTER, QuizGraph
from quizgraph.rng import make_rng
from quizgraph.routing import router_routes, select_route

NO_ROUTE = "(none)"


@dataclass
class RouteStats:
    """Route picks observed over a series of seeds.

    Attributes:
        counts: Picks per route id (NO_ROUTE when the router had no usable
            route), in authoring order.
        names: Display name per route id.
        expected: Authored share per route id, in percent of enabled weight.
        runs: Number of seeds replayed.
    """

    counts: dict[str, int] = field(default_factory=dict)
    names: dict[str, str] = field(default_factory=dict)
    expected: dict[str, float] = field(default_factory=dict)
    runs: int = 0

    def share(self, route_id: str) -> float:
        """Observed share of a route, in percent (0.0 without runs)."""
        if self.runs == 0:
            return 0.0
        return 100.0 * self.counts.get(route_id, 0) / self.runs


def route_distribution(graph: QuizGraph, seeds: Iterable[str]) -> RouteStats:
    """Count the route picked by the graph's router for each seed.

    Only the router draw is replayed, which is the first draw of a full
    resolution pass, so the counts match what full passes would pick.

    Args:
        graph: The graph to analyze
        seeds: Seeds to replay

    Returns:
        RouteStats with one count per route
    """
    stats = RouteStats()
    routers = graph.of_type(ROUTER)
    router = routers[0] if routers else None

    if router is not None:
        routes = router_routes(router)
        enabled = [r for r in routes if r.enabled and r.percentage > 0]
        total = sum(r.percentage for r in enabled)
        for route in routes:
            stats.counts[route.id] = 0
            stats.names[route.id] = route.name or route.id
            stats.expected[route.id] = (
                100.0 * route.percentage / total if route in enabled else 0.0
            )

    for seed in seeds:
        route = select_route(router, make_rng(seed))
        key = route.id if route is not None else NO_ROUTE
        stats.counts[key] = stats.counts.get(key, 0) + 1
        stats.runs += 1
    return stats


def report_distribution(stats: RouteStats) -> str:
    """Generate a human-readable route distribution report.

    Args:
        stats: Result of route_distribution

    Returns:
        Multi-line string report
    """
    lines: list[str] = []

    lines.append("=" * 50)
    lines.append("Route Distribution Report")
    lines.append("=" * 50)
    lines.append("")
    lines.append(f"Runs: {stats.runs}")
    lines.append("")

    if not stats.names:
        lines.append("No router in graph")
        return "\n".join(lines)

    lines.append("Routes:")
    for route_id, count in stats.counts.items():
        name = stats.names.get(route_id, route_id)
        expected = stats.expected.get(route_id)
        expected_str = f" (expected {expected:.1f}%)" if expected is not None else ""
        lines.append(
            f"  {name}: {count} ({stats.share(route_id):.1f}%){expected_str}"
        )

    return "\n".join(lines)
