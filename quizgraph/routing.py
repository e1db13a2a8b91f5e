"""Weighted route selection and per-node execution rolls."""

from __future__ import annotations

import logging
import random
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from quizgraph.graph import Node
from quizgraph.rng import random_int

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Route:
    """One weighted branch of a router node.

    Percentages are relative weights among enabled routes and do not need
    to sum to 100.
    """

    id: str
    name: str = ""
    percentage: float = 0
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Route:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            percentage=float(data.get("percentage", 0) or 0),
            enabled=bool(data.get("enabled", True)),
        )


def router_routes(router: Node) -> list[Route]:
    """Routes authored on a router node, in authoring order."""
    return [Route.from_dict(r) for r in router.settings.get("routes", []) or []]


def select_route(router: Node | None, rng: random.Random) -> Route | None:
    """Pick one route of a router by weight.

    Only enabled routes with a positive percentage take part. A single draw
    ``r = rng() * total`` walks the cumulative weights and returns the first
    route whose cumulative sum reaches ``r``; the last route absorbs
    floating-point leftovers.

    Returns:
        The selected route, or None when the router has no usable route.
    """
    if router is None:
        return None
    routes = [r for r in router_routes(router) if r.enabled and r.percentage > 0]
    if not routes:
        return None
    total = sum(r.percentage for r in routes)
    target = rng.random() * total
    cumulative = 0.0
    for route in routes:
        cumulative += route.percentage
        if cumulative >= target:
            return route
    return routes[-1]


def is_range_chance(spec: Any) -> bool:
    """True when an execution chance spec is a {min, max} range."""
    if not isinstance(spec, Mapping):
        return False
    return spec.get("kind") == "range" or "min" in spec or "max" in spec


def chance_bounds(spec: Any) -> tuple[float, float] | None:
    """(min, max) of an execution chance spec; scalars give (c, c)."""
    if spec is None:
        return None
    if is_range_chance(spec):
        lo = spec.get("min")
        hi = spec.get("max")
        return float(0 if lo is None else lo), float(100 if hi is None else hi)
    if isinstance(spec, Mapping):
        value = spec.get("value", 100)
        return float(value), float(value)
    return float(spec), float(spec)


def passes_execution(spec: Any, rng: random.Random, label: str = "") -> bool:
    """Roll a node's execution chance.

    ``None`` always passes without consuming randomness. A range spec first
    rolls a concrete chance with ``random_int(min, max)``. The node passes
    when ``rng() * 100 <= chance``. 100 always passes and 0 only
    passes on an exact zero draw.
    """
    if spec is None:
        return True
    if is_range_chance(spec):
        lo, hi = chance_bounds(spec)  # type: ignore[misc]
        chance: float = random_int(rng, lo, hi)
    else:
        chance = chance_bounds(spec)[0]  # type: ignore[index]
    roll = rng.random() * 100
    passed = roll <= chance
    logger.debug(
        "Execution roll %s: %.2f vs %s%% -> %s",
        label or "<node>",
        roll,
        chance,
        "passed" if passed else "failed",
    )
    return passed


def node_passes(node: Node, rng: random.Random) -> bool:
    """Roll the execution chance of one node."""
    return passes_execution(node.execution_chance, rng, node.label)
