"""Quiz graph validation.

This module checks an authored graph before it is resolved, distinguishing
between errors (resolution would fail or misbehave) and warnings
(informational).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from quizgraph.allocation import check_allocation
from quizgraph.errors import UnknownFilterError
from quizgraph.filters.base import ResolutionContext
from quizgraph.filters.registry import FilterRegistry
from quizgraph.graph import (
    BASIC_SETTINGS,
    FILTER,
    NUMBER_OF_SONGS,
    ROUTER,
    SELECTION_MODIFIER,
    SOURCE_LIST,
    SOURCE_SELECTOR,
    Node,
    QuizGraph,
)
from quizgraph.lobby import MAX_SONGS, MIN_SONGS, basic_settings_display, number_of_songs_display
from quizgraph.routing import chance_bounds, router_routes
from quizgraph.selection import SelectionModifierSpec, modifier_candidates
from quizgraph.sources import MULTI_USER_SOURCES, user_share_entries

MIN_GUESS_TIME = 1
MAX_GUESS_TIME = 60


@dataclass
class ValidationResult:
    """Result of graph validation.

    Attributes:
        is_valid: True if the graph passes all required checks (no errors).
        errors: List of blocking issues.
        warnings: List of informational issues that don't block resolution.
    """

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def validate_graph(
    graph: QuizGraph,
    registry: FilterRegistry,
    context: ResolutionContext | None = None,
) -> ValidationResult:
    """Validate a quiz graph.

    Checks:
    - Router routes (enabled routes, weight total, dangling routes)
    - Execution chances
    - Basic settings and number of songs bounds
    - Selection modifiers
    - Per-filter settings (via each filter kind's validate hook)
    - Source list allocations and source selectors
    - Cycles

    Args:
        graph: The graph to validate.
        registry: Filter kinds used to validate filter nodes.
        context: Resolution context for filter checks (defaults apply when
            omitted).

    Returns:
        ValidationResult with errors and warnings.
    """
    errors: list[str] = []
    warnings: list[str] = []
    context = context or ResolutionContext()

    _check_routers(graph, errors, warnings)
    _check_execution_chances(graph, errors)
    _check_lobby(graph, errors)
    _check_modifiers(graph, errors)
    _check_filters(graph, registry, context, errors, warnings)
    _check_sources(graph, errors, warnings)

    cycle = graph.find_cycle()
    if cycle:
        warnings.append(f"Graph contains a cycle: {' -> '.join(cycle)}")

    return ValidationResult(
        is_valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )


def _check_routers(graph: QuizGraph, errors: list[str], warnings: list[str]) -> None:
    routers = graph.of_type(ROUTER)
    if len(routers) > 1:
        warnings.append(
            f"{len(routers)} routers found; only {routers[0].id} is used"
        )
    for router in routers:
        enabled = [r for r in router_routes(router) if r.enabled]
        if not enabled:
            errors.append(f"Router {router.id}: no enabled routes")
            continue
        total = sum(r.percentage for r in enabled)
        if abs(total - 100) > 1e-9:
            warnings.append(
                f"Router {router.id}: enabled route weights sum to {total:g}, not 100"
            )
        handles = {e.source_handle for e in graph.outgoing(router.id)}
        for route in enabled:
            if route.id not in handles:
                warnings.append(
                    f"Router {router.id}: route '{route.name or route.id}' has no outgoing edge"
                )


def _check_execution_chances(graph: QuizGraph, errors: list[str]) -> None:
    for node in graph.nodes:
        try:
            bounds = chance_bounds(node.execution_chance)
        except (TypeError, ValueError):
            errors.append(f"Node {node.id}: invalid execution chance {node.execution_chance!r}")
            continue
        if bounds is None:
            continue
        lo, hi = bounds
        if lo < 0 or hi > 100:
            errors.append(f"Node {node.id}: execution chance must be within 0-100")
        if lo > hi:
            errors.append(f"Node {node.id}: execution chance min {lo:g} > max {hi:g}")


def _check_range(
    label: str, display: Mapping[str, Any], lo: float, hi: float, errors: list[str]
) -> None:
    if display["kind"] == "range":
        low, high = display["min"], display["max"]
        if low > high:
            errors.append(f"{label}: min {low:g} > max {high:g}")
    else:
        low = high = display["value"]
    if low < lo or high > hi:
        errors.append(f"{label} must be within {lo:g}-{hi:g}")


def _check_lobby(graph: QuizGraph, errors: list[str]) -> None:
    for node in graph.of_type(BASIC_SETTINGS):
        display = basic_settings_display(node.settings)
        _check_range(
            f"Basic settings {node.id}: guess time",
            display["guessTime"],
            MIN_GUESS_TIME,
            MAX_GUESS_TIME,
            errors,
        )
        _check_range(
            f"Basic settings {node.id}: sample point",
            display["samplePoint"],
            0,
            100,
            errors,
        )
    for node in graph.of_type(NUMBER_OF_SONGS):
        _check_range(
            f"Number of songs {node.id}",
            number_of_songs_display(node.settings),
            MIN_SONGS,
            MAX_SONGS,
            errors,
        )


def _selection_groups(graph: QuizGraph) -> list[tuple[str, list[Node]]]:
    """Node groups the engine runs selection on, labelled for messages."""
    groups: list[tuple[str, list[Node]]] = []
    for type_tag in (BASIC_SETTINGS, NUMBER_OF_SONGS):
        nodes = graph.of_type(type_tag)
        if nodes:
            groups.append((type_tag, nodes))
    by_definition: dict[str, list[Node]] = {}
    for node in graph.of_type(FILTER):
        by_definition.setdefault(node.definition_id, []).append(node)
    groups.extend(by_definition.items())
    return groups


def _check_modifiers(graph: QuizGraph, errors: list[str]) -> None:
    for modifier in graph.of_type(SELECTION_MODIFIER):
        if modifier.settings.get("maxSelection") is None:
            continue
        spec = SelectionModifierSpec.from_node(modifier)
        if spec.min > spec.max:
            errors.append(
                f"Selection modifier {modifier.id}: min {spec.min} > max {spec.max}"
            )

    for label, group in _selection_groups(graph):
        if not any(n.selection_modified for n in group):
            continue
        candidates = modifier_candidates(group, graph)
        if len(candidates) > 1:
            ids = [m.id for m in candidates]
            names = f"{', '.join(ids[:-1])} and {ids[-1]}"
            quantifier = "both" if len(ids) == 2 else "all"
            errors.append(f"Selection modifiers {names} {quantifier} target '{label}'")
            continue
        if not candidates:
            continue
        spec = SelectionModifierSpec.from_node(candidates[0])
        available = len(group)
        if spec.max > available:
            errors.append(
                f"Selection modifier {spec.node_id}: max {spec.max} exceeds "
                f"{available} '{label}' node(s)"
            )
        if spec.min > available:
            errors.append(
                f"Selection modifier {spec.node_id}: min {spec.min} exceeds "
                f"{available} '{label}' node(s)"
            )


def _check_filters(
    graph: QuizGraph,
    registry: FilterRegistry,
    context: ResolutionContext,
    errors: list[str],
    warnings: list[str],
) -> None:
    for node in graph.of_type(FILTER):
        try:
            kind = registry.get(node.definition_id)
        except UnknownFilterError:
            errors.append(f"Filter {node.id}: unknown filter '{node.definition_id}'")
            continue
        issues = kind.validate(node.settings, context)
        errors.extend(f"Filter {node.id} ({kind.title}): {e}" for e in issues.errors)
        warnings.extend(f"Filter {node.id} ({kind.title}): {w}" for w in issues.warnings)


def _check_sources(graph: QuizGraph, errors: list[str], warnings: list[str]) -> None:
    for node in graph.of_type(SOURCE_LIST):
        if node.definition_id not in MULTI_USER_SOURCES:
            continue
        shares = user_share_entries(node.settings.get("userEntries") or [])
        problem = check_allocation(shares, 100)
        if problem:
            errors.append(f"Source {node.id}: user song percentages {problem}")

    source_ids = {n.id for n in graph.of_type(SOURCE_LIST)}
    for selector in graph.of_type(SOURCE_SELECTOR):
        target = selector.settings.get("targetSourceId")
        if not target:
            warnings.append(f"Source selector {selector.id}: no target source")
        elif str(target) not in source_ids:
            warnings.append(
                f"Source selector {selector.id}: target '{target}' is not a source list"
            )
