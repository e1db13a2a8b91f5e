"""Graph loading and configuration export.

This module reads authored graphs from JSON or YAML files and exports a
resolved configuration to:
- JSON for the quiz client and tooling
- A human-readable summary
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from quizgraph.engine import ResolvedConfiguration
from quizgraph.filters.registry import FilterRegistry
from quizgraph.graph import NODE_TYPES, Edge, Node, QuizGraph, scope_key

YAML_SUFFIXES = (".yaml", ".yml")


class GraphFormatError(ValueError):
    """Raised when a graph file does not describe nodes and edges."""

    pass


# =============================================================================
# Loading
# =============================================================================


def _pick(raw: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in raw:
            return raw[key]
    return default


def node_from_dict(raw: Mapping[str, Any]) -> Node:
    """Build a Node from a serialized node, accepting editor key names.

    Raises:
        GraphFormatError: If the id or type tag is missing or unknown.
    """
    if not isinstance(raw, Mapping) or "id" not in raw:
        raise GraphFormatError(f"Node without id: {raw!r}")
    type_tag = _pick(raw, "typeTag", "type_tag", "type")
    if type_tag not in NODE_TYPES:
        raise GraphFormatError(f"Node {raw['id']}: unknown type {type_tag!r}")
    settings = _pick(raw, "settings", "data", default={}) or {}
    if not isinstance(settings, Mapping):
        raise GraphFormatError(f"Node {raw['id']}: settings must be a mapping")
    return Node(
        id=str(raw["id"]),
        type_tag=type_tag,
        definition_id=str(_pick(raw, "definitionId", "definition_id", default="") or ""),
        settings=dict(settings),
        execution_chance=_pick(raw, "executionChance", "execution_chance"),
        selection_modified=bool(_pick(raw, "selectionModified", "selection_modified", default=False)),
        title=str(raw.get("title") or ""),
    )


def edge_from_dict(raw: Mapping[str, Any]) -> Edge:
    """Build an Edge from a serialized edge, accepting editor key names."""
    if not isinstance(raw, Mapping) or "source" not in raw or "target" not in raw:
        raise GraphFormatError(f"Edge needs source and target: {raw!r}")
    return Edge(
        source=str(raw["source"]),
        target=str(raw["target"]),
        source_handle=_pick(raw, "sourceHandle", "source_handle"),
        target_handle=_pick(raw, "targetHandle", "target_handle"),
    )


def graph_from_dict(data: Mapping[str, Any]) -> QuizGraph:
    """Build a QuizGraph from ``{"nodes": [...], "edges": [...]}``."""
    if not isinstance(data, Mapping) or not isinstance(data.get("nodes"), list):
        raise GraphFormatError("Graph must be a mapping with a 'nodes' list")
    edges = data.get("edges") or []
    if not isinstance(edges, list):
        raise GraphFormatError("'edges' must be a list")
    nodes = [node_from_dict(n) for n in data["nodes"]]
    ids = [n.id for n in nodes]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise GraphFormatError(f"Duplicate node ids: {', '.join(duplicates)}")
    return QuizGraph(nodes=nodes, edges=[edge_from_dict(e) for e in edges])


def load_graph(path: Path) -> QuizGraph:
    """Load a quiz graph from a JSON or YAML file.

    Args:
        path: Path to the graph file (.json, .yaml or .yml).

    Returns:
        The parsed graph.

    Raises:
        FileNotFoundError: If the file does not exist.
        GraphFormatError: If the content is not a valid graph.
    """
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        try:
            if path.suffix.lower() in YAML_SUFFIXES:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise GraphFormatError(f"Cannot parse {path}: {e}") from e
    return graph_from_dict(data)


# =============================================================================
# Export
# =============================================================================


def configuration_to_dict(config: ResolvedConfiguration) -> dict[str, Any]:
    """Convert a resolved configuration to a JSON-serializable dict."""
    route = None
    if config.route is not None:
        route = {
            "id": config.route.id,
            "name": config.route.name,
            "percentage": config.route.percentage,
        }
    return {
        "seed": config.seed,
        "route": route,
        "basicSettings": config.basic_settings,
        "numberOfSongs": config.number_of_songs,
        "inheritedSongCount": config.inherited_song_count,
        "filters": [
            {
                "definitionId": f.definition_id,
                "settings": f.settings,
                "scopeSourceIds": f.scope_source_ids,
                "nodeIds": f.node_ids,
                "isMerged": f.is_merged,
                "isDefault": f.is_default,
            }
            for f in config.filters
        ],
        "sourceLists": [
            {
                "nodeId": s.node_id,
                "nodeType": s.node_type,
                "mode": s.mode,
                "useEntirePool": s.use_entire_pool,
                "songPercentage": s.song_percentage,
                "songSelectionMode": s.song_selection_mode,
                "userEntries": s.user_entries,
                "userListImport": s.user_list_import,
                "selectedListId": s.selected_list_id,
                "selectedListName": s.selected_list_name,
            }
            for s in config.source_lists
        ],
    }


def export_json(config: ResolvedConfiguration, output_path: Path) -> None:
    """Export a resolved configuration to a JSON file.

    Args:
        config: The configuration to export
        output_path: Path to write the JSON file
    """
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(configuration_to_dict(config), f, indent=2)


def _compact(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(", ", ": "))


def export_summary(
    config: ResolvedConfiguration,
    output_path: Path,
    registry: FilterRegistry | None = None,
) -> None:
    """Export a human-readable summary of a resolved configuration.

    Args:
        config: The configuration to summarize
        output_path: Path to write the summary
        registry: Used to print filter titles instead of definition ids
    """
    lines: list[str] = []

    lines.append("=" * 60)
    lines.append(f"QUIZ CONFIGURATION (seed: {config.seed})")
    lines.append(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    lines.append("=" * 60)
    if config.route is not None:
        lines.append(f"Route: {config.route.name or config.route.id} ({config.route.percentage:g}%)")
    song_note = "" if config.number_of_songs is not None else " (fallback)"
    lines.append(f"Songs: {config.inherited_song_count}{song_note}")
    lines.append("")

    lines.append("BASIC SETTINGS")
    if config.basic_settings is None:
        lines.append("  (none)")
    else:
        for key, value in config.basic_settings.items():
            lines.append(f"  {key}: {_compact(value)}")
    lines.append("")

    lines.append("FILTERS")
    if not config.filters:
        lines.append("  (none)")
    for resolved in config.filters:
        title = resolved.definition_id
        if registry is not None and resolved.definition_id in registry:
            title = registry.get(resolved.definition_id).title or title
        tags = []
        if resolved.is_merged:
            tags.append(f"merged from {len(resolved.node_ids)}")
        if resolved.is_default:
            tags.append("default")
        suffix = f" [{', '.join(tags)}]" if tags else ""
        lines.append(f"  {title} @ {scope_key(resolved.scope_source_ids)}{suffix}")
        lines.append(f"    {_compact(resolved.settings)}")
    lines.append("")

    lines.append("SOURCES")
    if not config.source_lists:
        lines.append("  (none)")
    for source in config.source_lists:
        share = "" if source.song_percentage is None else f" {source.song_percentage}%"
        lines.append(f"  {source.node_id} ({source.node_type}, {source.mode}){share}")
        for entry in source.user_entries:
            user = entry.get("username") or entry.get("name") or "?"
            lines.append(f"    {user}: {entry.get('songPercentage', '-')}%")

    with open(output_path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")
