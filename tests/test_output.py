"""Tests for graph loading and configuration export."""

import json
from datetime import date

import pytest

from quizgraph.engine import simulate_quiz_configuration
from quizgraph.filters import default_registry
from quizgraph.graph import FILTER, NUMBER_OF_SONGS, SOURCE_SELECTOR_HANDLE
from quizgraph.output import (
    GraphFormatError,
    configuration_to_dict,
    export_json,
    export_summary,
    graph_from_dict,
    load_graph,
)

GRAPH = {
    "nodes": [
        {
            "id": "g1",
            "typeTag": "filter",
            "definitionId": "genres",
            "settings": {"viewMode": "basic", "mode": "count", "included": ["Action"]},
            "executionChance": {"min": 50, "max": 100},
            "selectionModified": True,
        },
        {"id": "n", "type": "numberOfSongs", "settings": {"staticValue": 25}},
    ],
    "edges": [
        {"source": "g1", "target": "n"},
        {"source": "sel", "target": "g1", "targetHandle": "source-selector"},
    ],
}

GRAPH_YAML = """
nodes:
  - id: g1
    typeTag: filter
    definitionId: genres
    settings:
      viewMode: basic
      mode: count
      included: [Action]
  - id: n
    typeTag: numberOfSongs
    settings:
      staticValue: 25
edges:
  - source: g1
    target: n
"""


# =============================================================================
# Loading
# =============================================================================


def test_load_json(tmp_path):
    """JSON graphs accept the editor's camelCase keys."""
    path = tmp_path / "graph.json"
    path.write_text(json.dumps(GRAPH))
    graph = load_graph(path)
    g1 = graph.get("g1")
    assert g1.type_tag == FILTER
    assert g1.definition_id == "genres"
    assert g1.execution_chance == {"min": 50, "max": 100}
    assert g1.selection_modified is True
    assert graph.get("n").type_tag == NUMBER_OF_SONGS
    assert graph.edges[1].target_handle == SOURCE_SELECTOR_HANDLE


def test_load_yaml(tmp_path):
    """YAML graphs are parsed the same way."""
    path = tmp_path / "graph.yaml"
    path.write_text(GRAPH_YAML)
    graph = load_graph(path)
    assert [n.id for n in graph.nodes] == ["g1", "n"]
    assert graph.get("g1").settings["included"] == ["Action"]


def test_load_missing_file(tmp_path):
    """Missing files raise FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_graph(tmp_path / "absent.json")


def test_load_malformed_json(tmp_path):
    """Unparseable content is a GraphFormatError."""
    path = tmp_path / "graph.json"
    path.write_text("{not json")
    with pytest.raises(GraphFormatError):
        load_graph(path)


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"nodes": [{"typeTag": "filter"}]},
        {"nodes": [{"id": "x", "typeTag": "teleporter"}]},
        {"nodes": [{"id": "x", "typeTag": "filter"}, {"id": "x", "typeTag": "filter"}]},
        {"nodes": [], "edges": [{"source": "a"}]},
    ],
)
def test_invalid_graphs(data):
    """Structural problems are reported as GraphFormatError."""
    with pytest.raises(GraphFormatError):
        graph_from_dict(data)


def test_graph_format_error_is_value_error():
    """GraphFormatError can be caught as ValueError."""
    assert issubclass(GraphFormatError, ValueError)


# =============================================================================
# Export
# =============================================================================


@pytest.fixture
def resolved():
    graph = graph_from_dict(GRAPH)
    return simulate_quiz_configuration(
        graph, default_registry(), "export-seed", today=date(2024, 5, 1)
    )


def test_configuration_to_dict(resolved):
    """The exported dict carries the seed, song count and filters."""
    data = configuration_to_dict(resolved)
    assert data["seed"] == "export-seed"
    assert data["numberOfSongs"] == 25
    assert data["filters"][0]["definitionId"] == "genres"
    assert data["sourceLists"] == []
    json.dumps(data)


def test_export_json(resolved, tmp_path):
    """export_json writes the configuration dict."""
    path = tmp_path / "configuration.json"
    export_json(resolved, path)
    assert json.loads(path.read_text()) == configuration_to_dict(resolved)


def test_export_summary(resolved, tmp_path):
    """The summary names the seed and uses filter titles."""
    path = tmp_path / "summary.txt"
    export_summary(resolved, path, default_registry())
    text = path.read_text()
    assert "QUIZ CONFIGURATION (seed: export-seed)" in text
    assert "Songs: 25" in text
    assert "Genres @ all-sources" in text
