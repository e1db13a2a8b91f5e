"""Tests for full resolution passes."""

from datetime import date

import pytest

from quizgraph.engine import ResolvedConfiguration, simulate_quiz_configuration
from quizgraph.errors import AmbiguousModifierError, UnknownFilterError
from quizgraph.filters import ResolutionContext, default_registry
from quizgraph.graph import (
    BASIC_SETTINGS,
    FILTER,
    NUMBER_OF_SONGS,
    ROUTER,
    SELECTION_MODIFIER,
    SOURCE_LIST,
    SOURCE_SELECTOR,
    SOURCE_SELECTOR_HANDLE,
    Edge,
    Node,
    QuizGraph,
)
from quizgraph.output import configuration_to_dict

TODAY = date(2024, 5, 1)


@pytest.fixture
def registry():
    return default_registry()


def _songs(node_id="n", count=20):
    return Node(id=node_id, type_tag=NUMBER_OF_SONGS, settings={"staticValue": count})


def _filter(node_id, definition_id, settings, **kwargs):
    return Node(
        id=node_id, type_tag=FILTER, definition_id=definition_id, settings=settings, **kwargs
    )


def _genres(node_id, included=(), excluded=(), **kwargs):
    settings = {
        "viewMode": "basic",
        "mode": "count",
        "included": list(included),
        "excluded": list(excluded),
    }
    return _filter(node_id, "genres", settings, **kwargs)


def _resolve(graph, registry, seed="test-seed", **kwargs):
    return simulate_quiz_configuration(graph, registry, seed, today=TODAY, **kwargs)


def _feeding(nodes, terminal="n"):
    """Edges from every node into the terminal."""
    return [Edge(n.id, terminal) for n in nodes]


# =============================================================================
# Seeds and determinism
# =============================================================================


def _busy_graph():
    router = Node(
        id="r",
        type_tag=ROUTER,
        settings={
            "routes": [
                {"id": "a", "name": "A", "percentage": 50},
                {"id": "b", "name": "B", "percentage": 50},
            ]
        },
    )
    songs_and_types = _filter(
        "st",
        "songs-and-types",
        {
            "mode": "count",
            "songTypes": {
                "openings": {"enabled": True, "random": True, "countMin": 5, "countMax": 15},
                "endings": {"enabled": True, "random": True, "countMin": 5, "countMax": 15},
                "inserts": {"enabled": False},
            },
            "songSelection": {
                "random": {"random": True, "countMin": 0, "countMax": 20},
                "watched": {"random": True, "countMin": 0, "countMax": 20},
            },
        },
        execution_chance={"min": 40, "max": 90},
    )
    vintage = _filter(
        "v",
        "vintage",
        {
            "mode": "percentage",
            "ranges": [
                {
                    "from": {"season": "Winter", "year": 2000},
                    "to": {"season": "Fall", "year": 2010},
                    "useAdvanced": False,
                }
            ],
        },
    )
    nodes = [
        router,
        Node(id="b1", type_tag=BASIC_SETTINGS, settings={"guessTime": 10}),
        Node(id="b2", type_tag=BASIC_SETTINGS, settings={"guessTime": 30}),
        Node(id="n", type_tag=NUMBER_OF_SONGS, settings={"useRange": True, "min": 10, "max": 40}),
        songs_and_types,
        vintage,
    ]
    edges = [
        Edge("r", "b1", source_handle="a"),
        Edge("r", "b2", source_handle="b"),
        Edge("b1", "n"),
        Edge("b2", "n"),
        Edge("st", "n"),
        Edge("v", "n"),
    ]
    return QuizGraph(nodes=nodes, edges=edges)


def test_same_seed_same_configuration(registry):
    """A (graph, seed) pair always resolves identically."""
    graph = _busy_graph()
    first = configuration_to_dict(_resolve(graph, registry, "replay"))
    second = configuration_to_dict(_resolve(graph, registry, "replay"))
    assert first == second


def test_seeds_vary_outcomes(registry):
    """Different seeds explore different outcomes."""
    graph = _busy_graph()
    counts = {_resolve(graph, registry, f"vary-{i}").number_of_songs for i in range(30)}
    assert len(counts) > 1


def test_fresh_seed_when_missing(registry):
    """A missing seed is replaced by a fresh one carried in the result."""
    result = simulate_quiz_configuration(QuizGraph(), registry, today=TODAY)
    assert isinstance(result, ResolvedConfiguration)
    assert len(result.seed) == 16


def test_empty_seed_is_kept(registry):
    """An explicit empty seed is a real seed, not a request for a fresh one."""
    graph = _busy_graph()
    first = _resolve(graph, registry, "")
    second = _resolve(graph, registry, "")
    assert first.seed == ""
    assert configuration_to_dict(first) == configuration_to_dict(second)


def test_empty_graph(registry):
    """An empty graph resolves to the fallback song count only."""
    result = _resolve(QuizGraph(), registry)
    assert result.route is None
    assert result.basic_settings is None
    assert result.number_of_songs is None
    assert result.inherited_song_count == 20
    assert result.filters == []
    assert result.source_lists == []


# =============================================================================
# Lobby
# =============================================================================


def test_two_basic_settings_one_song_count(registry):
    """One of two basic settings is used and the song count is inherited."""
    graph = QuizGraph(
        nodes=[
            Node(id="b1", type_tag=BASIC_SETTINGS, settings={"guessTime": 10}),
            Node(id="b2", type_tag=BASIC_SETTINGS, settings={"guessTime": 30}),
            _songs(count=20),
        ],
        edges=[Edge("b1", "n"), Edge("b2", "n")],
    )
    used = set()
    for i in range(40):
        result = _resolve(graph, registry, f"lobby-{i}")
        assert result.number_of_songs == 20
        assert result.inherited_song_count == 20
        expected = 10 if result.basic_settings_node == "b1" else 30
        assert result.basic_settings["guessTime"] == expected
        used.add(result.basic_settings_node)
    assert used == {"b1", "b2"}


def test_fallback_song_count(registry):
    """Without a song count node the fallback is inherited."""
    graph = QuizGraph(nodes=[_genres("g", ["Action"])])
    result = _resolve(graph, registry, fallback_song_count=25)
    assert result.number_of_songs is None
    assert result.inherited_song_count == 25


def test_disconnected_nodes_pruned(registry):
    """Nodes not attached to the song count are never used."""
    graph = QuizGraph(
        nodes=[
            Node(id="b1", type_tag=BASIC_SETTINGS),
            Node(id="b2", type_tag=BASIC_SETTINGS),
            _songs(),
        ],
        edges=[Edge("b1", "n")],
    )
    for i in range(20):
        assert _resolve(graph, registry, f"prune-{i}").basic_settings_node == "b1"


# =============================================================================
# Routing
# =============================================================================


def _routed_graph(weight_a, weight_b):
    router = Node(
        id="r",
        type_tag=ROUTER,
        settings={
            "routes": [
                {"id": "a", "name": "Short", "percentage": weight_a},
                {"id": "b", "name": "Long", "percentage": weight_b},
            ]
        },
    )
    return QuizGraph(
        nodes=[router, _songs("na", 10), _songs("nb", 30)],
        edges=[Edge("r", "na", source_handle="a"), Edge("r", "nb", source_handle="b")],
    )


def test_route_shares_converge(registry):
    """A 30/70 router picks the second route about 70% of the time."""
    graph = _routed_graph(30, 70)
    runs = 500
    long_runs = sum(
        1 for i in range(runs) if _resolve(graph, registry, f"route-{i}").number_of_songs == 30
    )
    assert 0.62 <= long_runs / runs <= 0.78


def test_off_route_filters_excluded(registry):
    """Filters downstream of another route are ignored."""
    router = Node(
        id="r",
        type_tag=ROUTER,
        settings={
            "routes": [
                {"id": "a", "percentage": 100},
                {"id": "b", "percentage": 100, "enabled": False},
            ]
        },
    )
    fa = _genres("fa", ["Action"])
    fb = _genres("fb", ["Drama"])
    graph = QuizGraph(
        nodes=[router, fa, fb, _songs()],
        edges=[
            Edge("r", "fa", source_handle="a"),
            Edge("r", "fb", source_handle="b"),
            Edge("fa", "n"),
            Edge("fb", "n"),
        ],
    )
    result = _resolve(graph, registry)
    assert result.route.id == "a"
    genres = result.filter("genres")
    assert len(genres) == 1
    assert genres[0].node_ids == ["fa"]
    assert genres[0].settings["included"] == ["Action"]


# =============================================================================
# Selection and merging
# =============================================================================


def test_modifier_caps_filter_instances(registry):
    """A max=2 modifier keeps two of three genres filters."""
    filters = [_genres(f"g{i}", [f"Genre{i}"], selection_modified=True) for i in range(3)]
    modifier = Node(
        id="m", type_tag=SELECTION_MODIFIER, settings={"minSelection": 1, "maxSelection": 2}
    )
    graph = QuizGraph(
        nodes=[modifier, *filters, _songs()],
        edges=[Edge("m", f.id) for f in filters] + _feeding(filters),
    )
    for i in range(20):
        genres = _resolve(graph, registry, f"mod-{i}").filter("genres")
        assert len(genres) == 1
        assert genres[0].is_merged
        assert len(genres[0].node_ids) == 2
        assert len(genres[0].settings["included"]) == 2


def test_ambiguous_modifiers_raise(registry):
    """Two free-standing modifiers for one group fail the pass."""
    filters = [_genres(f"g{i}", selection_modified=True) for i in range(2)]
    modifiers = [
        Node(id=f"m{i}", type_tag=SELECTION_MODIFIER, settings={"maxSelection": 1})
        for i in range(2)
    ]
    graph = QuizGraph(nodes=[*modifiers, *filters])
    with pytest.raises(AmbiguousModifierError):
        _resolve(graph, registry)


def test_unknown_filter_raises(registry):
    """A filter kind missing from the registry fails the pass."""
    graph = QuizGraph(nodes=[_filter("x", "mystery", {})])
    with pytest.raises(UnknownFilterError):
        _resolve(graph, registry)


def test_missing_filter_gets_defaults(registry):
    """An authored filter kind with no survivor is emitted with defaults."""
    graph = QuizGraph(
        nodes=[_genres("g", ["Action"], execution_chance=0), _songs()],
        edges=[Edge("g", "n")],
    )
    genres = _resolve(graph, registry).filter("genres")
    assert len(genres) == 1
    assert genres[0].is_default
    assert genres[0].node_ids == []
    context = ResolutionContext(today=TODAY)
    assert genres[0].settings == registry.get("genres").default_settings(context)


def test_genre_conflict_becomes_optional(registry):
    """Included and excluded by different nodes ends up optional."""
    filters = [_genres("g1", included=["Action"]), _genres("g2", excluded=["Action"])]
    graph = QuizGraph(nodes=[*filters, _songs()], edges=_feeding(filters))
    settings = _resolve(graph, registry).filter("genres")[0].settings
    assert settings["included"] == []
    assert settings["excluded"] == []
    assert settings["optional"] == ["Action"]


def test_score_gap_disallowed(registry):
    """Merging two disjoint score ranges disallows the gap."""
    filters = [
        _filter("s1", "anime-score", {"mode": "range", "min": 2, "max": 5}),
        _filter("s2", "anime-score", {"mode": "range", "min": 8, "max": 10}),
    ]
    graph = QuizGraph(nodes=[*filters, _songs()], edges=_feeding(filters))
    settings = _resolve(graph, registry).filter("anime-score")[0].settings
    assert (settings["min"], settings["max"]) == (2, 10)
    assert settings["disallowed"] == [6, 7]


def test_scoped_filters_not_merged(registry):
    """Same kind with different source scopes stays separate."""
    g1 = _genres("g1", ["Action"])
    g2 = _genres("g2", ["Drama"])
    source = Node(id="src", type_tag=SOURCE_LIST, definition_id="song-list")
    selector = Node(id="sel", type_tag=SOURCE_SELECTOR, settings={"targetSourceId": "src"})
    graph = QuizGraph(
        nodes=[source, selector, g1, g2, _songs()],
        edges=[
            Edge("sel", "g2", target_handle=SOURCE_SELECTOR_HANDLE),
            Edge("g1", "n"),
            Edge("g2", "n"),
            Edge("src", "n"),
        ],
    )
    genres = _resolve(graph, registry).filter("genres")
    assert [(f.scope_source_ids, f.is_merged) for f in genres] == [([], False), (["src"], False)]


def test_merged_song_types_preserve_total(registry):
    """Merged songs & types counts always add up to the song count."""
    settings = {
        "mode": "count",
        "songTypes": {
            "openings": {"enabled": True, "random": True, "countMin": 5, "countMax": 15},
            "endings": {"enabled": True, "random": True, "countMin": 5, "countMax": 15},
            "inserts": {"enabled": False},
        },
        "songSelection": {
            "random": {"random": False, "count": 10},
            "watched": {"random": False, "count": 10},
        },
    }
    filters = [_filter("st1", "songs-and-types", settings), _filter("st2", "songs-and-types", settings)]
    graph = QuizGraph(nodes=[*filters, _songs(count=20)], edges=_feeding(filters))
    for i in range(30):
        merged = _resolve(graph, registry, f"total-{i}").filter("songs-and-types")[0]
        assert merged.is_merged
        assert sum(merged.settings["types"].values()) == 20
        assert merged.settings["songSelection"] == {"random": 10, "watched": 10}


def test_vintage_implicit_range_uses_pinned_date(registry):
    """The implicit vintage range ends at the pinned season."""
    vintage = _filter(
        "v",
        "vintage",
        {
            "mode": "percentage",
            "ranges": [
                {
                    "from": {"season": "Winter", "year": 2000},
                    "to": {"season": "Fall", "year": 2010},
                    "useAdvanced": True,
                    "percentage": 50,
                }
            ],
        },
    )
    graph = QuizGraph(nodes=[vintage, _songs(count=20)], edges=[Edge("v", "n")])
    ranges = _resolve(graph, registry).filter("vintage")[0].settings["ranges"]
    assert [r["value"] for r in ranges] == [10, 10]
    assert ranges[1]["to"] == {"season": "Spring", "year": 2024}


# =============================================================================
# Sources
# =============================================================================


def test_source_lists_resolved_and_pruned(registry):
    """Connected sources are resolved; detached ones are dropped."""
    graph = QuizGraph(
        nodes=[
            Node(
                id="src",
                type_tag=SOURCE_LIST,
                definition_id="song-list",
                settings={"songPercentage": {"random": False, "value": 40}},
            ),
            Node(id="lost", type_tag=SOURCE_LIST, definition_id="song-list"),
            _songs(),
        ],
        edges=[Edge("src", "n")],
    )
    sources = _resolve(graph, registry).source_lists
    assert [s.node_id for s in sources] == ["src"]
    assert sources[0].song_percentage == 40
    assert sources[0].mode == "masterlist"
