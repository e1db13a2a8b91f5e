"""Tests for route selection and execution rolls."""

import random

from quizgraph.graph import BASIC_SETTINGS, ROUTER, Node
from quizgraph.rng import make_rng
from quizgraph.routing import (
    Route,
    chance_bounds,
    is_range_chance,
    node_passes,
    passes_execution,
    router_routes,
    select_route,
)


def _router(*routes):
    return Node(id="r", type_tag=ROUTER, settings={"routes": list(routes)})


def test_route_from_dict_defaults():
    """Missing fields default to an enabled zero-weight route."""
    route = Route.from_dict({"id": "x"})
    assert route == Route(id="x", name="", percentage=0, enabled=True)


def test_router_routes_preserve_order():
    """Routes come back in authoring order."""
    router = _router({"id": "a", "percentage": 10}, {"id": "b", "percentage": 90})
    assert [r.id for r in router_routes(router)] == ["a", "b"]


class TestSelectRoute:
    """Tests for weighted route selection."""

    def test_no_router(self):
        """No router, no route."""
        assert select_route(None, make_rng("x")) is None

    def test_no_enabled_route(self):
        """Disabled and zero-weight routes never qualify."""
        router = _router(
            {"id": "a", "percentage": 50, "enabled": False},
            {"id": "b", "percentage": 0},
        )
        assert select_route(router, make_rng("x")) is None

    def test_single_route_always_selected(self):
        """A lone enabled route is always taken."""
        router = _router({"id": "only", "percentage": 5})
        for i in range(20):
            assert select_route(router, make_rng(f"s{i}")).id == "only"

    def test_disabled_route_never_selected(self):
        """Disabled routes are skipped even with a large weight."""
        router = _router(
            {"id": "off", "percentage": 90, "enabled": False},
            {"id": "on", "percentage": 10},
        )
        for i in range(50):
            assert select_route(router, make_rng(f"d{i}")).id == "on"

    def test_weights_converge(self):
        """A 30/70 split converges over many seeds."""
        router = _router({"id": "a", "percentage": 30}, {"id": "b", "percentage": 70})
        runs = 2000
        picks_b = sum(
            1 for i in range(runs) if select_route(router, make_rng(f"conv-{i}")).id == "b"
        )
        assert 0.65 <= picks_b / runs <= 0.75

    def test_relative_weights(self):
        """Weights need not sum to 100."""
        router = _router({"id": "a", "percentage": 1}, {"id": "b", "percentage": 3})
        runs = 2000
        picks_b = sum(
            1 for i in range(runs) if select_route(router, make_rng(f"rel-{i}")).id == "b"
        )
        assert 0.70 <= picks_b / runs <= 0.80


# =============================================================================
# Execution chance
# =============================================================================


def test_chance_bounds_shapes():
    """Scalars, value mappings and ranges all have bounds."""
    assert chance_bounds(None) is None
    assert chance_bounds(50) == (50.0, 50.0)
    assert chance_bounds({"value": 30}) == (30.0, 30.0)
    assert chance_bounds({"min": 20, "max": 80}) == (20.0, 80.0)
    assert chance_bounds({"kind": "range"}) == (0.0, 100.0)


def test_is_range_chance():
    """Mappings with min/max or kind=range are ranges."""
    assert is_range_chance({"min": 1})
    assert is_range_chance({"kind": "range"})
    assert not is_range_chance({"value": 10})
    assert not is_range_chance(50)


def test_none_passes_without_drawing():
    """No execution chance always passes and consumes nothing."""
    rng = make_rng("none")
    state = rng.getstate()
    assert passes_execution(None, rng)
    assert rng.getstate() == state


def test_full_chance_always_passes():
    """100% always passes."""
    for i in range(100):
        assert passes_execution(100, make_rng(f"full-{i}"))


def test_zero_chance_never_passes():
    """A static 0% fails on any non-zero draw."""
    for i in range(100):
        assert not passes_execution(0, make_rng(f"zero-{i}"))


def test_range_chance_extremes():
    """Degenerate ranges behave like their single value."""
    for i in range(50):
        assert not passes_execution({"min": 0, "max": 0}, make_rng(f"r0-{i}"))
        assert passes_execution({"min": 100, "max": 100}, make_rng(f"r100-{i}"))


def test_half_chance_roughly_half():
    """50% passes about half the time."""
    runs = 2000
    passed = sum(1 for i in range(runs) if passes_execution(50, make_rng(f"half-{i}")))
    assert 0.45 <= passed / runs <= 0.55


def test_node_passes_uses_node_chance():
    """node_passes rolls the node's own execution chance."""
    node = Node(id="b", type_tag=BASIC_SETTINGS, execution_chance=0)
    assert not node_passes(node, make_rng("node"))


class _FixedRoll(random.Random):
    """Random stream whose random() always returns one value."""

    def __init__(self, value):
        super().__init__()
        self.value = value

    def random(self):
        return self.value


def test_roll_equal_to_chance_passes():
    """The comparison is inclusive: a roll landing on the chance passes."""
    assert passes_execution(25, _FixedRoll(0.25))
    assert not passes_execution(24, _FixedRoll(0.25))


def test_zero_chance_passes_on_exact_zero_draw():
    """0% passes only when the draw is exactly zero."""
    assert passes_execution(0, _FixedRoll(0.0))
    assert not passes_execution(0, _FixedRoll(1 / 4294967296))
