"""Tests for integer allocation to an exact total."""

from quizgraph.allocation import (
    AllocationEntry,
    allocate_to_total,
    analyze_allocation_ranges,
    apportion,
    check_allocation,
    percent_to_count,
    round_half_up,
)
from quizgraph.rng import make_rng


def test_round_half_up():
    """Halves round up, like the editor's rounding."""
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(1.49) == 1
    assert round_half_up(7.0) == 7


def test_percent_to_count():
    """Percentages convert to rounded counts of the total."""
    assert percent_to_count(25, 20) == 5
    assert percent_to_count(33, 20) == 7
    assert percent_to_count(0, 20) == 0


def test_entry_bounds():
    """Static entries report (value, value), ranges their bounds."""
    assert AllocationEntry.static("a", 30).bounds == (30, 30)
    assert AllocationEntry.ranged("b", 10, 40).bounds == (10, 40)
    assert AllocationEntry.ranged("b", 10, 40).is_range


# =============================================================================
# allocate_to_total
# =============================================================================


class TestAllocateToTotal:
    """Tests for allocate_to_total."""

    def test_statics_only_are_kept(self):
        """Static entries receive exactly their value."""
        entries = [AllocationEntry.static("a", 30), AllocationEntry.static("b", 70)]
        assert allocate_to_total(entries, 100, make_rng("s")) == {"a": 30, "b": 70}

    def test_single_range_absorbs_remainder(self):
        """A lone range always fills what the statics leave."""
        entries = [AllocationEntry.static("fixed", 40), AllocationEntry.ranged("flex", 0, 100)]
        for i in range(50):
            result = allocate_to_total(entries, 100, make_rng(f"single-{i}"))
            assert result == {"fixed": 40, "flex": 60}

    def test_ranges_sum_to_target(self):
        """Drawn ranges are corrected to hit the target exactly."""
        entries = [
            AllocationEntry.ranged("a", 10, 40),
            AllocationEntry.ranged("b", 10, 40),
            AllocationEntry.ranged("c", 20, 60),
        ]
        for i in range(100):
            result = allocate_to_total(entries, 100, make_rng(f"sum-{i}"))
            assert sum(result.values()) == 100
            assert all(v >= 0 for v in result.values())

    def test_negative_residual_never_goes_below_zero(self):
        """Over-drawn ranges are trimmed without producing negatives."""
        entries = [
            AllocationEntry.static("fixed", 90),
            AllocationEntry.ranged("x", 0, 50),
            AllocationEntry.ranged("y", 0, 50),
        ]
        for i in range(100):
            result = allocate_to_total(entries, 100, make_rng(f"neg-{i}"))
            assert result["fixed"] == 90
            assert result["x"] >= 0 and result["y"] >= 0
            assert sum(result.values()) == 100

    def test_order_preserved(self):
        """Result keys follow entry order."""
        entries = [AllocationEntry.ranged("z", 0, 10), AllocationEntry.static("a", 5)]
        result = allocate_to_total(entries, 15, make_rng("order"))
        assert list(result) == ["z", "a"]

    def test_deterministic(self):
        """Same seed, same allocation."""
        entries = [AllocationEntry.ranged("a", 0, 100), AllocationEntry.ranged("b", 0, 100)]
        assert allocate_to_total(entries, 100, make_rng("d")) == allocate_to_total(
            entries, 100, make_rng("d")
        )


# =============================================================================
# apportion
# =============================================================================


class TestApportion:
    """Tests for proportional rescaling."""

    def test_exact_total(self):
        """Results always sum to the requested total."""
        assert apportion({"a": 30, "b": 70}, 20) == {"a": 6, "b": 14}

    def test_drift_goes_to_largest_first(self):
        """Rounding drift lands on the first of the largest values."""
        assert apportion({"a": 1, "b": 1, "c": 1}, 10) == {"a": 4, "b": 3, "c": 3}

    def test_all_zero_splits_evenly(self):
        """With nothing to scale the total is split evenly."""
        assert apportion({"a": 0, "b": 0, "c": 0}, 10) == {"a": 4, "b": 3, "c": 3}

    def test_empty(self):
        """No values, no result."""
        assert apportion({}, 10) == {}


# =============================================================================
# check_allocation / analyze_allocation_ranges
# =============================================================================


class TestCheckAllocation:
    """Tests for feasibility checks."""

    def test_statics_must_match(self):
        """Statics alone must hit the target exactly."""
        entries = [AllocationEntry.static("a", 40), AllocationEntry.static("b", 50)]
        assert check_allocation(entries, 100) is not None
        entries.append(AllocationEntry.static("c", 10))
        assert check_allocation(entries, 100) is None

    def test_minimums_too_high(self):
        """Range minimums plus statics may not exceed the target."""
        entries = [AllocationEntry.static("a", 60), AllocationEntry.ranged("b", 50, 70)]
        assert "exceeds" in check_allocation(entries, 100)

    def test_maximums_too_low(self):
        """Range maximums plus statics must reach the target."""
        entries = [AllocationEntry.static("a", 20), AllocationEntry.ranged("b", 10, 30)]
        assert "cannot reach" in check_allocation(entries, 100)

    def test_feasible_ranges(self):
        """Bracketing ranges are accepted."""
        entries = [AllocationEntry.ranged("a", 20, 60), AllocationEntry.ranged("b", 20, 60)]
        assert check_allocation(entries, 100) is None

    def test_empty_is_fine(self):
        """Nothing to allocate is not an error."""
        assert check_allocation([], 100) is None


def test_analyze_allocation_ranges_reports_effective_values():
    """A range squeezed by statics reports its effective value."""
    entries = [AllocationEntry.static("fixed", 40), AllocationEntry.ranged("flex", 0, 100)]
    report = analyze_allocation_ranges(entries, 100, simulations=10)
    assert report["fixed"] == {"kind": "static", "value": 40}
    assert report["flex"]["min"] == 60
    assert report["flex"]["max"] == 60
    assert report["flex"]["configured"] == {"min": 0, "max": 100}
