"""Integer allocation of fixed and ranged quantities to an exact total.

Used wherever a set of buckets (song types, difficulty levels, vintage
ranges, per-user shares) must add up to a known target such as 100 percent
or the inherited song count.
"""

from __future__ import annotations

import math
import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from quizgraph.rng import make_rng, random_int


@dataclass(frozen=True)
class AllocationEntry:
    """One bucket taking part in an allocation.

    Attributes:
        label: Key under which the allocated value is returned.
        kind: "static" for a fixed value, "range" for a drawn value.
        value: Fixed value (static entries only).
        min: Lower bound (range entries only).
        max: Upper bound (range entries only).
    """

    label: str
    kind: str
    value: float = 0
    min: float = 0
    max: float = 0

    @classmethod
    def static(cls, label: str, value: float) -> AllocationEntry:
        return cls(label=label, kind="static", value=value)

    @classmethod
    def ranged(cls, label: str, lo: float, hi: float) -> AllocationEntry:
        return cls(label=label, kind="range", min=lo, max=hi)

    @property
    def is_range(self) -> bool:
        return self.kind == "range"

    @property
    def bounds(self) -> tuple[float, float]:
        """(min, max) for ranges, (value, value) for statics."""
        if self.is_range:
            return self.min, self.max
        return self.value, self.value


def round_half_up(x: float) -> int:
    """Round .5 away from zero for positive values (floor(x + 0.5))."""
    return math.floor(x + 0.5)


def clamp(n: float, lo: float, hi: float) -> float:
    """Clamp n into [lo, hi]."""
    return max(lo, min(hi, n))


def percent_to_count(percentage: float, total: int) -> int:
    """Convert a percentage of ``total`` to a rounded count."""
    return round_half_up(percentage / 100 * total)


def _largest_index(values: Sequence[int], candidates: Sequence[int]) -> int:
    """Index (from candidates) holding the largest value, first on ties."""
    best = candidates[0]
    for idx in candidates[1:]:
        if values[idx] > values[best]:
            best = idx
    return best


def _absorb_residual(values: list[int], candidates: list[int], residual: int) -> None:
    """Add a signed residual to the largest candidate.

    A negative residual larger than the largest value is taken from the next
    largest values in turn so no bucket drops below zero.
    """
    if residual >= 0:
        values[_largest_index(values, candidates)] += residual
        return
    pool = list(candidates)
    while residual < 0 and pool:
        idx = _largest_index(values, pool)
        taken = min(values[idx], -residual)
        values[idx] -= taken
        residual += taken
        pool.remove(idx)


def allocate_to_total(
    entries: Sequence[AllocationEntry],
    target: float,
    rng: random.Random,
) -> dict[str, int]:
    """Assign an integer to every entry so the values sum to ``target``.

    Static entries receive exactly their value. Each range entry draws one
    value with ``random_int`` in input order; the signed difference between
    the drawn sum and the target is then added to the largest range
    allocation (first one on ties). The draw is never repeated.

    Feasibility (static sum plus range bounds bracketing the target) is the
    caller's responsibility; see ``quizgraph.validator``.

    Args:
        entries: Buckets to allocate, in a stable order.
        target: Required total.
        rng: Random stream of the current pass.

    Returns:
        Mapping of label to allocated integer, in entry order.
    """
    values: list[int] = []
    range_indexes: list[int] = []
    for idx, entry in enumerate(entries):
        if entry.is_range:
            values.append(random_int(rng, entry.min, entry.max))
            range_indexes.append(idx)
        else:
            values.append(round_half_up(float(entry.value)))

    if range_indexes:
        residual = round_half_up(float(target)) - sum(values)
        if residual:
            _absorb_residual(values, range_indexes, residual)

    return {entry.label: value for entry, value in zip(entries, values)}


def apportion(values: Mapping[str, float], total: int) -> dict[str, int]:
    """Rescale values proportionally so they sum exactly to ``total``.

    Each value is scaled by ``total / sum`` and rounded; the rounding drift is
    added to the largest result (first on ties). When every value is zero the
    total is split as evenly as possible, earlier keys receiving the extra.
    """
    labels = list(values)
    if not labels:
        return {}
    current = sum(values.values())
    if current <= 0:
        base, extra = divmod(total, len(labels))
        return {label: base + (1 if i < extra else 0) for i, label in enumerate(labels)}

    scaled = [round_half_up(values[label] * total / current) for label in labels]
    residual = total - sum(scaled)
    if residual:
        _absorb_residual(scaled, list(range(len(labels))), residual)
    return dict(zip(labels, scaled))


def analyze_allocation_ranges(
    entries: Sequence[AllocationEntry],
    target: float,
    simulations: int = 50,
) -> dict[str, dict[str, Any]]:
    """Estimate the values each entry actually takes across many seeds.

    Range entries can be narrowed in practice by the other entries sharing
    the target, so the configured bounds overstate the possible outcomes.
    The allocator is run with ``simulations`` fixed seeds and the observed
    extremes are reported.

    Returns:
        Mapping label -> {"kind": "static", "value": v} or
        {"kind": "range", "min": lo, "max": hi, "configured": {...}}.
    """
    observed: dict[str, list[int]] = {entry.label: [] for entry in entries}
    for i in range(simulations):
        allocation = allocate_to_total(entries, target, make_rng(f"allocation-sim-{i}"))
        for label, value in allocation.items():
            observed[label].append(value)

    report: dict[str, dict[str, Any]] = {}
    for entry in entries:
        if not entry.is_range:
            report[entry.label] = {"kind": "static", "value": entry.value}
            continue
        seen = observed[entry.label]
        report[entry.label] = {
            "kind": "range",
            "min": min(seen) if seen else entry.min,
            "max": max(seen) if seen else entry.max,
            "configured": {"min": entry.min, "max": entry.max},
        }
    return report


def check_allocation(entries: Sequence[AllocationEntry], target: float) -> str | None:
    """Describe why ``entries`` cannot reach ``target``, or None if they can.

    Rules:
    - only statics: they must sum to the target exactly;
    - statics plus ranges: static sum + range mins must not exceed the
      target, and static sum + range maxes must reach it;
    - only ranges: sum of mins <= target <= sum of maxes.
    """
    if not entries:
        return None
    static_sum = sum(e.value for e in entries if not e.is_range)
    ranges = [e for e in entries if e.is_range]
    if not ranges:
        if static_sum != target:
            return f"values sum to {static_sum:g}, expected {target:g}"
        return None
    min_sum = static_sum + sum(e.min for e in ranges)
    max_sum = static_sum + sum(e.max for e in ranges)
    if min_sum > target:
        return f"minimum total {min_sum:g} exceeds {target:g}"
    if max_sum < target:
        return f"maximum total {max_sum:g} cannot reach {target:g}"
    return None
