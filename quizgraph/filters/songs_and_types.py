"""Songs & types filter.

Two independent allocations against the same total: how many openings,
endings and inserts to play, and how songs are drawn (random pool versus
watched lists). Both are resolved to song counts.
"""

from __future__ import annotations

import random
from collections.abc import Mapping, Sequence
from typing import Any

from quizgraph.allocation import (
    AllocationEntry,
    allocate_to_total,
    apportion,
    check_allocation,
)
from quizgraph.errors import MissingFieldError
from quizgraph.filters.base import (
    FilterIssues,
    FilterKind,
    ResolutionContext,
    bucket_entry,
    entry_range,
    require,
    scale_range,
)

SONG_TYPES = ("openings", "endings", "inserts")
SELECTIONS = ("random", "watched")

_VALUE_KEYS = (("percentage", "value"), ("count", "value"))


def _bucket(
    enabled: bool,
    count: int,
    percentage: int,
    random_range: bool,
    percentage_bounds: tuple[int, int],
    count_bounds: tuple[int, int],
) -> dict[str, Any]:
    return {
        "enabled": enabled,
        "count": count,
        "percentage": percentage,
        "random": random_range,
        "percentageMin": percentage_bounds[0],
        "percentageMax": percentage_bounds[1],
        "countMin": count_bounds[0],
        "countMax": count_bounds[1],
    }


def _sum_group(
    values: Sequence[dict[str, Any]], key: str, ranges_key: str, total: int
) -> tuple[dict[str, int], dict[str, dict[str, float]]]:
    amounts: dict[str, int] = {}
    bounds: dict[str, dict[str, float]] = {}
    for v in values:
        for label, amount in v.get(key, {}).items():
            amounts[label] = amounts.get(label, 0) + amount
        for label, item_bounds in v.get(ranges_key, {}).items():
            current = bounds.setdefault(label, {"min": 0, "max": 0})
            current["min"] += item_bounds["min"]
            current["max"] += item_bounds["max"]
    if sum(amounts.values()) > total:
        amounts = apportion(amounts, total)
    return amounts, bounds


class SongsAndTypesFilter(FilterKind):
    definition_id = "songs-and-types"
    title = "Songs & Types"

    def default_settings(self, context: ResolutionContext) -> dict[str, Any]:
        return {
            "mode": "count",
            "songCount": {"value": 20, "random": False, "min": 15, "max": 25},
            "songTypes": {
                "openings": _bucket(True, 10, 50, True, (40, 60), (0, 20)),
                "endings": _bucket(True, 10, 50, True, (40, 60), (0, 20)),
                "inserts": _bucket(False, 0, 0, False, (0, 10), (0, 5)),
            },
            "songSelection": {
                "random": _bucket(True, 0, 0, False, (25, 75), (5, 15)),
                "watched": _bucket(True, 20, 50, False, (25, 75), (5, 15)),
            },
        }

    def type_entries(self, settings: Mapping[str, Any], mode: str) -> list[AllocationEntry]:
        song_types = settings.get("songTypes") or {}
        return [
            bucket_entry(t, song_types[t], mode, self.definition_id, value_keys=_VALUE_KEYS)
            for t in SONG_TYPES
            if (song_types.get(t) or {}).get("enabled")
        ]

    def selection_entries(self, settings: Mapping[str, Any], mode: str) -> list[AllocationEntry]:
        selection = require(settings, "songSelection", self.definition_id)
        entries = []
        for name in SELECTIONS:
            bucket = selection.get(name)
            if bucket is None:
                raise MissingFieldError(f"songSelection.{name}", self.definition_id)
            entries.append(bucket_entry(name, bucket, mode, self.definition_id, value_keys=_VALUE_KEYS))
        return entries

    def validate(self, settings: Mapping[str, Any], context: ResolutionContext) -> FilterIssues:
        issues = FilterIssues()
        mode = settings.get("mode") or "count"
        target = 100 if mode == "percentage" else context.inherited_song_count
        try:
            groups = {
                "song types": self.type_entries(settings, mode),
                "song selection": self.selection_entries(settings, mode),
            }
        except MissingFieldError as e:
            issues.error(f"{self.title}: {e}")
            return issues
        if not groups["song types"]:
            issues.error(f"{self.title}: at least one song type must be enabled")
        for name, entries in groups.items():
            for entry in entries:
                if entry.is_range and entry.min > entry.max:
                    issues.error(f"{self.title}: {entry.label} minimum exceeds maximum")
            problem = check_allocation(entries, target)
            if problem:
                issues.error(f"{self.title}: {name} {problem}")
        return issues

    def display(self, settings: Mapping[str, Any]) -> str:
        mode = settings.get("mode") or "count"
        suffix = "%" if mode == "percentage" else ""
        parts = []
        try:
            entries = self.type_entries(settings, mode)
        except MissingFieldError:
            return f"{self.title} (incomplete)"
        for entry in entries:
            lo, hi = entry.bounds
            amount = f"{lo:g}" if lo == hi else f"{lo:g}-{hi:g}"
            parts.append(f"{entry.label} {amount}{suffix}")
        return f"{self.title} ({', '.join(parts) or 'no types'})"

    def extract(self, settings: Mapping[str, Any]) -> dict[str, Any]:
        mode = settings.get("mode") or "count"
        return {
            "mode": mode,
            "songTypes": {e.label: entry_range(e) for e in self.type_entries(settings, mode)},
            "songSelection": {
                e.label: entry_range(e) for e in self.selection_entries(settings, mode)
            },
        }

    def resolve(
        self,
        settings: Mapping[str, Any],
        context: ResolutionContext,
        rng: random.Random,
    ) -> dict[str, Any]:
        mode = require(settings, "mode", self.definition_id)
        require(settings, "songTypes", self.definition_id)
        total = context.inherited_song_count
        percentage_mode = mode == "percentage"
        target = 100 if percentage_mode else total

        type_entries = self.type_entries(settings, mode)
        selection_entries = self.selection_entries(settings, mode)
        types = allocate_to_total(type_entries, target, rng)
        selection = allocate_to_total(selection_entries, target, rng)
        type_ranges = {e.label: entry_range(e) for e in type_entries}
        selection_ranges = {e.label: entry_range(e) for e in selection_entries}

        if percentage_mode:
            types = apportion(types, total) if types else {}
            selection = apportion(selection, total)
            type_ranges = {k: scale_range(b, total) for k, b in type_ranges.items()}
            selection_ranges = {k: scale_range(b, total) for k, b in selection_ranges.items()}

        return {
            "mode": "count",
            "total": total,
            "types": types,
            "typesRanges": type_ranges,
            "songSelection": selection,
            "songSelectionRanges": selection_ranges,
        }

    def merge(
        self, values: Sequence[dict[str, Any]], context: ResolutionContext
    ) -> dict[str, Any]:
        total = context.inherited_song_count
        types, type_ranges = _sum_group(values, "types", "typesRanges", total)
        selection, selection_ranges = _sum_group(
            values, "songSelection", "songSelectionRanges", total
        )
        return {
            "mode": "count",
            "total": total,
            "types": types,
            "typesRanges": type_ranges,
            "songSelection": selection,
            "songSelectionRanges": selection_ranges,
        }
