"""Song categories filter: standard/instrumental/chanting/character per song type."""

from __future__ import annotations

import copy
import random
from collections.abc import Mapping, Sequence
from typing import Any

from quizgraph.allocation import AllocationEntry, allocate_to_total, check_allocation, clamp
from quizgraph.errors import MissingFieldError
from quizgraph.filters.base import (
    FilterIssues,
    FilterKind,
    ResolutionContext,
    bucket_entry,
    entry_range,
    or_merge,
    require,
)

SONG_TYPES = ("openings", "endings", "inserts")
CATEGORIES = ("standard", "instrumental", "chanting", "character")


def _cell_defaults(percentage: int, count: int) -> dict[str, Any]:
    return {
        "enabled": True,
        "random": False,
        "min": 5,
        "max": 20,
        "percentageValue": percentage,
        "percentageMin": 5,
        "percentageMax": 20,
        "countValue": count,
        "countMin": 1,
        "countMax": 4,
    }


def _nest(flat: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    """Turn {"openings.standard": v} into {"openings": {"standard": v}}."""
    nested: dict[str, dict[str, Any]] = {}
    for label, value in flat.items():
        song_type, category = label.split(".", 1)
        nested.setdefault(song_type, {})[category] = value
    return nested


class SongCategoriesFilter(FilterKind):
    definition_id = "song-categories"
    title = "Song Categories"

    def default_settings(self, context: ResolutionContext) -> dict[str, Any]:
        settings: dict[str, Any] = {
            t: {c: True for c in CATEGORIES} for t in SONG_TYPES
        }
        settings["viewMode"] = "simple"
        settings["mode"] = "count"
        settings["advanced"] = {
            "openings": {c: _cell_defaults(9, 2) for c in CATEGORIES},
            "endings": {c: _cell_defaults(8, 2) for c in CATEGORIES},
            "inserts": {c: _cell_defaults(8, 1) for c in CATEGORIES},
        }
        return settings

    def cell_entries(self, settings: Mapping[str, Any], mode: str) -> list[AllocationEntry]:
        advanced = settings.get("advanced") or {}
        entries = []
        for song_type in SONG_TYPES:
            cells = advanced.get(song_type) or {}
            for category in CATEGORIES:
                cell = cells.get(category) or {}
                if cell.get("enabled"):
                    entries.append(
                        bucket_entry(f"{song_type}.{category}", cell, mode, self.definition_id)
                    )
        return entries

    def validate(self, settings: Mapping[str, Any], context: ResolutionContext) -> FilterIssues:
        issues = FilterIssues()
        if settings.get("viewMode") != "advanced":
            if not any(
                (settings.get(t) or {}).get(c) for t in SONG_TYPES for c in CATEGORIES
            ):
                issues.error(f"{self.title}: no category is enabled")
            return issues
        mode = settings.get("mode") or "count"
        target = 100 if mode == "percentage" else context.inherited_song_count
        try:
            entries = self.cell_entries(settings, mode)
        except MissingFieldError as e:
            issues.error(f"{self.title}: {e}")
            return issues
        problem = check_allocation(entries, target)
        if problem:
            issues.error(f"{self.title}: {problem}")
        return issues

    def display(self, settings: Mapping[str, Any]) -> str:
        parts = []
        for song_type in SONG_TYPES:
            flags = settings.get(song_type) or {}
            enabled = [c for c in CATEGORIES if flags.get(c)]
            if len(enabled) == len(CATEGORIES):
                parts.append(f"{song_type}: all")
            elif enabled:
                parts.append(f"{song_type}: {', '.join(enabled)}")
        return f"{self.title} ({'; '.join(parts) or 'none'})"

    def extract(self, settings: Mapping[str, Any]) -> dict[str, Any]:
        if settings.get("viewMode") == "advanced":
            mode = settings.get("mode") or "count"
            return {
                "viewMode": "advanced",
                "mode": mode,
                "categories": _nest(
                    {e.label: entry_range(e) for e in self.cell_entries(settings, mode)}
                ),
            }
        return {
            "viewMode": "simple",
            "enabled": {t: dict(settings.get(t) or {}) for t in SONG_TYPES},
        }

    def resolve(
        self,
        settings: Mapping[str, Any],
        context: ResolutionContext,
        rng: random.Random,
    ) -> dict[str, Any]:
        view_mode = require(settings, "viewMode", self.definition_id)
        mode = require(settings, "mode", self.definition_id)
        if view_mode != "advanced":
            return {
                "mode": "basic",
                "enabled": {
                    t: {c: bool((settings.get(t) or {}).get(c)) for c in CATEGORIES}
                    for t in SONG_TYPES
                },
            }

        target = 100 if mode == "percentage" else context.inherited_song_count
        entries = self.cell_entries(settings, mode)
        allocation = allocate_to_total(entries, target, rng)
        return {
            "mode": "advanced",
            "valueMode": mode,
            "categories": _nest(allocation),
            "categoriesRanges": _nest({e.label: entry_range(e) for e in entries}),
            "total": target,
        }

    def merge(
        self, values: Sequence[dict[str, Any]], context: ResolutionContext
    ) -> dict[str, Any]:
        if len({v["mode"] for v in values}) > 1:
            return copy.deepcopy(values[0])

        if values[0]["mode"] == "basic":
            return {"mode": "basic", "enabled": or_merge([v["enabled"] for v in values])}

        value_mode = values[0].get("valueMode", "count")
        categories = or_merge([v.get("categories", {}) for v in values])
        if value_mode == "percentage":
            categories = {
                t: {c: int(clamp(n, 0, 100)) for c, n in cells.items()}
                for t, cells in categories.items()
            }
        return {
            "mode": "advanced",
            "valueMode": value_mode,
            "categories": categories,
            "categoriesRanges": or_merge([v.get("categoriesRanges", {}) for v in values]),
            "total": sum(n for cells in categories.values() for n in cells.values()),
        }
