"""Anime type filter (TV, movie, OVA, ONA, special)."""

from __future__ import annotations

import copy
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
)

ANIME_TYPES = ("tv", "movie", "ova", "ona", "special")
EXTRA_FLAGS = ("rebroadcast", "dubbed")


def _advanced_defaults() -> dict[str, Any]:
    return {
        "enabled": True,
        "random": False,
        "min": 10,
        "max": 40,
        "percentageValue": 20,
        "percentageMin": 10,
        "percentageMax": 40,
        "countValue": 4,
        "countMin": 2,
        "countMax": 10,
    }


class AnimeTypeFilter(FilterKind):
    definition_id = "anime-type"
    title = "Anime Type"

    def default_settings(self, context: ResolutionContext) -> dict[str, Any]:
        settings: dict[str, Any] = {t: True for t in ANIME_TYPES}
        settings.update(
            {
                "rebroadcast": False,
                "dubbed": False,
                "viewMode": "simple",
                "mode": "count",
                "advanced": {t: _advanced_defaults() for t in ANIME_TYPES},
            }
        )
        return settings

    def advanced_entries(self, settings: Mapping[str, Any], mode: str) -> list[AllocationEntry]:
        advanced = settings.get("advanced") or {}
        return [
            bucket_entry(t, advanced[t], mode, self.definition_id)
            for t in ANIME_TYPES
            if (advanced.get(t) or {}).get("enabled")
        ]

    def validate(self, settings: Mapping[str, Any], context: ResolutionContext) -> FilterIssues:
        issues = FilterIssues()
        if settings.get("viewMode") != "advanced":
            if not any(settings.get(t) for t in ANIME_TYPES):
                issues.error(f"{self.title}: at least one anime type must be enabled")
            return issues
        mode = settings.get("mode") or "count"
        target = 100 if mode == "percentage" else context.inherited_song_count
        try:
            entries = self.advanced_entries(settings, mode)
        except MissingFieldError as e:
            issues.error(f"{self.title}: {e}")
            return issues
        if not entries:
            issues.error(f"{self.title}: at least one anime type must be enabled")
            return issues
        problem = check_allocation(entries, target)
        if problem:
            issues.error(f"{self.title}: {problem}")
        return issues

    def display(self, settings: Mapping[str, Any]) -> str:
        if settings.get("viewMode") == "advanced":
            mode = settings.get("mode") or "count"
            parts = []
            for entry in self.advanced_entries(settings, mode):
                lo, hi = entry.bounds
                parts.append(f"{entry.label} {lo:g}" if lo == hi else f"{entry.label} {lo:g}-{hi:g}")
            return f"{self.title} ({', '.join(parts)})"
        enabled = [t.upper() for t in ANIME_TYPES if settings.get(t)]
        extras = [flag for flag in EXTRA_FLAGS if settings.get(flag)]
        text = f"{self.title}: {', '.join(enabled) or 'none'}"
        if extras:
            text += f" (+{', '.join(extras)})"
        return text

    def extract(self, settings: Mapping[str, Any]) -> dict[str, Any]:
        if settings.get("viewMode") == "advanced":
            mode = settings.get("mode") or "count"
            return {
                "viewMode": "advanced",
                "mode": mode,
                "types": {e.label: entry_range(e) for e in self.advanced_entries(settings, mode)},
            }
        return {
            "viewMode": "simple",
            "enabled": [t for t in ANIME_TYPES if settings.get(t)],
            **{flag: bool(settings.get(flag)) for flag in EXTRA_FLAGS},
        }

    def resolve(
        self,
        settings: Mapping[str, Any],
        context: ResolutionContext,
        rng: random.Random,
    ) -> dict[str, Any]:
        flags = {flag: settings.get(flag) is not False for flag in EXTRA_FLAGS}
        if settings.get("viewMode") != "advanced":
            return {
                "mode": "basic",
                "enabled": [t for t in ANIME_TYPES if settings.get(t) is True],
                **flags,
            }

        mode = settings.get("mode") or "count"
        target = 100 if mode == "percentage" else context.inherited_song_count
        entries = self.advanced_entries(settings, mode)
        allocation = allocate_to_total(entries, target, rng)
        return {
            "mode": "advanced",
            "valueMode": mode,
            "types": allocation,
            "typesRanges": {e.label: entry_range(e) for e in entries},
            "total": target,
            **flags,
        }

    def merge(
        self, values: Sequence[dict[str, Any]], context: ResolutionContext
    ) -> dict[str, Any]:
        modes = {v["mode"] for v in values}
        flags = {flag: any(v.get(flag, False) for v in values) for flag in EXTRA_FLAGS}

        basics = [v for v in values if v["mode"] == "basic"]
        enabled = {t for v in basics for t in v.get("enabled", [])}

        if len(modes) > 1:
            merged = copy.deepcopy(values[0])
            merged.update(flags)
            if merged["mode"] == "basic":
                merged["enabled"] = [t for t in ANIME_TYPES if t in enabled]
            return merged

        if values[0]["mode"] == "basic":
            return {
                "mode": "basic",
                "enabled": [t for t in ANIME_TYPES if t in enabled],
                **flags,
            }

        value_mode = values[0].get("valueMode", "count")
        target = 100 if value_mode == "percentage" else context.inherited_song_count
        types: dict[str, int] = {}
        ranges: dict[str, dict[str, float]] = {}
        for v in values:
            for t, amount in v.get("types", {}).items():
                types[t] = types.get(t, 0) + amount
            for t, bounds in v.get("typesRanges", {}).items():
                current = ranges.setdefault(t, {"min": 0, "max": 0})
                current["min"] += bounds["min"]
                current["max"] += bounds["max"]
        if sum(types.values()) > target:
            types = apportion(types, target)
        return {
            "mode": "advanced",
            "valueMode": value_mode,
            "types": types,
            "typesRanges": ranges,
            "total": sum(types.values()),
            **flags,
        }
