"""Song difficulty filter.

Basic mode authors easy/medium/hard shares; they are always resolved into
advanced difficulty ranges so that merged filters only deal with ranges.
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
    percent_to_count,
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

LEVELS = ("easy", "medium", "hard")

# Difficulty rating span covered by each basic level
LEVEL_RANGES = {
    "easy": (60, 100),
    "medium": (25, 60),
    "hard": (0, 25),
}

_VALUE_KEYS = (("percentageValue", "percentage"), ("countValue", "count"))
_RANGE_KEYS = (
    ("minPercentage", "min", "maxPercentage", "max"),
    ("minCount", "min", "maxCount", "max"),
)


def _level_defaults(count: int, percentage: int) -> dict[str, Any]:
    return {
        "enabled": True,
        "countValue": count,
        "percentageValue": percentage,
        "randomRange": True,
        "minCount": 0,
        "maxCount": 20,
        "minPercentage": 25,
        "maxPercentage": 40,
    }


class SongDifficultyFilter(FilterKind):
    definition_id = "song-difficulty"
    title = "Song Difficulty"

    def default_settings(self, context: ResolutionContext) -> dict[str, Any]:
        return {
            "viewMode": "basic",
            "mode": "count",
            "easy": _level_defaults(5, 25),
            "medium": _level_defaults(10, 50),
            "hard": _level_defaults(5, 25),
            "ranges": [],
        }

    def level_entries(self, settings: Mapping[str, Any], mode: str) -> list[AllocationEntry]:
        """Allocation entries for the enabled basic levels."""
        return [
            bucket_entry(
                level,
                settings[level],
                mode,
                self.definition_id,
                random_flag="randomRange",
                value_keys=_VALUE_KEYS,
                range_keys=_RANGE_KEYS,
            )
            for level in LEVELS
            if (settings.get(level) or {}).get("enabled")
        ]

    @staticmethod
    def _uses_ranges(settings: Mapping[str, Any]) -> bool:
        return settings.get("viewMode") == "advanced" and bool(settings.get("ranges"))

    def validate(self, settings: Mapping[str, Any], context: ResolutionContext) -> FilterIssues:
        issues = FilterIssues()
        mode = settings.get("mode") or "count"
        target = 100 if mode == "percentage" else context.inherited_song_count

        if self._uses_ranges(settings):
            total = 0.0
            for idx, authored in enumerate(settings.get("ranges") or []):
                lo, hi = authored.get("from"), authored.get("to")
                if lo is None or hi is None:
                    issues.error(f"{self.title}: range {idx + 1} needs from and to")
                    continue
                if not 0 <= lo <= 100 or not 0 <= hi <= 100:
                    issues.error(f"{self.title}: range {idx + 1} must lie within 0-100")
                if lo >= hi:
                    issues.error(f"{self.title}: range {idx + 1} 'from' must be below 'to'")
                total += float(authored.get("songCount") or 0)
            if total != target:
                issues.warn(
                    f"{self.title}: ranges total {total:g}, expected {target}; "
                    "they will be rescaled"
                )
            return issues

        try:
            entries = self.level_entries(settings, mode)
        except MissingFieldError as e:
            issues.error(f"{self.title}: {e}")
            return issues
        for entry in entries:
            if entry.is_range and entry.min > entry.max:
                issues.error(f"{self.title}: {entry.label} minimum exceeds maximum")
        problem = check_allocation(entries, target)
        if problem:
            issues.error(f"{self.title}: {problem}")
        return issues

    def display(self, settings: Mapping[str, Any]) -> str:
        if self._uses_ranges(settings):
            parts = [
                f"{r.get('from')}-{r.get('to')}: {r.get('songCount')}"
                for r in settings.get("ranges") or []
            ]
            return f"{self.title} ({', '.join(parts)})"
        mode = settings.get("mode") or "count"
        suffix = "%" if mode == "percentage" else ""
        parts = []
        for level in LEVELS:
            cfg = settings.get(level) or {}
            if not cfg.get("enabled"):
                continue
            try:
                entry = self.level_entries({level: cfg}, mode)[0]
            except MissingFieldError:
                parts.append(f"{level} ?")
                continue
            lo, hi = entry.bounds
            amount = f"{lo:g}" if lo == hi else f"{lo:g}-{hi:g}"
            parts.append(f"{level} {amount}{suffix}")
        return f"{self.title} ({', '.join(parts) or 'none'})"

    def extract(self, settings: Mapping[str, Any]) -> dict[str, Any]:
        mode = settings.get("mode") or "count"
        if self._uses_ranges(settings):
            return {"viewMode": "advanced", "mode": mode, "ranges": list(settings["ranges"])}
        return {
            "viewMode": "basic",
            "mode": mode,
            "levels": {
                e.label: entry_range(e) for e in self.level_entries(settings, mode)
            },
        }

    def resolve(
        self,
        settings: Mapping[str, Any],
        context: ResolutionContext,
        rng: random.Random,
    ) -> dict[str, Any]:
        total = context.inherited_song_count
        if self._uses_ranges(settings):
            mode = require(settings, "mode", self.definition_id, "advanced view")
            ranges = []
            for authored in settings["ranges"]:
                for key in ("from", "to", "songCount"):
                    if authored.get(key) is None:
                        raise MissingFieldError(f"range.{key}", self.definition_id)
                count = authored["songCount"]
                bounds = {"min": count, "max": count}
                if mode == "percentage":
                    count = percent_to_count(count, total)
                    bounds = scale_range(bounds, total)
                ranges.append(
                    {
                        "from": authored["from"],
                        "to": authored["to"],
                        "songCount": count,
                        "songCountRange": bounds,
                    }
                )
            return {"mode": "advanced", "viewMode": "advanced", "ranges": ranges, "total": total}

        mode = require(settings, "mode", self.definition_id)
        entries = self.level_entries(settings, mode)
        if not entries:
            return {"mode": mode, "viewMode": "advanced", "ranges": [], "total": total}

        percentage_mode = mode == "percentage"
        allocation = allocate_to_total(entries, 100 if percentage_mode else total, rng)
        if percentage_mode:
            counts = apportion(allocation, total)
        else:
            counts = allocation

        ranges = []
        for entry in entries:
            bounds = entry_range(entry)
            if percentage_mode:
                bounds = scale_range(bounds, total)
            rating_from, rating_to = LEVEL_RANGES[entry.label]
            ranges.append(
                {
                    "from": rating_from,
                    "to": rating_to,
                    "songCount": counts[entry.label],
                    "songCountRange": bounds,
                }
            )
        return {"mode": "advanced", "viewMode": "advanced", "ranges": ranges, "total": total}

    def merge(
        self, values: Sequence[dict[str, Any]], context: ResolutionContext
    ) -> dict[str, Any]:
        total = context.inherited_song_count
        ranges = [dict(r) for v in values for r in v.get("ranges", [])]
        counts = {str(i): r["songCount"] for i, r in enumerate(ranges)}
        if ranges and sum(counts.values()) != total:
            rescaled = apportion(counts, total)
            for i, r in enumerate(ranges):
                r["songCount"] = rescaled[str(i)]
        return {"mode": "advanced", "viewMode": "advanced", "ranges": ranges, "total": total}
