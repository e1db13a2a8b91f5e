"""Vintage filter: song shares per anime release period (season and year)."""

from __future__ import annotations

import random
from collections.abc import Mapping, Sequence
from typing import Any

from quizgraph.allocation import AllocationEntry, allocate_to_total, apportion
from quizgraph.errors import MissingFieldError
from quizgraph.filters.base import (
    SEASONS,
    FilterIssues,
    FilterKind,
    ResolutionContext,
    first_present,
    require,
    scale_range,
)

MIN_YEAR = 1900
MAX_YEAR = 2100


def period_label(period: Mapping[str, Any]) -> str:
    return f"{period.get('season')} {period.get('year')}"


def period_key(period: Mapping[str, Any]) -> tuple[int, int]:
    """Sortable (year, season index) key of a period."""
    return int(period["year"]), SEASONS.index(period["season"])


def range_label(authored: Mapping[str, Any]) -> str:
    return f"{period_label(authored['from'])} - {period_label(authored['to'])}"


class VintageFilter(FilterKind):
    definition_id = "vintage"
    title = "Vintage"

    def default_settings(self, context: ResolutionContext) -> dict[str, Any]:
        start, end = context.full_vintage_span()
        return {
            "ranges": [
                {
                    "from": start,
                    "to": end,
                    "percentage": 100,
                    "count": 20,
                    "useAdvanced": False,
                }
            ],
            "mode": "percentage",
        }

    def _check_period(self, period: Any, where: str, issues: FilterIssues) -> bool:
        if not isinstance(period, Mapping):
            issues.error(f"{self.title}: {where} period is missing")
            return False
        ok = True
        year = period.get("year")
        if not isinstance(year, int) or not MIN_YEAR <= year <= MAX_YEAR:
            issues.error(f"{self.title}: {where} year must be between {MIN_YEAR}-{MAX_YEAR}")
            ok = False
        if period.get("season") not in SEASONS:
            issues.error(f"{self.title}: {where} season must be one of {', '.join(SEASONS)}")
            ok = False
        return ok

    def validate(self, settings: Mapping[str, Any], context: ResolutionContext) -> FilterIssues:
        issues = FilterIssues()
        ranges = settings.get("ranges") or []
        mode = settings.get("mode") or "percentage"
        ceiling = 100 if mode == "percentage" else context.inherited_song_count
        advanced_total = 0.0
        has_random = False

        for idx, authored in enumerate(ranges, start=1):
            start_ok = self._check_period(authored.get("from"), f"range {idx} 'from'", issues)
            end_ok = self._check_period(authored.get("to"), f"range {idx} 'to'", issues)
            if start_ok and end_ok and period_key(authored["from"]) > period_key(authored["to"]):
                issues.error(f"{self.title}: range {idx} 'from' is after 'to'")
            if authored.get("useAdvanced"):
                key = "percentage" if mode == "percentage" else "count"
                value = first_present(authored, key, "value")
                if value is None:
                    issues.error(f"{self.title}: range {idx} has no {key}")
                    continue
                if float(value) < 0:
                    issues.error(f"{self.title}: range {idx} {key} must be non-negative")
                advanced_total += float(value)
            else:
                has_random = True

        if advanced_total > ceiling:
            issues.error(
                f"{self.title}: allocated ranges total {advanced_total:g}, exceeding {ceiling}"
            )
        elif ranges and not has_random and advanced_total < ceiling:
            issues.warn(
                f"{self.title}: ranges cover {advanced_total:g} of {ceiling}; "
                "the rest spans every season"
            )
        return issues

    def display(self, settings: Mapping[str, Any]) -> str:
        ranges = settings.get("ranges") or []
        if not ranges:
            return f"{self.title}: all"
        mode = settings.get("mode") or "percentage"
        parts = []
        for authored in ranges:
            text = range_label(authored)
            if authored.get("useAdvanced"):
                if mode == "percentage":
                    text += f" ({authored.get('percentage')}%)"
                else:
                    text += f" ({authored.get('count')})"
            parts.append(text)
        return f"{self.title}: {', '.join(parts)}"

    def extract(self, settings: Mapping[str, Any]) -> dict[str, Any]:
        mode = settings.get("mode") or "percentage"
        key = "percentage" if mode == "percentage" else "count"
        return {
            "mode": mode,
            "ranges": [
                {
                    "from": r.get("from"),
                    "to": r.get("to"),
                    "value": r.get(key) if r.get("useAdvanced") else None,
                }
                for r in settings.get("ranges") or []
            ],
        }

    def resolve(
        self,
        settings: Mapping[str, Any],
        context: ResolutionContext,
        rng: random.Random,
    ) -> dict[str, Any]:
        authored_ranges = settings.get("ranges") or []
        if not authored_ranges:
            return {"mode": "all", "ranges": []}

        mode = require(settings, "mode", self.definition_id)
        song_count = context.inherited_song_count
        ceiling = 100 if mode == "percentage" else song_count

        entries: list[AllocationEntry] = []
        advanced_total = 0.0
        for idx, authored in enumerate(authored_ranges):
            for end in ("from", "to"):
                period = authored.get(end)
                if not period or not period.get("season") or not period.get("year"):
                    raise MissingFieldError(f"range.{end}", self.definition_id)
            label = str(idx)
            if authored.get("useAdvanced"):
                key = "percentage" if mode == "percentage" else "count"
                value = first_present(authored, key, "value")
                if value is None:
                    raise MissingFieldError(f"range.{key}", self.definition_id, f"mode: {mode}")
                advanced_total += float(value)
                entries.append(AllocationEntry.static(label, float(value)))
            else:
                entries.append(AllocationEntry.ranged(label, 0, ceiling - advanced_total))

        allocation = allocate_to_total(entries, ceiling, rng)
        ranges: list[dict[str, Any]] = []
        for authored, entry in zip(authored_ranges, entries):
            lo, hi = entry.bounds
            ranges.append(
                {
                    "from": dict(authored["from"]),
                    "to": dict(authored["to"]),
                    "value": allocation[entry.label],
                    "valueRange": {"min": lo, "max": hi},
                    "random": entry.is_range,
                }
            )

        remaining = ceiling - sum(r["value"] for r in ranges)
        if remaining > 0:
            ranges.append(self._implicit_range(context, remaining))

        if mode == "percentage":
            counts = apportion({str(i): r["value"] for i, r in enumerate(ranges)}, song_count)
            for i, r in enumerate(ranges):
                r["value"] = counts[str(i)]
                r["valueRange"] = scale_range(r["valueRange"], song_count)

        return {"mode": "count", "total": song_count, "ranges": ranges}

    def _implicit_range(self, context: ResolutionContext, value: int) -> dict[str, Any]:
        start, end = context.full_vintage_span()
        return {
            "from": start,
            "to": end,
            "value": value,
            "valueRange": {"min": value, "max": value},
            "random": True,
            "implicit": True,
        }

    def merge(
        self, values: Sequence[dict[str, Any]], context: ResolutionContext
    ) -> dict[str, Any]:
        ceiling = context.inherited_song_count
        ranges = [dict(r) for v in values for r in v.get("ranges", [])]
        if not ranges:
            return {"mode": "all", "ranges": []}

        fixed = [r for r in ranges if not r.get("random")]
        flexible: list[dict[str, Any]] = []
        for r in ranges:
            if not r.get("random"):
                continue
            twin = next(
                (f for f in flexible if f["from"] == r["from"] and f["to"] == r["to"]),
                None,
            )
            if twin is None:
                flexible.append(r)
            else:
                twin["value"] += r["value"]

        fixed_total = sum(r["value"] for r in fixed)
        if fixed_total > ceiling:
            rescaled = apportion({str(i): r["value"] for i, r in enumerate(fixed)}, ceiling)
            for i, r in enumerate(fixed):
                r["value"] = rescaled[str(i)]
            flexible = []
            fixed_total = ceiling

        remaining = ceiling - fixed_total
        if flexible:
            shares = apportion({str(i): r["value"] for i, r in enumerate(flexible)}, remaining)
            for i, r in enumerate(flexible):
                r["value"] = shares[str(i)]
                r["valueRange"] = {"min": r["value"], "max": r["value"]}
        elif remaining > 0:
            flexible.append(self._implicit_range(context, remaining))

        merged = [r for r in fixed + flexible if r["value"] > 0 or not r.get("random")]
        return {"mode": "count", "total": ceiling, "ranges": merged}
