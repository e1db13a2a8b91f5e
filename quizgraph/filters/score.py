"""Player score and anime score filters."""

from __future__ import annotations

import math
import random
from collections.abc import Mapping, Sequence
from typing import Any

from quizgraph.allocation import apportion
from quizgraph.filters.base import FilterIssues, FilterKind, ResolutionContext, require


def _number(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_int(value: float) -> int | float:
    return int(value) if float(value).is_integer() else value


def uncovered_scores(intervals: Sequence[tuple[float, float]]) -> list[int]:
    """Integer scores lying between the given intervals.

    Intervals are sorted by their lower bound. Any integer strictly above
    everything covered so far and below the next interval's minimum is a gap:
    [2, 5] and [8, 10] leave 6 and 7 uncovered.
    """
    ordered = sorted(intervals)
    gaps: list[int] = []
    if not ordered:
        return gaps
    covered = ordered[0][1]
    for lo, hi in ordered[1:]:
        if lo > covered + 1:
            gaps.extend(range(math.floor(covered) + 1, math.ceil(lo)))
        covered = max(covered, hi)
    return gaps


class ScoreFilter(FilterKind):
    """Score range filter shared by player-score and anime-score."""

    def __init__(self, definition_id: str, title: str, default_min: int) -> None:
        self.definition_id = definition_id
        self.title = title
        self.default_min = default_min

    def default_settings(self, context: ResolutionContext) -> dict[str, Any]:
        return {
            "min": self.default_min,
            "max": 10,
            "mode": "range",
            "perScoreMode": "count",
            "percentages": {},
            "disallowed": [],
        }

    def validate(self, settings: Mapping[str, Any], context: ResolutionContext) -> FilterIssues:
        issues = FilterIssues()
        lo = _number(settings.get("min"))
        hi = _number(settings.get("max"))
        if lo is None or hi is None:
            issues.error(f"{self.title}: score range must have numeric bounds")
            return issues
        if lo < 0 or hi < 0:
            issues.error(f"{self.title}: score values must be non-negative")
        if lo > hi:
            issues.error(f"{self.title}: minimum score ({lo:g}) exceeds maximum ({hi:g})")
        if hi > 10:
            issues.warn(f"{self.title}: maximum score exceeds typical range of 10")

        per_score = settings.get("percentages") or {}
        per_score_mode = settings.get("perScoreMode") or "count"
        total = 0.0
        for score, amount in per_score.items():
            value = _number(amount)
            if value is None:
                continue
            total += value
            if per_score_mode == "percentage" and not 0 <= value <= 100:
                issues.error(f"{self.title}: score {score} percentage must be between 0-100")
            if per_score_mode == "count" and value < 0:
                issues.error(f"{self.title}: score {score} count must be non-negative")
        if per_score_mode == "percentage" and total > 100:
            issues.error(f"{self.title}: total score percentages ({total:g}%) exceed 100%")

        for score in settings.get("disallowed") or []:
            value = _number(score)
            if value is None:
                issues.error(f"{self.title}: invalid disallowed score {score!r}")
            elif value < lo or value > hi:
                issues.warn(
                    f"{self.title}: disallowed score {score} is outside range {lo:g}-{hi:g}"
                )
        return issues

    def display(self, settings: Mapping[str, Any]) -> str:
        text = f"{self.title}: {settings.get('min')}-{settings.get('max')}"
        disallowed = settings.get("disallowed") or []
        if disallowed:
            text += f" (excluding {', '.join(str(s) for s in disallowed)})"
        return text

    def extract(self, settings: Mapping[str, Any]) -> dict[str, Any]:
        result = dict(settings)
        result["mode"] = require(settings, "mode", self.definition_id)
        if settings.get("percentages"):
            result["perScoreMode"] = require(settings, "perScoreMode", self.definition_id)
        return result

    def resolve(
        self,
        settings: Mapping[str, Any],
        context: ResolutionContext,
        rng: random.Random,
    ) -> dict[str, Any]:
        mode = require(settings, "mode", self.definition_id)
        lo = require(settings, "min", self.definition_id)
        hi = require(settings, "max", self.definition_id)
        resolved: dict[str, Any] = {
            "mode": mode,
            "min": _as_int(float(lo)),
            "max": _as_int(float(hi)),
            "disallowed": sorted(int(s) for s in settings.get("disallowed") or []),
        }
        per_score = settings.get("percentages") or {}
        if per_score:
            resolved["perScoreMode"] = require(
                settings, "perScoreMode", self.definition_id, "per-score values set"
            )
            resolved["percentages"] = {str(k): v for k, v in per_score.items()}
        return resolved

    def merge(
        self, values: Sequence[dict[str, Any]], context: ResolutionContext
    ) -> dict[str, Any]:
        intervals = [(float(v["min"]), float(v["max"])) for v in values]
        disallowed = set(uncovered_scores(intervals))
        for v in values:
            disallowed.update(v.get("disallowed", []))

        merged: dict[str, Any] = {
            "mode": values[0]["mode"],
            "min": _as_int(min(lo for lo, _ in intervals)),
            "max": _as_int(max(hi for _, hi in intervals)),
            "disallowed": sorted(disallowed),
        }

        with_scores = [v for v in values if v.get("percentages")]
        if with_scores:
            per_score_mode = with_scores[0]["perScoreMode"]
            summed: dict[str, float] = {}
            for v in with_scores:
                for score, amount in v["percentages"].items():
                    summed[score] = summed.get(score, 0) + float(amount)
            total = sum(summed.values())
            if per_score_mode == "percentage" and total > 100:
                merged["percentages"] = apportion(summed, 100)
            else:
                merged["percentages"] = {k: _as_int(v) for k, v in summed.items()}
            merged["perScoreMode"] = per_score_mode
        return merged


def player_score_filter() -> ScoreFilter:
    return ScoreFilter("player-score", "Player Score", default_min=1)


def anime_score_filter() -> ScoreFilter:
    return ScoreFilter("anime-score", "Anime Score", default_min=2)
