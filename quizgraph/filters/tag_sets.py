"""Genres and tags filters: included / excluded / optional key sets."""

from __future__ import annotations

import random
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from quizgraph.filters.base import FilterIssues, FilterKind, ResolutionContext, require

LIST_FIELDS = ("included", "excluded", "optional")


def _ordered_union(lists: Iterable[Iterable[str]]) -> list[str]:
    seen: dict[str, None] = {}
    for items in lists:
        for item in items:
            seen.setdefault(item, None)
    return list(seen)


def separate_conflicts(
    included: list[str], excluded: list[str], optional: list[str]
) -> tuple[list[str], list[str], list[str]]:
    """Move keys found in both included and excluded into optional."""
    conflicts = [k for k in included if k in set(excluded)]
    if not conflicts:
        return included, excluded, optional
    clash = set(conflicts)
    return (
        [k for k in included if k not in clash],
        [k for k in excluded if k not in clash],
        _ordered_union([optional, conflicts]),
    )


class TagSetFilter(FilterKind):
    """Shared implementation of the genres and tags filters."""

    def __init__(self, definition_id: str, title: str) -> None:
        self.definition_id = definition_id
        self.title = title

    def default_settings(self, context: ResolutionContext) -> dict[str, Any]:
        return {
            "viewMode": "basic",
            "mode": "count",
            "included": [],
            "excluded": [],
            "optional": [],
            "advanced": {},
        }

    def validate(self, settings: Mapping[str, Any], context: ResolutionContext) -> FilterIssues:
        issues = FilterIssues()
        included = set(settings.get("included") or [])
        overlap = [k for k in settings.get("excluded") or [] if k in included]
        if overlap:
            issues.error(
                f"{self.title}: {', '.join(overlap)} cannot be both included and excluded"
            )
        if settings.get("viewMode") == "advanced" and not settings.get("stateByKey"):
            issues.warn(f"{self.title}: advanced view has no per-key states")
        return issues

    def display(self, settings: Mapping[str, Any]) -> str:
        parts = []
        for name in LIST_FIELDS:
            items = settings.get(name) or []
            if items:
                parts.append(f"{name}: {', '.join(items)}")
        if not parts:
            return f"{self.title}: any"
        return f"{self.title} ({'; '.join(parts)})"

    def extract(self, settings: Mapping[str, Any]) -> dict[str, Any]:
        if (settings.get("viewMode") or "basic") == "basic":
            return {
                "mode": "basic",
                **{name: list(settings.get(name) or []) for name in LIST_FIELDS},
            }
        allocation_mode = settings.get("mode") or "percentage"
        advanced = settings.get("advanced") or {}
        value_key = "percentageValue" if allocation_mode == "percentage" else "countValue"
        items = [
            {
                "name": key,
                "status": state,
                "value": (advanced.get(key) or {}).get(value_key, 0),
            }
            for key, state in (settings.get("stateByKey") or {}).items()
        ]
        return {"mode": allocation_mode, "showRates": True, "items": items}

    def resolve(
        self,
        settings: Mapping[str, Any],
        context: ResolutionContext,
        rng: random.Random,
    ) -> dict[str, Any]:
        view_mode = require(settings, "viewMode", self.definition_id)
        mode = require(settings, "mode", self.definition_id)
        resolved: dict[str, Any] = {
            "viewMode": view_mode,
            "mode": mode,
            **{name: list(settings.get(name) or []) for name in LIST_FIELDS},
        }
        if view_mode == "basic":
            return resolved
        state_by_key = require(settings, "stateByKey", self.definition_id, "advanced view")
        resolved["stateByKey"] = dict(state_by_key)
        resolved["showRates"] = bool(settings.get("showRates", False))
        resolved["items"] = list(settings.get("items") or [])
        return resolved

    def merge(
        self, values: Sequence[dict[str, Any]], context: ResolutionContext
    ) -> dict[str, Any]:
        included, excluded, optional = separate_conflicts(
            *(_ordered_union(v.get(name, []) for v in values) for name in LIST_FIELDS)
        )
        merged: dict[str, Any] = {
            "viewMode": values[0].get("viewMode", "basic"),
            "mode": values[0].get("mode", "count"),
            "included": included,
            "excluded": excluded,
            "optional": optional,
        }
        states = [v["stateByKey"] for v in values if v.get("stateByKey")]
        if states:
            merged_states: dict[str, str] = {}
            for state_map in states:
                for key, state in state_map.items():
                    previous = merged_states.get(key)
                    if previous is None:
                        merged_states[key] = state
                    elif previous != state:
                        merged_states[key] = "optional"
            merged["stateByKey"] = merged_states
            merged["showRates"] = any(v.get("showRates") for v in values)
            items: list[Any] = []
            for v in values:
                items.extend(i for i in v.get("items", []) if i not in items)
            merged["items"] = items
        return merged


def genres_filter() -> TagSetFilter:
    return TagSetFilter("genres", "Genres")


def tags_filter() -> TagSetFilter:
    return TagSetFilter("tags", "Tags")
