"""Common interface and helpers for filter kinds.

Every filter definition id (genres, vintage, song-difficulty, ...) is handled
by one `FilterKind`. A kind knows how to validate, display and export the
settings authored on a filter node, how to resolve them into a concrete
value for one pass, and how to merge several resolved values of the same
kind into one.
"""

from __future__ import annotations

import copy
import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from quizgraph.allocation import AllocationEntry, percent_to_count
from quizgraph.errors import MissingFieldError

SEASONS = ("Winter", "Spring", "Summer", "Fall")
EARLIEST_SEASON = "Winter"
EARLIEST_YEAR = 1944


def season_of(day: date) -> str:
    """Anime season of a calendar date (Jan-Mar Winter ... Oct-Dec Fall)."""
    return SEASONS[(day.month - 1) // 3]


@dataclass
class ResolutionContext:
    """Values shared by every filter resolved in one pass.

    Attributes:
        inherited_song_count: Total song count percentages are converted
            against.
        today: Date used for the open end of the implicit vintage range.
    """

    inherited_song_count: int = 20
    today: date = field(default_factory=date.today)

    @property
    def current_season(self) -> str:
        return season_of(self.today)

    @property
    def current_year(self) -> int:
        return self.today.year

    def full_vintage_span(self) -> tuple[dict[str, Any], dict[str, Any]]:
        """(from, to) covering Winter 1944 up to the current season."""
        return (
            {"season": EARLIEST_SEASON, "year": EARLIEST_YEAR},
            {"season": self.current_season, "year": self.current_year},
        )


@dataclass
class FilterIssues:
    """Problems found in one filter's authored settings."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def error(self, message: str) -> None:
        self.errors.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)


def require(settings: Mapping[str, Any], key: str, filter_id: str, detail: str = "") -> Any:
    """Return ``settings[key]`` or raise MissingFieldError when absent/None."""
    value = settings.get(key)
    if value is None or value == "":
        raise MissingFieldError(key, filter_id, detail)
    return value


def first_present(settings: Mapping[str, Any], *keys: str) -> Any:
    """Value of the first key present and not None."""
    for key in keys:
        value = settings.get(key)
        if value is not None:
            return value
    return None


def bucket_entry(
    label: str,
    bucket: Mapping[str, Any],
    mode: str,
    filter_id: str,
    random_flag: str = "random",
    value_keys: tuple[tuple[str, ...], tuple[str, ...]] = (
        ("percentageValue", "percentage", "value"),
        ("countValue", "count", "value"),
    ),
    range_keys: tuple[tuple[str, str, str, str], tuple[str, str, str, str]] = (
        ("percentageMin", "min", "percentageMax", "max"),
        ("countMin", "min", "countMax", "max"),
    ),
) -> AllocationEntry:
    """Build an allocation entry from an authored bucket.

    Buckets store separate percentage and count fields; `mode` picks which
    family is read. A truthy `random_flag` field makes the entry a range.

    Raises:
        MissingFieldError: If the fields required by the mode are missing.
    """
    family = 0 if mode == "percentage" else 1
    if bucket.get(random_flag):
        min_key, min_alt, max_key, max_alt = range_keys[family]
        lo = first_present(bucket, min_key, min_alt)
        hi = first_present(bucket, max_key, max_alt)
        if lo is None or hi is None:
            raise MissingFieldError(f"{label}.{min_key}/{max_key}", filter_id, f"mode: {mode}")
        return AllocationEntry.ranged(label, float(lo), float(hi))
    value = first_present(bucket, *value_keys[family])
    if value is None:
        raise MissingFieldError(f"{label}.{value_keys[family][0]}", filter_id, f"mode: {mode}")
    return AllocationEntry.static(label, float(value))


def entry_range(entry: AllocationEntry) -> dict[str, float]:
    lo, hi = entry.bounds
    return {"min": lo, "max": hi}


def scale_range(bounds: Mapping[str, float], total: int) -> dict[str, int]:
    """Convert a percentage {min, max} into song counts."""
    return {
        "min": percent_to_count(bounds["min"], total),
        "max": percent_to_count(bounds["max"], total),
    }


def or_merge(values: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
    """Combine nested dicts: booleans OR, numbers add, other leaves keep the first.

    Keys keep first-seen order.
    """
    result: dict[str, Any] = {}
    for value in values:
        for key, leaf in value.items():
            if key not in result:
                result[key] = copy.deepcopy(leaf)
                continue
            current = result[key]
            if isinstance(current, dict) and isinstance(leaf, Mapping):
                result[key] = or_merge([current, leaf])
            elif isinstance(current, bool) and isinstance(leaf, bool):
                result[key] = current or leaf
            elif (
                isinstance(current, (int, float))
                and isinstance(leaf, (int, float))
                and not isinstance(current, bool)
                and not isinstance(leaf, bool)
            ):
                result[key] = current + leaf
    return result


class FilterKind:
    """Base class for one filter definition.

    Subclasses set `definition_id` and `title` and implement `resolve` and
    `merge`. The remaining hooks have usable defaults.
    """

    definition_id: str = ""
    title: str = ""

    def default_settings(self, context: ResolutionContext) -> dict[str, Any]:
        """Settings used when the filter type has no surviving node."""
        return {}

    def validate(self, settings: Mapping[str, Any], context: ResolutionContext) -> FilterIssues:
        """Check authored settings; never raises."""
        return FilterIssues()

    def display(self, settings: Mapping[str, Any]) -> str:
        """One-line human summary of authored settings."""
        return self.title or self.definition_id

    def extract(self, settings: Mapping[str, Any]) -> dict[str, Any]:
        """Compact export form of authored settings."""
        return copy.deepcopy(dict(settings))

    def resolve(
        self,
        settings: Mapping[str, Any],
        context: ResolutionContext,
        rng: random.Random,
    ) -> dict[str, Any]:
        """Turn one node's authored settings into a concrete, merge-ready value."""
        raise NotImplementedError

    def merge(
        self, values: Sequence[dict[str, Any]], context: ResolutionContext
    ) -> dict[str, Any]:
        """Combine resolved values of several nodes of this kind."""
        raise NotImplementedError
