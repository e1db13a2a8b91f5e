"""Song source nodes: plain song lists, batch user lists and live nodes."""

from __future__ import annotations

import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from quizgraph.allocation import AllocationEntry, allocate_to_total
from quizgraph.graph import BATCH_USER_LIST, LIVE_NODE, SONG_LIST, Node
from quizgraph.rng import random_int

MULTI_USER_SOURCES = (BATCH_USER_LIST, LIVE_NODE)

DEFAULT_SELECTED_LISTS = {
    "completed": True,
    "watching": True,
    "planning": False,
    "on_hold": False,
    "dropped": False,
}


@dataclass
class ResolvedSourceList:
    """One song source of the resolved configuration."""

    node_id: str
    node_type: str
    mode: str
    use_entire_pool: bool = False
    song_percentage: int | float | None = None
    song_selection_mode: str | None = None
    user_entries: list[dict[str, Any]] = field(default_factory=list)
    user_list_import: dict[str, Any] | None = None
    selected_list_id: str | None = None
    selected_list_name: str | None = None


def resolve_song_percentage(spec: Any, rng: random.Random) -> int | float | None:
    """Resolve a {random, min, max, value} percentage spec.

    Random specs draw with ``random_int(min or 0, max or 100)``; static specs
    return their value. Missing specs resolve to None.
    """
    if not isinstance(spec, Mapping):
        return None
    if spec.get("random"):
        lo = spec.get("min")
        hi = spec.get("max")
        return random_int(rng, 0 if lo is None else lo, 100 if hi is None else hi)
    return spec.get("value")


def user_share_entries(entries: Sequence[Mapping[str, Any]]) -> list[AllocationEntry]:
    """Allocation entries for the users of a multi-user source that set a share.

    Like `resolve_song_percentage`, a share that is not a {random, min, max,
    value} mapping counts as unset.
    """
    shares = []
    for idx, entry in enumerate(entries):
        spec = entry.get("songPercentage")
        if not spec or not isinstance(spec, Mapping):
            continue
        label = f"user-{idx}"
        if spec.get("random"):
            lo = spec.get("min")
            hi = spec.get("max")
            shares.append(
                AllocationEntry.ranged(label, 0 if lo is None else lo, 100 if hi is None else hi)
            )
        else:
            shares.append(AllocationEntry.static(label, spec.get("value") or 0))
    return shares


def _resolve_user_entries(
    entries: Sequence[Mapping[str, Any]], rng: random.Random
) -> list[dict[str, Any]]:
    shares = user_share_entries(entries)
    if not shares:
        return [dict(e) for e in entries]
    allocated = allocate_to_total(shares, 100, rng)
    resolved = []
    for idx, entry in enumerate(entries):
        item = dict(entry)
        label = f"user-{idx}"
        if label in allocated:
            item["songPercentage"] = allocated[label]
        resolved.append(item)
    return resolved


def resolve_source_list(node: Node, rng: random.Random) -> ResolvedSourceList:
    """Resolve one source node's percentages."""
    settings = node.settings
    song_percentage = resolve_song_percentage(settings.get("songPercentage"), rng)

    if node.definition_id in MULTI_USER_SOURCES:
        return ResolvedSourceList(
            node_id=node.id,
            node_type=node.definition_id,
            mode="user-lists",
            use_entire_pool=bool(settings.get("useEntirePool", False)),
            song_percentage=song_percentage,
            song_selection_mode=settings.get("songSelectionMode") or "default",
            user_entries=_resolve_user_entries(settings.get("userEntries") or [], rng),
            user_list_import={
                "platform": "anilist",
                "username": "",
                "selectedLists": dict(DEFAULT_SELECTED_LISTS),
            },
        )

    mode = settings.get("mode") or "masterlist"
    source = ResolvedSourceList(
        node_id=node.id,
        node_type=node.definition_id or SONG_LIST,
        mode=mode,
        use_entire_pool=bool(settings.get("useEntirePool", False)),
        song_percentage=song_percentage,
    )
    if mode == "user-lists":
        imported = settings.get("userListImport") or {}
        source.user_list_import = {
            "platform": imported.get("platform") or "anilist",
            "username": imported.get("username") or "",
            "selectedLists": dict(imported.get("selectedLists") or DEFAULT_SELECTED_LISTS),
        }
    elif mode == "saved-lists":
        source.selected_list_id = settings.get("selectedListId")
        source.selected_list_name = settings.get("selectedListName")
    return source
