"""Lobby settings: basic settings and number of songs nodes.

Authored values may be wrapped as ``{"value": {...}}`` (editor form state) or
given bare; both spellings are accepted.
"""

from __future__ import annotations

import random
from collections.abc import Mapping
from typing import Any

from quizgraph.rng import random_int

MIN_SONGS = 1
MAX_SONGS = 200
DEFAULT_SONG_COUNT = 20


def _unwrap(settings: Mapping[str, Any], key: str) -> Any:
    raw = settings.get(key)
    if isinstance(raw, Mapping) and "value" in raw and isinstance(raw["value"], Mapping):
        return raw["value"]
    if isinstance(raw, Mapping) and "value" in raw and len(raw) == 1:
        return raw["value"]
    return raw


def _config(settings: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    """Authored block for `key`; a bare number stands for a static value."""
    raw = _unwrap(settings, key)
    if isinstance(raw, Mapping):
        return raw
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return {"mode": "static", "staticValue": raw}
    return {}


def _timer(cfg: Mapping[str, Any], default_value: float, default_max: float) -> dict[str, Any]:
    if cfg.get("useRange"):
        return {
            "kind": "range",
            "min": float(cfg.get("min", 1)),
            "max": float(cfg.get("max", default_max)),
        }
    value = cfg.get("staticValue", cfg.get("value", default_value))
    return {"kind": "static", "value": float(value)}


def _number(value: float) -> int | float:
    return int(value) if float(value).is_integer() else value


def basic_settings_display(settings: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize authored basic settings into static/range/random values."""
    sample = _config(settings, "samplePoint")
    speed = _config(settings, "playbackSpeed")
    if sample.get("useRange"):
        sample_point = {
            "kind": "range",
            "min": float(sample.get("start", 1)),
            "max": float(sample.get("end", 100)),
        }
    else:
        sample_point = {
            "kind": "static",
            "value": float(sample.get("staticValue", sample.get("value", 20))),
        }
    if speed.get("mode") == "static":
        playback = {"kind": "static", "value": float(speed.get("staticValue", 1))}
    else:
        values = speed.get("randomValues")
        if not isinstance(values, list) or not values:
            values = [1]
        playback = {"kind": "random", "values": list(values)}

    return {
        "scoring": _unwrap(settings, "scoring") or "count",
        "answering": _unwrap(settings, "answering") or "typing",
        "players": int(_unwrap(settings, "players") or 8),
        "teamSize": int(_unwrap(settings, "teamSize") or 1),
        "guessTime": _timer(_config(settings, "guessTime"), 20, 60),
        "extraGuessTime": _timer(_config(settings, "extraGuessTime"), 5, 15),
        "samplePoint": sample_point,
        "playbackSpeed": playback,
        "modifiers": list(_unwrap(settings, "modifiers") or []),
    }


def _resolve_timer(display: Mapping[str, Any]) -> Any:
    if display["kind"] == "range":
        return {"kind": "range", "min": _number(display["min"]), "max": _number(display["max"])}
    return _number(display["value"])


def resolve_basic_settings(settings: Mapping[str, Any], rng: random.Random) -> dict[str, Any]:
    """Resolve one basic settings node.

    Guess times collapse to a number only when static; ranges are kept for
    per-song resolution by the quiz client. The sample point is passed
    through unchanged. A random playback speed picks one candidate.
    """
    display = basic_settings_display(settings)
    speed = display["playbackSpeed"]
    if speed["kind"] == "random":
        values = speed["values"]
        playback = values[random_int(rng, 0, len(values) - 1)]
    else:
        playback = _number(speed["value"])

    duplicate_shows = _unwrap(settings, "duplicateShows")
    return {
        "scoring": display["scoring"],
        "answering": display["answering"],
        "players": display["players"],
        "teamSize": display["teamSize"],
        "guessTime": _resolve_timer(display["guessTime"]),
        "extraGuessTime": _resolve_timer(display["extraGuessTime"]),
        "samplePoint": display["samplePoint"],
        "playbackSpeed": playback,
        "duplicateShows": True if duplicate_shows is None else bool(duplicate_shows),
        "modifiers": display["modifiers"],
    }


def number_of_songs_display(settings: Mapping[str, Any]) -> dict[str, Any]:
    if settings.get("useRange"):
        return {
            "kind": "range",
            "min": float(settings.get("min", MIN_SONGS)),
            "max": float(settings.get("max", MAX_SONGS)),
        }
    value = settings.get("staticValue", settings.get("value", DEFAULT_SONG_COUNT))
    return {"kind": "static", "value": float(value)}


def resolve_number_of_songs(settings: Mapping[str, Any], rng: random.Random) -> int:
    """Resolve a number of songs node to a concrete count."""
    display = number_of_songs_display(settings)
    if display["kind"] == "range":
        return random_int(rng, display["min"], display["max"])
    return int(display["value"])
