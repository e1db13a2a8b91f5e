"""Seeded random number stream shared by every resolution step.

Seeds are strings (or anything with a stable ``str()``). They are hashed with
32-bit FNV-1a and fed into a Mulberry32 generator, so a seed persisted by the
quiz editor replays the exact same sequence here.
"""

from __future__ import annotations

import math
import random
from collections.abc import Sequence
from typing import Any, TypeVar

T = TypeVar("T")

_MASK = 0xFFFFFFFF
_FNV_OFFSET = 2166136261
_FNV_PRIME = 16777619
_SEED_LETTERS = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
SEED_LENGTH = 16


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK


def hash_seed(seed: Any) -> int:
    """Hash a seed's string form to an unsigned 32-bit integer (FNV-1a).

    Characters are hashed as UTF-16 code units.
    """
    text = str(seed)
    units = text.encode("utf-16-le")
    h = _FNV_OFFSET
    for i in range(0, len(units), 2):
        h ^= units[i] | (units[i + 1] << 8)
        h = _imul(h, _FNV_PRIME)
    return h


class Mulberry32(random.Random):
    """Mulberry32 generator exposed through the ``random.Random`` interface.

    ``random()`` and ``getrandbits()`` both draw from the 32-bit output, so
    ``choice``, ``randrange`` and friends stay reproducible for a given seed.
    """

    def __init__(self, seed: Any = None) -> None:
        self._state = 0
        super().__init__(seed)

    def seed(self, a: Any = None, version: int = 2) -> None:  # type: ignore[override]
        if a is None:
            a = fresh_seed()
        self._state = hash_seed(a)
        self.gauss_next = None

    def next_uint32(self) -> int:
        """Advance the state and return the next unsigned 32-bit output."""
        self._state = (self._state + 0x6D2B79F5) & _MASK
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK
        return (t ^ (t >> 14)) & _MASK

    def random(self) -> float:
        return self.next_uint32() / 4294967296

    def getrandbits(self, k: int) -> int:
        if k < 0:
            raise ValueError("number of bits must be non-negative")
        words = (k + 31) // 32
        value = 0
        for _ in range(words):
            value = (value << 32) | self.next_uint32()
        return value >> (words * 32 - k)

    def getstate(self) -> tuple[int, float | None]:  # type: ignore[override]
        return self._state, self.gauss_next

    def setstate(self, state: tuple[int, float | None]) -> None:  # type: ignore[override]
        self._state, self.gauss_next = state


def make_rng(seed: Any) -> Mulberry32:
    """Create the RNG for one resolution pass."""
    return Mulberry32(seed)


def fresh_seed(length: int = SEED_LENGTH) -> str:
    """Generate a new random seed made of ASCII letters."""
    system = random.SystemRandom()
    return "".join(system.choice(_SEED_LETTERS) for _ in range(length))


def random_int(rng: random.Random, lo: float, hi: float) -> int:
    """Draw an inclusive integer in [lo, hi].

    Bounds are rounded inward (ceil of lo, floor of hi). When the rounded
    interval is empty or a single point, ``ceil(lo)`` is returned without
    consuming randomness.
    """
    a = math.ceil(lo)
    b = math.floor(hi)
    if b <= a:
        return a
    return a + math.floor(rng.random() * (b - a + 1))


def pick(items: Sequence[T], rng: random.Random) -> T:
    """Uniformly pick one item using a single ``random_int`` draw."""
    if not items:
        raise IndexError("cannot pick from an empty sequence")
    return items[random_int(rng, 0, len(items) - 1)]


def shuffled(items: Sequence[T], rng: random.Random) -> list[T]:
    """Return a uniformly shuffled copy (seeded Fisher-Yates).

    Each swap index is one ``random_int(rng, 0, i)`` draw, for ``i`` from
    ``len(items) - 1`` down to 1.
    """
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = random_int(rng, 0, i)
        result[i], result[j] = result[j], result[i]
    return result
