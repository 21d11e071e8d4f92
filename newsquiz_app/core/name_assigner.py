"""Utility for assigning random leaderboard usernames."""

from __future__ import annotations

from collections import deque
import itertools
import random
from threading import Lock

_ADJECTIVES = [
    "Curious",
    "Breaking",
    "Daily",
    "Weekly",
    "Local",
    "Global",
    "Late",
    "Early",
    "Sharp",
    "Quiet",
    "Bold",
    "Steady",
]
_NOUNS = [
    "Reporter",
    "Editor",
    "Headline",
    "Columnist",
    "Reader",
    "Correspondent",
    "Photographer",
    "Anchor",
    "Byline",
    "Scoop",
]


class NameAssigner:
    """Provides randomized, non-repeating names until the pool is used up."""

    def __init__(self, names: list[str], rng: random.Random | None = None):
        cleaned = [name.strip() for name in names if name.strip()]
        if not cleaned:
            raise ValueError("Name list cannot be empty.")
        self._names = cleaned
        self._pool: deque[str] = deque()
        self._lock = Lock()
        self._rng = rng or random.Random()
        self._refill_pool()

    @classmethod
    def from_defaults(cls, rng: random.Random | None = None) -> NameAssigner:
        names = [f"{adjective} {noun}" for adjective, noun in itertools.product(_ADJECTIVES, _NOUNS)]
        return cls(names, rng=rng)

    @property
    def pool_size(self) -> int:
        return len(self._names)

    def next_name(self) -> str:
        with self._lock:
            if not self._pool:
                self._refill_pool()
            return self._pool.popleft()

    def _refill_pool(self) -> None:
        shuffled = list(self._names)
        self._rng.shuffle(shuffled)
        self._pool.extend(shuffled)
