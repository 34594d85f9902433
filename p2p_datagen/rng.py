"""
Deterministic random stream for the P2P generator.

Every generator, the constraint pass and the anomaly injector draw from a
single SeededRandom instance created from the run's seed. Numeric and string
seeds are stringified before hashing, so ``42`` and ``"42"`` give the same
stream.

Usage:
    rng = SeededRandom(42)
    rng.next()            # float in [0, 1)
    rng.chance(0.9)       # Bernoulli trial
    rng.shuffle(items)    # Fisher-Yates over a copy
"""

from __future__ import annotations

import hashlib
from typing import List, Sequence, TypeVar, Union

import numpy as np
from faker import Faker

T = TypeVar("T")

Seed = Union[int, str]

FAKER_LOCALE = "en_IN"


def seed_to_int(seed: Seed) -> int:
    """Map a numeric or string seed to a 64-bit integer."""
    digest = hashlib.sha256(str(seed).encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


class SeededRandom:
    """
    Reproducible stream of floats in [0, 1) with a few helpers on top.

    The stream wraps ``numpy.random.default_rng``. A Faker instance seeded
    from the same seed is attached as ``fake`` for names and addresses.
    """

    def __init__(self, seed: Seed):
        self.seed = seed
        self.state = seed_to_int(seed)
        self._rng = np.random.default_rng(self.state)
        self.fake = Faker(FAKER_LOCALE)
        self.fake.seed_instance(self.state)
        self.draws = 0

    def next(self) -> float:
        """Next float in [0, 1)."""
        self.draws += 1
        return float(self._rng.random())

    def chance(self, ratio: float) -> bool:
        """Independent trial that passes with probability ``ratio``."""
        return self.next() > (1.0 - ratio)

    def randint(self, low: int, high: int) -> int:
        """Integer in [low, high], both ends inclusive."""
        return low + int(self.next() * (high - low + 1))

    def uniform(self, low: float, high: float) -> float:
        return low + self.next() * (high - low)

    def choice(self, items: Sequence[T]) -> T:
        if not items:
            raise IndexError("Cannot choose from an empty sequence")
        return items[int(self.next() * len(items))]

    def jitter(self, amount: float, variance_pct: float) -> float:
        """Apply a symmetric +/- variance_pct percent jitter, rounded to 2dp."""
        return round(amount * (1 + (self.next() * 2 - 1) * variance_pct / 100), 2)

    def digits(self, length: int) -> str:
        return "".join(str(int(self.next() * 10)) for _ in range(length))

    def letters(self, length: int, alphabet: str = "ABCDEFGHIJKLMNOPQRSTUVWXYZ") -> str:
        return "".join(self.choice(alphabet) for _ in range(length))

    def shuffle(self, items: Sequence[T]) -> List[T]:
        """Return a Fisher-Yates shuffled copy of ``items``."""
        result = list(items)
        for i in range(len(result) - 1, 0, -1):
            j = int(self.next() * (i + 1))
            result[i], result[j] = result[j], result[i]
        return result

    def __repr__(self) -> str:
        return f"SeededRandom(seed={self.seed!r}, draws={self.draws})"
