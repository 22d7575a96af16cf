"""Random number seam.

All probabilistic decisions (trap seeding and rolls, quest success) draw
from a ``RandomSource`` owned by the session, never from the module-level
``random`` functions, so identical seeds reproduce identical outcomes.
"""
from __future__ import annotations
import random
from typing import List, Mapping, Optional, Protocol, Sequence


class RandomSource(Protocol):
    def random(self) -> float: ...
    def uniform(self, a: float, b: float) -> float: ...
    def randint(self, a: int, b: int) -> int: ...
    def shuffle(self, x: List) -> None: ...
    def choice(self, seq: Sequence): ...


def make_rng(seed: Optional[int] = None) -> random.Random:
    """Create a dedicated ``random.Random`` instance, seeded when requested."""
    rng = random.Random()
    if seed is not None:
        rng.seed(seed)
    return rng


def weighted_choice(rng: RandomSource, weights: Mapping[str, float]) -> str:
    """Pick a key with probability proportional to its weight.

    Keys with a non-positive weight are never selected unless every weight
    is zero, in which case the first key is returned.
    """
    if not weights:
        raise ValueError("weighted_choice requires at least one option")
    total = sum(w for w in weights.values() if w > 0)
    if total <= 0:
        return next(iter(weights))
    roll = rng.uniform(0, total)
    for key, weight in weights.items():
        if weight <= 0:
            continue
        roll -= weight
        if roll <= 0:
            return key
    # Arrotondamenti float: ultima chiave valida
    return [k for k, w in weights.items() if w > 0][-1]


def roll_range(rng: RandomSource, bounds: Sequence[int]) -> int:
    low, high = bounds[0], bounds[1]
    return rng.randint(low, high)


__all__ = ["RandomSource", "make_rng", "weighted_choice", "roll_range"]
