"""
Random source - the single seam through which the engine samples chance.

Every probability and range in the simulation is drawn from an injected
RandomSource. Production sessions use random.Random (optionally seeded);
tests substitute a double that forces specific branches.
"""

from __future__ import annotations
from typing import Protocol, Sequence, TypeVar
import random

T = TypeVar("T")


class RandomSource(Protocol):
    """The subset of random.Random the engine relies on."""

    def random(self) -> float:
        ...

    def uniform(self, a: float, b: float) -> float:
        ...

    def randint(self, a: int, b: int) -> int:
        ...

    def choice(self, seq: Sequence[T]) -> T:
        ...


def make_rng(seed: int | None = None) -> RandomSource:
    """Create the default random source, seeded when a seed is given."""
    return random.Random(seed)


def chance(rng: RandomSource, probability: float) -> bool:
    """A uniform draw strictly below `probability`."""
    return rng.random() < probability
