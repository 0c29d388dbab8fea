"""
Shuffle - Injectable uniform permutation primitive.

Every random choice in the engine (deck shuffles, dilemma selection,
random stops and kills) goes through a ShuffleFn. Tests and replays
inject a seeded Shuffler so a game is reproducible from its seed.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import random
from typing import Callable, Sequence, TypeVar

T = TypeVar("T")

ShuffleFn = Callable[[Sequence[T]], list[T]]


def shuffle(items: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """
    Return a uniformly shuffled copy of items (Fisher-Yates).

    The input is never modified.
    """
    rng = rng or random
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


@dataclass
class Shuffler:
    """
    Seedable shuffle function.

    Usage:
        shuffler = Shuffler(seed=42)
        deck = shuffler(deck)
    """
    seed: int | None = None
    rng: random.Random = field(init=False, repr=False)

    def __post_init__(self):
        self.rng = random.Random(self.seed)

    def __call__(self, items: Sequence[T]) -> list[T]:
        return shuffle(items, self.rng)


_default_shuffle: ShuffleFn = shuffle


def configure_shuffle(fn: ShuffleFn) -> None:
    """Replace the process-wide default shuffle (used when none is injected)."""
    global _default_shuffle
    _default_shuffle = fn


def reset_shuffle() -> None:
    """Restore the unseeded default shuffle."""
    global _default_shuffle
    _default_shuffle = shuffle


def default_shuffle(items: Sequence[T]) -> list[T]:
    """Shuffle with whatever configure_shuffle() installed."""
    return _default_shuffle(items)


def identity_shuffle(items: Sequence[T]) -> list[T]:
    """Keep the original order. Useful for scripted scenarios."""
    return list(items)
