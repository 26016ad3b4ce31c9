"""Pluggable phrase selection for narrative and descriptive text.

Template wording is picked at random in production. Tests inject a seeded or
fixed selector so the generated text is reproducible.
"""

from __future__ import annotations

import random
from typing import Protocol, Sequence, TypeVar

T = TypeVar("T")


class PhraseSelector(Protocol):
    """Anything that can pick one option from a non-empty sequence."""

    def choose(self, options: Sequence[T]) -> T:
        ...


class RandomPhraseSelector:
    """Uniform random choice, optionally seeded for reproducibility."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def choose(self, options: Sequence[T]) -> T:
        if not options:
            raise ValueError("No options to choose from")
        return self._rng.choice(list(options))


class FixedPhraseSelector:
    """Always pick the option at `index` (wrapped to the option count)."""

    def __init__(self, index: int = 0) -> None:
        self.index = index

    def choose(self, options: Sequence[T]) -> T:
        if not options:
            raise ValueError("No options to choose from")
        return options[self.index % len(options)]


default_selector: PhraseSelector = RandomPhraseSelector()
