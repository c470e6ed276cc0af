"""Random sources handed to the simulation formulas."""

import random
from typing import Optional


class FixedRandom(random.Random):
    """
    Random source whose ``random()`` always returns the same value.

    Used for previews, where every draw should sit at its midpoint, and in
    tests that need exact results from formulas with noise in them.
    """

    def __init__(self, value: float = 0.5):
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value

    def randint(self, a: int, b: int) -> int:
        return a + int(self.value * (b - a + 1)) if self.value < 1 else b

    def choices(self, population, weights=None, *, cum_weights=None, k=1):
        if weights is None and cum_weights is None:
            return [population[min(int(self.value * len(population)), len(population) - 1)] for _ in range(k)]
        return super().choices(population, weights, cum_weights=cum_weights, k=k)


def make_rng(seed: Optional[int] = None) -> random.Random:
    """Production random source; seeded when a seed is given."""
    return random.Random(seed)


def turn_rng(seed: Optional[int], turn: int) -> random.Random:
    """
    Random source for one quarter of a seeded run.

    Each turn gets its own stream derived from ``(seed, turn)``, so replaying
    a saved game from any quarter draws the same values as the original run.
    """
    if seed is None:
        return random.Random()
    return random.Random(f"{seed}:{turn}")
