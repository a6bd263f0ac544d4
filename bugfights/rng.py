"""
Per-match random source.

Every probabilistic decision in a match (feints, dodges, crits, poison,
cooldown draws) goes through one MatchRNG owned by that match. Nothing in the
core touches the module-level ``random`` functions, so a match replays
exactly from its seed.
"""

from __future__ import annotations

import random
from typing import Optional

# Number of leading hex digits of a beacon value folded into the seed
HEX_SEED_DIGITS = 8


class MatchRNG:
    """
    Seedable random source for a single match (single writer).

    Attributes:
        seed_value: Seed the generator was last seeded with.
        round_id: Identifier of the randomness round the seed came from,
            recorded alongside the match result. None for local seeds.
    """

    def __init__(self, seed: int = 0, round_id: Optional[int] = None):
        self._rng = random.Random()
        self.seed_value = 0
        self.round_id = round_id
        self.draw_count = 0
        self.seed(seed)

    def seed(self, value: int) -> None:
        """Reseed the generator; resets the draw counter."""
        self.seed_value = int(value)
        self._rng.seed(self.seed_value)
        self.draw_count = 0

    def draw(self) -> float:
        """Uniform float in [0, 1)."""
        self.draw_count += 1
        return self._rng.random()

    def uniform(self, lo: float, hi: float) -> float:
        """Uniform float in [lo, hi] from a single draw."""
        return lo + (hi - lo) * self.draw()

    def chance(self, probability: float) -> bool:
        """True with the given probability (one draw)."""
        return self.draw() < probability

    def describe(self) -> dict:
        """Seed and round identifier, recorded alongside match results."""
        return {"seed": self.seed_value, "round": self.round_id}

    @classmethod
    def from_hex(cls, randomness: str, round_id: Optional[int] = None) -> MatchRNG:
        """
        Seed from a hex randomness string (e.g. a beacon value).

        The first eight hex digits are read as a 32-bit integer.

        Raises:
            ValueError: If the prefix is not valid hexadecimal.
        """
        prefix = randomness.strip()[:HEX_SEED_DIGITS]
        if not prefix:
            raise ValueError("empty randomness string")
        return cls(int(prefix, 16), round_id=round_id)
