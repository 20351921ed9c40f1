"""
General utility functions for the embedmath package.

This module provides the seeded pseudo-random generator shared by the
stochastic layout engines, plus a few small numeric helpers.
"""

import math
from typing import Any, Optional

# Park-Miller minimal standard generator constants
PM_MODULUS = 2147483647
PM_MULTIPLIER = 16807

DEFAULT_SEED = 42


class ParkMillerRandom:
    """
    Lehmer / Park-Miller linear congruential generator.

    Each engine run receives its own instance so that identical input and
    seed always produce identical layouts, independent of any global state.
    """

    def __init__(self, seed: int = DEFAULT_SEED):
        """
        Initialize the generator.

        Args:
            seed: Starting state; reduced into [1, modulus - 1]
        """
        seed = int(seed) % PM_MODULUS
        if seed <= 0:
            seed += PM_MODULUS - 1
        self.seed = seed
        self._state = seed

    def random(self) -> float:
        """
        Advance the generator.

        Returns:
            Float in [0, 1]
        """
        self._state = (self._state * PM_MULTIPLIER) % PM_MODULUS
        return (self._state - 1) / (PM_MODULUS - 1)

    def randint(self, n: int) -> int:
        """
        Draw an integer in [0, n).

        Args:
            n: Exclusive upper bound

        Returns:
            Random integer
        """
        return min(int(math.floor(self.random() * n)), n - 1)

    def __repr__(self) -> str:
        return f"ParkMillerRandom(seed={self.seed})"


def make_rng(rng: Optional[ParkMillerRandom] = None,
             seed: Optional[int] = None) -> ParkMillerRandom:
    """
    Return the injected generator, or a fresh one for the given seed.

    Args:
        rng: Existing generator to reuse
        seed: Seed for a new generator (defaults to DEFAULT_SEED)

    Returns:
        Generator instance
    """
    if rng is not None:
        return rng
    return ParkMillerRandom(DEFAULT_SEED if seed is None else seed)


def sign(x: float) -> float:
    """
    Sign of a number with sign(0) = +1.

    Args:
        x: Number

    Returns:
        1.0 or -1.0
    """
    return -1.0 if x < 0 else 1.0


def is_missing(value: Any) -> bool:
    """
    Check whether a matrix entry is a missing marker.

    Args:
        value: Entry to check

    Returns:
        True for None and NaN
    """
    if value is None:
        return True
    try:
        return math.isnan(value)
    except TypeError:
        return False
