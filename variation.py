# variation.py
# Seedable random jitter used by every stochastic step of generation.

import math
import random
from typing import Optional

import numpy as np

from geometry import normalize


class Variation:
    """Bounded jitter and directional blending over one random stream.

    All randomness of a generation pass flows through a single instance so a
    fixed seed reproduces the tree exactly.
    """

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        self.seed = seed
        self.rng = rng if rng is not None else random.Random(seed)

    def uniform(self, lo: float, hi: float) -> float:
        return self.rng.uniform(lo, hi)

    def randint(self, lo: int, hi: int) -> int:
        return self.rng.randint(lo, hi)

    def symmetric(self, amount: float) -> float:
        """Uniform in [-amount, amount]."""
        if amount <= 0.0:
            return 0.0
        return self.rng.uniform(-amount, amount)

    def jitter(self, value: float, fraction: float) -> float:
        """value scaled by (1 +/- fraction); fraction reads as 'randomness of the nominal value'."""
        return value * (1.0 + self.symmetric(fraction))

    def chance(self, probability: float) -> bool:
        if probability >= 1.0:
            return True
        if probability <= 0.0:
            return False
        return self.rng.random() < probability

    def angle(self, degrees: float, fraction: float) -> float:
        return math.radians(self.jitter(degrees, fraction))

    def offset(self, extent: float) -> np.ndarray:
        return np.array([self.symmetric(extent) for _ in range(3)], dtype=float)

    @staticmethod
    def blend(direction: np.ndarray, bias: np.ndarray) -> np.ndarray:
        """Bend direction toward bias; the bias magnitude is the blend weight."""
        if float(np.linalg.norm(bias)) < 1e-9:
            return direction
        blended = direction + bias
        if float(np.linalg.norm(blended)) < 1e-6:
            # bias exactly cancels the direction
            return direction
        return normalize(blended)
