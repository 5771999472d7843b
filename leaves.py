# leaves.py
# Leaf billboards scattered around thin twigs and at explicit L seeds.

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List

import numpy as np

from geometry import WORLD_UP, normalize, vec3
from options import TreeOptions
from topology import BranchTopology
from turtle3d import LeafSeed
from variation import Variation

logger = logging.getLogger(__name__)

LEAF_COLOR = np.array([0.2, 0.6, 0.15])
THIN_FRACTION = 0.25     # twig = end radius below this share of the trunk radius
CLUSTER_MIN, CLUSTER_MAX = 5, 10


@dataclass
class LeafInstance:
    position: np.ndarray
    normal: np.ndarray      # points away from the crown center, used for lighting only
    scale: np.ndarray       # (2,)
    rotation: float         # radians around the normal
    color: np.ndarray


class LeafScatterer:
    def __init__(self, opt: TreeOptions, variation: Variation):
        self.opt = opt
        self.var = variation
        self.center = np.array(opt.origin, dtype=float) + vec3(0.0, opt.initial_length * 2.0, 0.0)

    def _normal(self, position: np.ndarray) -> np.ndarray:
        return normalize(position - self.center, WORLD_UP)

    def scatter(self, topology: BranchTopology) -> List[LeafInstance]:
        """Clusters of 5-10 leaves at the end of every thin segment."""
        if self.opt.leaf_density <= 0.0:
            return []
        threshold = self.opt.initial_radius * THIN_FRACTION
        size = self.opt.leaf_size
        leaves: List[LeafInstance] = []
        clusters = 0

        for seg in topology:
            if seg.end_radius >= threshold:
                continue
            clusters += 1
            for _ in range(self.var.randint(CLUSTER_MIN, CLUSTER_MAX)):
                pos = seg.end + self.var.offset(size)
                s = size * self.var.uniform(0.9, 1.4) * 1.2
                leaves.append(LeafInstance(
                    position=pos,
                    normal=self._normal(pos),
                    scale=np.array([s, s]),
                    rotation=self.var.uniform(0.0, 2.0 * math.pi),
                    color=LEAF_COLOR * self.var.uniform(0.85, 1.15),
                ))

        logger.info("Scattered %d leaves over %d twig clusters", len(leaves), clusters)
        return leaves

    def from_seeds(self, seeds: Iterable[LeafSeed]) -> List[LeafInstance]:
        """One leaf per L seed recorded by the turtle."""
        if self.opt.leaf_density <= 0.0:
            return []
        leaves = []
        for seed in seeds:
            pos = seed.position.copy()
            s = self.opt.leaf_size * self.var.uniform(0.8, 1.2)
            leaves.append(LeafInstance(
                position=pos,
                normal=self._normal(pos),
                scale=np.array([s, s]),
                rotation=self.var.uniform(0.0, 2.0 * math.pi),
                color=LEAF_COLOR * self.var.uniform(0.9, 1.1),
            ))
        return leaves
