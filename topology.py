# topology.py
# Append-only arena of branch segments linked by parent/child indices.

from dataclasses import dataclass, field
from typing import Iterator, List

import numpy as np

ROOT = -1


@dataclass
class BranchSegment:
    start: np.ndarray
    end: np.ndarray
    start_radius: float
    end_radius: float
    depth: int
    parent: int = ROOT
    children: List[int] = field(default_factory=list)

    @property
    def length(self) -> float:
        return float(np.linalg.norm(self.end - self.start))

    @property
    def is_root(self) -> bool:
        return self.parent == ROOT


class BranchTopology:
    """Segments in creation order; an index, once handed out, stays valid."""

    def __init__(self):
        self.segments: List[BranchSegment] = []
        self.active = ROOT  # most recently opened segment

    def append(self, start: np.ndarray, end: np.ndarray, start_radius: float,
               end_radius: float, depth: int) -> int:
        parent = self.active
        idx = len(self.segments)
        self.segments.append(BranchSegment(
            start=np.array(start, dtype=float),
            end=np.array(end, dtype=float),
            start_radius=float(start_radius),
            end_radius=float(end_radius),
            depth=depth,
            parent=parent,
        ))
        if parent != ROOT:
            self.segments[parent].children.append(idx)
        self.active = idx
        return idx

    def roots(self) -> List[int]:
        return [i for i, s in enumerate(self.segments) if s.parent == ROOT]

    def tips(self) -> List[int]:
        """Segments nothing grows out of."""
        return [i for i, s in enumerate(self.segments) if not s.children]

    def __len__(self) -> int:
        return len(self.segments)

    def __getitem__(self, idx: int) -> BranchSegment:
        return self.segments[idx]

    def __iter__(self) -> Iterator[BranchSegment]:
        return iter(self.segments)
