# stitcher.py
# Turns a BranchTopology into one continuous tapered-tube triangle mesh.

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from geometry import carried_frame, quantize, tube_frame
from topology import ROOT, BranchTopology

logger = logging.getLogger(__name__)

BARK_COLOR = np.array([0.4, 0.25, 0.15])
MIN_SEGMENT_LENGTH = 1e-3


@dataclass
class Mesh:
    vertices: np.ndarray   # (N, 3) float32
    normals: np.ndarray    # (N, 3) float32
    colors: np.ndarray     # (N, 3) float32
    indices: np.ndarray    # (M,) uint32, triangle list
    radial_segments: int
    ring_offsets: List[int] = field(default_factory=list)
    # per segment (start_ring, end_ring); None for skipped degenerate segments
    segment_rings: List[Optional[Tuple[int, int]]] = field(default_factory=list)

    @property
    def ring_count(self) -> int:
        return len(self.ring_offsets)

    @property
    def triangle_count(self) -> int:
        return len(self.indices) // 3

    @property
    def faces(self) -> np.ndarray:
        return self.indices.reshape(-1, 3)

    def freeze(self) -> "Mesh":
        for a in (self.vertices, self.normals, self.colors, self.indices):
            a.flags.writeable = False
        return self


def bark_color(depth: int) -> np.ndarray:
    """Brown tint that darkens with depth, never below half brightness."""
    depth_factor = min(1.0, max(0.5, 1.0 - depth * 0.05))
    return BARK_COLOR * depth_factor


class MeshStitcher:
    def __init__(self, radial_segments: int = 8, precision: int = 3):
        self.segments = radial_segments  # number of segments around each ring
        self.precision = precision
        self.vertices: List[np.ndarray] = []
        self.normals: List[np.ndarray] = []
        self.colors: List[np.ndarray] = []
        self.ring_offsets: List[int] = []
        self.ring_rights: List[np.ndarray] = []  # cross-section right axis per ring
        self.skipped_count = 0  # degenerate segments

    def _add_ring(self, center: np.ndarray, radius: float, right: np.ndarray, up: np.ndarray,
                  color: np.ndarray) -> int:
        ring = len(self.ring_offsets)
        self.ring_offsets.append(len(self.vertices))
        self.ring_rights.append(right)
        # segments + 1 vertices, first and last coincide at the seam
        for i in range(self.segments + 1):
            angle = 2.0 * math.pi * i / self.segments
            n = math.cos(angle) * right + math.sin(angle) * up
            self.vertices.append(center + radius * n)
            self.normals.append(n)
            self.colors.append(color)
        return ring

    def build(self, topology: BranchTopology) -> Mesh:
        self.vertices, self.normals, self.colors = [], [], []
        self.ring_offsets = []
        self.ring_rights = []
        self.skipped_count = 0

        ring_at: Dict[Tuple[float, float, float], int] = {}
        segment_rings: List[Optional[Tuple[int, int]]] = []

        for seg in topology:
            direction = seg.end - seg.start
            length = float(np.linalg.norm(direction))
            if length < MIN_SEGMENT_LENGTH:
                self.skipped_count += 1
                segment_rings.append(None)
                continue
            direction = direction / length
            color = bark_color(seg.depth)

            start_key = quantize(seg.start, self.precision)
            if seg.parent != ROOT and start_key in ring_at:
                # weld onto the parent's end cap, keeping its vertex 0 orientation
                start_ring = ring_at[start_key]
                right, up = carried_frame(self.ring_rights[start_ring], direction)
            else:
                right, up = tube_frame(direction)
                start_ring = self._add_ring(seg.start, seg.start_radius, right, up, color)

            end_ring = self._add_ring(seg.end, seg.end_radius, right, up, color)
            ring_at.setdefault(quantize(seg.end, self.precision), end_ring)
            segment_rings.append((start_ring, end_ring))

        indices: List[int] = []
        for rings in segment_rings:
            if rings is None:
                continue
            start_idx = self.ring_offsets[rings[0]]
            end_idx = self.ring_offsets[rings[1]]
            for i in range(self.segments):
                i1 = start_idx + i
                i2 = start_idx + i + 1
                i3 = end_idx + i
                i4 = end_idx + i + 1
                # two triangles per quad, counter-clockwise seen from outside
                indices.extend((i1, i3, i2))
                indices.extend((i2, i3, i4))

        if self.skipped_count:
            logger.debug("Skipped %d degenerate segments", self.skipped_count)
        logger.info("Stitched %d rings, %d vertices, %d triangles",
                    len(self.ring_offsets), len(self.vertices), len(indices) // 3)

        return Mesh(
            vertices=np.array(self.vertices, dtype=np.float32).reshape(-1, 3),
            normals=np.array(self.normals, dtype=np.float32).reshape(-1, 3),
            colors=np.array(self.colors, dtype=np.float32).reshape(-1, 3),
            indices=np.array(indices, dtype=np.uint32),
            radial_segments=self.segments,
            ring_offsets=list(self.ring_offsets),
            segment_rings=segment_rings,
        )


def build_mesh(topology: BranchTopology, radial_segments: int = 8, precision: int = 3) -> Mesh:
    return MeshStitcher(radial_segments, precision).build(topology)
