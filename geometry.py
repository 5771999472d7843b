# geometry.py
# Small vector helpers shared by the turtle, the mesh stitcher and the leaf pass.

import math
from typing import Tuple

import numpy as np

WORLD_UP = np.array([0.0, 1.0, 0.0])
WORLD_RIGHT = np.array([1.0, 0.0, 0.0])
WORLD_FORWARD = np.array([0.0, 0.0, 1.0])

EPS = 1e-9


def vec3(x: float, y: float, z: float) -> np.ndarray:
    return np.array([x, y, z], dtype=float)


def normalize(v: np.ndarray, fallback: np.ndarray = WORLD_UP) -> np.ndarray:
    n = float(np.linalg.norm(v))
    if n < EPS:
        return fallback.copy()
    return v / n


def rotate_about(v: np.ndarray, angle: float, axis: np.ndarray) -> np.ndarray:
    """Rotate v by angle (radians) around a unit axis (Rodrigues matrix)."""
    x, y, z = axis
    c, s = math.cos(angle), math.sin(angle)
    t = 1.0 - c
    R = np.array([
        [t*x*x + c,   t*x*y - s*z, t*x*z + s*y],
        [t*x*y + s*z, t*y*y + c,   t*y*z - s*x],
        [t*x*z - s*y, t*y*z + s*x, t*z*z + c],
    ], dtype=float)
    return R @ v


def any_perpendicular(d: np.ndarray) -> np.ndarray:
    # cross with whichever world axis is least aligned with d
    ref = WORLD_RIGHT if abs(d[0]) < 0.9 else WORLD_FORWARD
    return normalize(np.cross(d, ref), WORLD_RIGHT)


def orthonormalize(direction: np.ndarray, right: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Gram-Schmidt the turtle frame; up is rebuilt as right x direction."""
    d = normalize(direction)
    r = right - d * float(np.dot(right, d))
    if np.linalg.norm(r) < 1e-6:
        r = any_perpendicular(d)
    else:
        r = normalize(r)
    u = np.cross(r, d)
    return d, r, u


def tube_frame(direction: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Cross-section axes (right, up) for a unit segment direction."""
    if abs(float(np.dot(direction, WORLD_UP))) > 0.999:
        # near-vertical: cross with world up would vanish
        right = normalize(np.cross(direction, WORLD_FORWARD), WORLD_RIGHT)
    else:
        right = normalize(np.cross(direction, WORLD_UP), WORLD_RIGHT)
    up = np.cross(right, direction)
    return right, up


def carried_frame(right: np.ndarray, direction: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Cross-section axes for a tube continuing from a ring with the given right axis.

    The previous right axis is projected onto the plane normal to the new
    direction so matching ring vertices stay on the same side of the tube.
    """
    r = right - direction * float(np.dot(right, direction))
    if np.linalg.norm(r) < 1e-6:
        return tube_frame(direction)
    r = normalize(r)
    return r, np.cross(r, direction)


def quantize(p: np.ndarray, precision: int) -> Tuple[float, float, float]:
    # +0.0 folds -0.0 into the same key
    return (round(float(p[0]), precision) + 0.0,
            round(float(p[1]), precision) + 0.0,
            round(float(p[2]), precision) + 0.0)
