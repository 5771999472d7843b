# export.py
# Conversion of generated trees to trimesh objects and mesh files.

import logging
import os
from typing import List, Sequence, Tuple

import numpy as np
import trimesh

from geometry import tube_frame
from leaves import LeafInstance
from stitcher import Mesh

logger = logging.getLogger(__name__)


def _rgba(colors: np.ndarray) -> np.ndarray:
    rgb = np.clip(np.round(np.asarray(colors, dtype=float) * 255.0), 0, 255).astype(np.uint8)
    alpha = np.full((len(rgb), 1), 255, dtype=np.uint8)
    return np.hstack([rgb.reshape(-1, 3), alpha])


def mesh_to_trimesh(mesh: Mesh) -> trimesh.Trimesh:
    return trimesh.Trimesh(
        vertices=mesh.vertices.astype(np.float64),
        faces=mesh.faces.astype(np.int64),
        vertex_normals=mesh.normals.astype(np.float64),
        vertex_colors=_rgba(mesh.colors),
        process=False,
    )


def leaf_quad(leaf: LeafInstance) -> np.ndarray:
    """Four corners of a billboard facing leaf.normal, spun by leaf.rotation."""
    right, up = tube_frame(leaf.normal)
    c, s = np.cos(leaf.rotation), np.sin(leaf.rotation)
    ax = c * right + s * up
    ay = np.cross(leaf.normal, ax)
    hx = ax * (leaf.scale[0] * 0.5)
    hy = ay * (leaf.scale[1] * 0.5)
    p = leaf.position
    return np.array([
        p - hx - hy,  # bottom left
        p + hx - hy,  # bottom right
        p + hx + hy,  # top right
        p - hx + hy,  # top left
    ])


def leaves_to_trimesh(leaves: Sequence[LeafInstance]) -> trimesh.Trimesh:
    vertices: List[np.ndarray] = []
    faces: List[Tuple[int, int, int]] = []
    colors: List[np.ndarray] = []
    for leaf in leaves:
        base = len(vertices)
        vertices.extend(leaf_quad(leaf))
        colors.extend([leaf.color] * 4)
        faces.append((base, base + 1, base + 2))
        faces.append((base, base + 2, base + 3))
    return trimesh.Trimesh(
        vertices=np.array(vertices, dtype=np.float64).reshape(-1, 3),
        faces=np.array(faces, dtype=np.int64).reshape(-1, 3),
        vertex_colors=_rgba(np.array(colors).reshape(-1, 3)),
        process=False,
    )


def export_tree(result, path: str) -> trimesh.Trimesh:
    """Write branches and leaves as one mesh; the format follows the file extension."""
    meshes = []
    if len(result.mesh.indices):
        meshes.append(mesh_to_trimesh(result.mesh))
    if result.leaves:
        meshes.append(leaves_to_trimesh(result.leaves))
    if not meshes:
        raise ValueError("Tree has no geometry to export")
    scene = trimesh.util.concatenate(meshes)

    os.makedirs(os.path.dirname(os.path.abspath(path)) or ".", exist_ok=True)
    scene.export(path)
    logger.info("Exported %d vertices, %d faces to %s", len(scene.vertices), len(scene.faces), path)
    return scene
