# preview.py
# Quick matplotlib look at a generated tree (branches + leaf billboards).

import logging

import numpy as np
from matplotlib import pyplot as plt
from mpl_toolkits.mplot3d import Axes3D  # noqa: F401  # needed for 3D
from mpl_toolkits.mplot3d.art3d import Poly3DCollection

from export import leaf_quad

logger = logging.getLogger(__name__)


def plot_tree(result, show: bool = True, title: str = None):
    """Plot the stitched branch mesh and the leaf quads; returns the figure."""
    fig = plt.figure(figsize=(12, 10))
    ax = fig.add_subplot(111, projection='3d')

    mesh = result.mesh
    vertices = np.asarray(mesh.vertices, dtype=float)
    triangles = [vertices[list(face)] for face in mesh.faces]
    colors = [tuple(mesh.colors[face[0]]) for face in mesh.faces]

    for leaf in result.leaves:
        triangles.append(leaf_quad(leaf))
        colors.append(tuple(np.clip(leaf.color, 0.0, 1.0)))

    if not triangles:
        logger.warning("No 3D geometry generated")
        return fig

    # the tree grows along +Y; matplotlib's vertical axis is Z, so swap
    swapped = [t[:, [0, 2, 1]] for t in triangles]
    coll = Poly3DCollection(swapped, alpha=0.9, edgecolor='black', linewidth=0.05)
    coll.set_facecolors(colors)
    ax.add_collection3d(coll)

    pts = np.vstack(swapped)
    ax.set_xlim(pts[:, 0].min() - 1, pts[:, 0].max() + 1)
    ax.set_ylim(pts[:, 1].min() - 1, pts[:, 1].max() + 1)
    ax.set_zlim(pts[:, 2].min() - 1, pts[:, 2].max() + 1)

    ax.set_box_aspect([1, 1, 1.6])  # taller in height
    ax.set_xlabel('X'); ax.set_ylabel('Z'); ax.set_zlabel('Y')
    ax.view_init(elev=15, azim=45)
    plt.title(title or f'L-system tree ({result.branch_count} branches, {result.leaf_count} leaves)')
    plt.tight_layout()
    if show:
        plt.show()
    return fig
