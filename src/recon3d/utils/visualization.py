"""Visualization utilities for pipeline debugging."""

from __future__ import annotations

from pathlib import Path

import numpy as np


def plot_point_cloud(
    points: np.ndarray,
    colors: np.ndarray | None = None,
    title: str = "Point Cloud",
    max_points: int = 50000,
    save_path: Path | None = None,
):
    """Plot 3D point cloud with matplotlib."""
    import matplotlib.pyplot as plt

    if len(points) > max_points:
        indices = np.random.default_rng(42).choice(len(points), max_points, replace=False)
        points = points[indices]
        if colors is not None:
            colors = colors[indices]

    fig = plt.figure(figsize=(10, 8))
    ax = fig.add_subplot(111, projection="3d")
    ax.scatter(points[:, 0], points[:, 1], points[:, 2], c=colors, s=0.5, alpha=0.6)
    ax.set_title(title)
    ax.set_xlabel("X")
    ax.set_ylabel("Y")
    ax.set_zlabel("Z")

    if save_path:
        fig.savefig(str(save_path), dpi=150, bbox_inches="tight")
    else:
        plt.show()
    plt.close(fig)
    return fig


def plot_depth_map(
    depth: np.ndarray,
    title: str = "Depth Map",
    save_path: Path | None = None,
):
    """Plot depth map as heatmap; pixels without depth are left blank."""
    import matplotlib.pyplot as plt

    masked = np.ma.masked_less_equal(np.asarray(depth, dtype=np.float64), 0.0)
    fig, ax = plt.subplots(figsize=(10, 8))
    im = ax.imshow(masked, cmap="turbo")
    ax.set_title(title)
    fig.colorbar(im, ax=ax, label="Depth")

    if save_path:
        fig.savefig(str(save_path), dpi=150, bbox_inches="tight")
    else:
        plt.show()
    plt.close(fig)
    return fig


def plot_mesh(
    vertices: np.ndarray,
    faces: np.ndarray,
    title: str = "Mesh",
    max_faces: int = 20000,
    save_path: Path | None = None,
):
    """Render a triangle mesh as a shaded 3D surface."""
    import matplotlib.pyplot as plt
    from mpl_toolkits.mplot3d.art3d import Poly3DCollection

    faces = np.asarray(faces, dtype=np.int64).reshape(-1, 3)
    if len(faces) > max_faces:
        faces = faces[np.random.default_rng(42).choice(len(faces), max_faces, replace=False)]

    fig = plt.figure(figsize=(10, 8))
    ax = fig.add_subplot(111, projection="3d")
    if len(faces):
        ax.add_collection3d(Poly3DCollection(
            vertices[faces], facecolor=[0.7, 0.7, 0.8], edgecolor="k", linewidths=0.1, alpha=0.9,
        ))
    if len(vertices):
        lo, hi = vertices.min(axis=0), vertices.max(axis=0)
        ax.set_xlim(lo[0], hi[0] if hi[0] > lo[0] else lo[0] + 1)
        ax.set_ylim(lo[1], hi[1] if hi[1] > lo[1] else lo[1] + 1)
        ax.set_zlim(lo[2], hi[2] if hi[2] > lo[2] else lo[2] + 1)
    ax.set_title(title)
    ax.set_xlabel("X")
    ax.set_ylabel("Y")
    ax.set_zlabel("Z")

    if save_path:
        fig.savefig(str(save_path), dpi=150, bbox_inches="tight")
    else:
        plt.show()
    plt.close(fig)
    return fig
