"""Per-vertex normals by accumulating unit face normals."""

from __future__ import annotations

import numpy as np

from recon3d.utils.geometry import normalize_rows

UP = np.array([0.0, 1.0, 0.0])


def face_normals(vertices: np.ndarray, faces: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Unit normal of each triangle, ``normalize(cross(v1 - v0, v2 - v0))``.

    Returns:
        (normals, ok): degenerate (zero-area) faces get a zero normal and
        ``ok == False``.
    """
    v0, v1, v2 = (vertices[faces[:, i]] for i in range(3))
    return normalize_rows(np.cross(v1 - v0, v2 - v0))


def vertex_normals(vertices: np.ndarray, triangles: np.ndarray) -> np.ndarray:
    """Average the face normals touching each vertex, then renormalize.

    Vertices touched by no triangle, or whose face normals cancel out,
    get the up vector (0, 1, 0).
    """
    vertices = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
    faces = np.asarray(triangles, dtype=np.int64).reshape(-1, 3)

    accum = np.zeros_like(vertices)
    if len(faces):
        fn, _ = face_normals(vertices, faces)
        for i in range(3):
            np.add.at(accum, faces[:, i], fn)

    normals, ok = normalize_rows(accum)
    normals[~ok] = UP
    return normals
