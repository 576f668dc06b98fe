"""3D geometry utilities: rotations, rigid transforms, pinhole projection."""

from __future__ import annotations

import logging

import numpy as np

logger = logging.getLogger(__name__)


def qvec2rotmat(qvec: list[float] | np.ndarray) -> np.ndarray:
    """Convert quaternion (w, x, y, z) to 3x3 rotation matrix."""
    w, x, y, z = np.asarray(qvec, dtype=np.float64) / np.linalg.norm(qvec)
    return np.array([
        [1 - 2*y*y - 2*z*z, 2*x*y - 2*w*z, 2*x*z + 2*w*y],
        [2*x*y + 2*w*z, 1 - 2*x*x - 2*z*z, 2*y*z - 2*w*x],
        [2*x*z - 2*w*y, 2*y*z + 2*w*x, 1 - 2*x*x - 2*y*y],
    ])


def rotation_about_axis(axis: list[float] | np.ndarray, angle: float) -> np.ndarray:
    """Rodrigues rotation of ``angle`` radians about ``axis``."""
    axis = np.asarray(axis, dtype=np.float64)
    axis = axis / np.linalg.norm(axis)
    half = angle / 2.0
    return qvec2rotmat([np.cos(half), *(np.sin(half) * axis)])


def transform_points(points: np.ndarray, rotation: np.ndarray, translation: np.ndarray) -> np.ndarray:
    """Apply ``R @ p + t`` to every row of an (N, 3) array."""
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    return points @ np.asarray(rotation).T + np.asarray(translation)


def project_points(
    points_world: np.ndarray,
    rotation: np.ndarray,
    translation: np.ndarray,
    fx: float,
    fy: float,
    cx: float,
    cy: float,
) -> tuple[np.ndarray, np.ndarray]:
    """Project world points through a camera-to-world pose into pixel coordinates.

    Returns:
        (uv, z): (N, 2) pixel coordinates and (N,) camera-space depth.
    """
    rotation = np.asarray(rotation, dtype=np.float64)
    cam = (np.asarray(points_world, dtype=np.float64).reshape(-1, 3) - translation) @ rotation
    z = cam[:, 2]
    with np.errstate(divide="ignore", invalid="ignore"):
        u = cam[:, 0] * fx / z + cx
        v = cam[:, 1] * fy / z + cy
    return np.column_stack([u, v]), z


def normalize_rows(vectors: np.ndarray, eps: float = 1e-12) -> tuple[np.ndarray, np.ndarray]:
    """Normalize each row to unit length.

    Returns:
        (unit, ok): normalized rows (zero rows left at zero) and a mask of
        rows whose length exceeded ``eps``.
    """
    vectors = np.asarray(vectors, dtype=np.float64)
    lengths = np.linalg.norm(vectors, axis=1)
    ok = lengths > eps
    unit = np.zeros_like(vectors)
    unit[ok] = vectors[ok] / lengths[ok, None]
    return unit, ok
