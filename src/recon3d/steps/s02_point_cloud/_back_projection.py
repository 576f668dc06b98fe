"""Pinhole back-projection of depth maps into world space."""

from __future__ import annotations

import numpy as np

from recon3d.core.contracts import CameraIntrinsics, CameraPose, PointCloud
from recon3d.utils.geometry import transform_points


def valid_depth_mask(depth: np.ndarray, max_range: float = 100.0) -> np.ndarray:
    """True where ``0 < depth <= max_range`` (NaN is invalid)."""
    depth = np.asarray(depth, dtype=np.float64)
    with np.errstate(invalid="ignore"):
        return (depth > 0) & (depth <= max_range)


def back_project(
    depth: np.ndarray,
    intrinsics: CameraIntrinsics,
    pose: CameraPose,
    max_range: float = 100.0,
    pixel_stride: int = 1,
) -> tuple[np.ndarray, np.ndarray]:
    """Lift valid depth pixels into world coordinates.

    Points come out in raster (row-major) order of the depth map.

    Returns:
        (points, pixels): (N, 3) world positions and (N, 2) integer (x, y)
        source pixel of each point.
    """
    depth = np.asarray(depth, dtype=np.float64)
    if depth.ndim != 2:
        raise ValueError(f"Depth map must be 2D, got shape {depth.shape}")

    mask = valid_depth_mask(depth, max_range)
    if pixel_stride > 1:
        sampled = np.zeros_like(mask)
        sampled[::pixel_stride, ::pixel_stride] = True
        mask &= sampled

    ys, xs = np.nonzero(mask)
    z = depth[ys, xs]
    cam = np.column_stack([
        (xs - intrinsics.cx) * z / intrinsics.fx,
        (ys - intrinsics.cy) * z / intrinsics.fy,
        z,
    ])
    world = transform_points(cam, pose.rotation_matrix(), pose.translation_vector())
    return world, np.column_stack([xs, ys])


def depth_to_point_cloud(
    depth: np.ndarray,
    intrinsics: CameraIntrinsics,
    pose: CameraPose,
    image: np.ndarray | None = None,
    max_range: float = 100.0,
    pixel_stride: int = 1,
) -> PointCloud:
    """Back-project a depth map, optionally sampling colors from ``image``."""
    points, pixels = back_project(depth, intrinsics, pose, max_range, pixel_stride)
    colors = None
    if image is not None and len(points):
        img = np.asarray(image, dtype=np.float64)
        if img.shape[:2] == depth.shape:
            samples = img[pixels[:, 1], pixels[:, 0]]
            if samples.ndim == 1:
                samples = np.repeat(samples[:, None], 3, axis=1)
            colors = samples[:, :3] / 255.0
    return PointCloud(positions=points, colors=colors)
