"""Geometric statistics of a triangle mesh."""

from __future__ import annotations

import logging

import numpy as np

from recon3d.core.contracts import Mesh, QualityMetrics, ReconstructionMethod
from recon3d.core.errors import DegenerateGeometryError

logger = logging.getLogger(__name__)


def _corners(mesh: Mesh) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    faces = mesh.faces.astype(np.int64)
    return mesh.vertices[faces[:, 0]], mesh.vertices[faces[:, 1]], mesh.vertices[faces[:, 2]]


def surface_area(mesh: Mesh) -> float:
    """Sum of 0.5 * |cross(v1 - v0, v2 - v0)| over all triangles."""
    if mesh.triangle_count == 0:
        return 0.0
    v0, v1, v2 = _corners(mesh)
    return float(0.5 * np.linalg.norm(np.cross(v1 - v0, v2 - v0), axis=1).sum())


def average_edge_length(mesh: Mesh) -> float:
    """Mean length of the three edges of every triangle.

    Edges shared by two triangles are counted twice.
    """
    if mesh.triangle_count == 0:
        return 0.0
    v0, v1, v2 = _corners(mesh)
    lengths = np.concatenate([
        np.linalg.norm(v1 - v0, axis=1),
        np.linalg.norm(v2 - v1, axis=1),
        np.linalg.norm(v0 - v2, axis=1),
    ])
    return float(lengths.mean())


def mesh_density(mesh: Mesh, strict: bool = False) -> float | None:
    """Vertices per unit bounding-box volume, or None for a flat or empty box."""
    volume = mesh.bounding_box.volume
    if volume > 0:
        return mesh.vertex_count / volume
    if strict:
        raise DegenerateGeometryError(
            f"Bounding box of '{mesh.name}' has zero volume (size {mesh.bounding_box.size.tolist()})"
        )
    logger.warning(f"Zero-volume bounding box for '{mesh.name}'; density undefined")
    return None


def analyze_mesh(
    mesh: Mesh,
    method: ReconstructionMethod = ReconstructionMethod.STEREO,
    strict: bool = False,
) -> QualityMetrics:
    bbox = mesh.bounding_box
    metrics = QualityMetrics(
        vertex_count=mesh.vertex_count,
        triangle_count=mesh.triangle_count,
        surface_area=surface_area(mesh),
        volume=bbox.volume,
        density=mesh_density(mesh, strict=strict),
        average_edge_length=average_edge_length(mesh),
        has_texture=mesh.has_texture,
        reconstruction_method=method,
        bounding_box_min=bbox.min.tolist(),
        bounding_box_max=bbox.max.tolist(),
    )
    logger.info(
        f"Quality: {metrics.vertex_count} verts, {metrics.triangle_count} tris, "
        f"area={metrics.surface_area:.4f}, avg edge={metrics.average_edge_length:.4f}"
    )
    return metrics
