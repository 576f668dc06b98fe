"""Optional mesh clean-up after triangulation.

Laplacian smoothing and quadric decimation run through Open3D.
Degenerate-triangle removal is plain numpy so the strided path can use it
without Open3D installed. Every step returns a new Mesh with normals
recomputed by :func:`vertex_normals`.
"""

from __future__ import annotations

import logging

import numpy as np

from recon3d.core.contracts import Mesh
from ._normals import vertex_normals

logger = logging.getLogger(__name__)


def to_open3d_mesh(mesh: Mesh):
    import open3d as o3d

    o3d_mesh = o3d.geometry.TriangleMesh()
    o3d_mesh.vertices = o3d.utility.Vector3dVector(np.array(mesh.vertices))
    o3d_mesh.triangles = o3d.utility.Vector3iVector(mesh.faces.astype(np.int32))
    return o3d_mesh


def mesh_from_open3d(o3d_mesh, name: str) -> Mesh:
    vertices = np.asarray(o3d_mesh.vertices)
    triangles = np.asarray(o3d_mesh.triangles).reshape(-1).astype(np.uint32)
    return Mesh(
        vertices=vertices,
        normals=vertex_normals(vertices, triangles),
        triangles=triangles,
        name=name,
    )


def smooth_laplacian(mesh: Mesh, iterations: int = 3, strength: float = 0.5) -> Mesh:
    """Move each vertex ``strength`` of the way toward its neighbors' average, ``iterations`` times."""
    if iterations < 1 or mesh.triangle_count == 0:
        return mesh
    smoothed = to_open3d_mesh(mesh).filter_smooth_laplacian(iterations, strength)
    return mesh_from_open3d(smoothed, mesh.name)


def decimate(mesh: Mesh, target_triangles: int) -> Mesh:
    """Quadric error decimation down to at most ``target_triangles`` faces."""
    target_triangles = max(int(target_triangles), 1)
    if mesh.triangle_count <= target_triangles:
        return mesh

    simplified = to_open3d_mesh(mesh).simplify_quadric_decimation(
        target_number_of_triangles=target_triangles
    )
    simplified.remove_unreferenced_vertices()
    logger.debug(
        f"Decimated: {mesh.triangle_count} -> {len(simplified.triangles)} faces "
        f"({mesh.vertex_count} -> {len(simplified.vertices)} vertices)"
    )
    return mesh_from_open3d(simplified, mesh.name)


def remove_degenerate_triangles(mesh: Mesh, min_area: float = 1e-4) -> Mesh:
    """Drop triangles whose area is at most ``min_area``; vertices are kept."""
    if mesh.triangle_count == 0:
        return mesh

    faces = mesh.faces.astype(np.int64)
    v0, v1, v2 = (mesh.vertices[faces[:, i]] for i in range(3))
    areas = 0.5 * np.linalg.norm(np.cross(v1 - v0, v2 - v0), axis=1)
    keep = areas > min_area
    if keep.all():
        return mesh

    triangles = faces[keep].reshape(-1).astype(np.uint32)
    logger.info(f"Removed {int((~keep).sum())} degenerate triangles")
    return Mesh(
        vertices=mesh.vertices,
        normals=vertex_normals(mesh.vertices, triangles),
        triangles=triangles,
        texture_coordinates=mesh.texture_coordinates,
        name=mesh.name,
    )


def postprocess_mesh(mesh: Mesh, config) -> Mesh:
    """Apply the clean-up steps enabled in a MeshGenerationConfig, in a fixed order.

    smoothing -> decimation -> degenerate-triangle removal
    """
    if config.smoothing_iterations > 0:
        mesh = smooth_laplacian(mesh, config.smoothing_iterations, config.smoothing_strength)
    if config.decimation_ratio < 1.0:
        mesh = decimate(mesh, int(mesh.triangle_count * config.decimation_ratio))
    if config.remove_degenerate:
        mesh = remove_degenerate_triangles(mesh, config.degenerate_area)
    return mesh
