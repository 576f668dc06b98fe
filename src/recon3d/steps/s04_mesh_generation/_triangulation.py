"""Point cloud to triangle mesh.

``strided_mesh`` groups consecutive vertices into triangles (0, 1, 2),
(3, 4, 5), ... It ignores geometry entirely and only keeps the
point-cloud-in / mesh-out contract. ``ball_pivoting_mesh`` and
``poisson_mesh`` run real surface reconstruction through Open3D. Whatever
the method, ``generate_mesh`` finishes with the clean-up in ``_postprocess``.
"""

from __future__ import annotations

import logging

import numpy as np

from recon3d.core.contracts import Mesh, PointCloud
from recon3d.core.errors import InvalidInputError
from ._normals import vertex_normals
from ._postprocess import mesh_from_open3d, postprocess_mesh

logger = logging.getLogger(__name__)


def strided_triangles(vertex_count: int) -> np.ndarray:
    """Flat uint32 indices of consecutive triples; a trailing 1-2 vertices stay unused."""
    n_tri = vertex_count // 3
    return np.arange(n_tri * 3, dtype=np.uint32)


def strided_mesh(cloud: PointCloud, stride: int = 5, name: str = "Reconstruction") -> Mesh:
    downsampled = cloud.downsample(stride)
    vertices = downsampled.positions
    triangles = strided_triangles(len(vertices))
    return Mesh(
        vertices=vertices,
        normals=vertex_normals(vertices, triangles),
        triangles=triangles,
        name=name,
    )


def _to_open3d(cloud: PointCloud, radius: float, max_nn: int):
    import open3d as o3d

    pcd = o3d.geometry.PointCloud()
    pcd.points = o3d.utility.Vector3dVector(cloud.positions)
    if cloud.colors is not None:
        pcd.colors = o3d.utility.Vector3dVector(np.clip(cloud.colors, 0.0, 1.0))
    pcd.estimate_normals(
        search_param=o3d.geometry.KDTreeSearchParamHybrid(radius=radius, max_nn=max_nn)
    )
    return pcd


def ball_pivoting_mesh(
    cloud: PointCloud,
    stride: int = 5,
    radii: list[float] | None = None,
    normal_radius: float = 0.1,
    normal_max_nn: int = 30,
    name: str = "Reconstruction",
) -> Mesh:
    import open3d as o3d

    pcd = _to_open3d(cloud.downsample(stride), normal_radius, normal_max_nn)
    o3d_mesh = o3d.geometry.TriangleMesh.create_from_point_cloud_ball_pivoting(
        pcd, o3d.utility.DoubleVector(radii or [0.05, 0.1, 0.2])
    )
    o3d_mesh.remove_degenerate_triangles()
    o3d_mesh.remove_unreferenced_vertices()
    return mesh_from_open3d(o3d_mesh, name)


def poisson_mesh(
    cloud: PointCloud,
    stride: int = 5,
    depth: int = 8,
    density_quantile: float = 0.02,
    normal_radius: float = 0.1,
    normal_max_nn: int = 30,
    name: str = "Reconstruction",
) -> Mesh:
    import open3d as o3d

    pcd = _to_open3d(cloud.downsample(stride), normal_radius, normal_max_nn)
    o3d_mesh, densities = o3d.geometry.TriangleMesh.create_from_point_cloud_poisson(
        pcd, depth=depth
    )
    densities = np.asarray(densities)
    if density_quantile > 0 and len(densities):
        # Low-density vertices are extrapolated surface far from any sample.
        o3d_mesh.remove_vertices_by_mask(densities < np.quantile(densities, density_quantile))
    return mesh_from_open3d(o3d_mesh, name)


def generate_mesh(cloud: PointCloud, config, name: str = "Reconstruction") -> Mesh:
    """Mesh ``cloud`` with the method named in a MeshGenerationConfig."""
    if len(cloud) < config.min_points:
        raise InvalidInputError(
            f"Need at least {config.min_points} points to mesh, got {len(cloud)}"
        )

    if config.method == "ball_pivoting":
        mesh = ball_pivoting_mesh(
            cloud, config.downsample_stride, config.bpa_radii,
            config.normal_radius, config.normal_max_nn, name,
        )
    elif config.method == "poisson":
        mesh = poisson_mesh(
            cloud, config.downsample_stride, config.poisson_depth,
            config.poisson_density_quantile, config.normal_radius, config.normal_max_nn, name,
        )
    else:
        mesh = strided_mesh(cloud, config.downsample_stride, name)

    mesh = postprocess_mesh(mesh, config)
    mesh.validate()
    logger.info(
        f"Generated mesh ({config.method}): {mesh.vertex_count} vertices, "
        f"{mesh.triangle_count} triangles"
    )
    return mesh
