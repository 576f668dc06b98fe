"""Tests for S04: point cloud triangulation and vertex normals."""

from pathlib import Path

import numpy as np
import pytest

from recon3d.core.contracts import Mesh, PointCloud
from recon3d.core.errors import InvalidInputError
from recon3d.steps.s04_mesh_generation._normals import UP, face_normals, vertex_normals
from recon3d.steps.s04_mesh_generation._postprocess import (
    decimate,
    postprocess_mesh,
    remove_degenerate_triangles,
    smooth_laplacian,
)
from recon3d.steps.s04_mesh_generation._triangulation import (
    generate_mesh,
    strided_mesh,
    strided_triangles,
)
from recon3d.steps.s04_mesh_generation.config import MeshGenerationConfig
from recon3d.steps.s04_mesh_generation.contracts import MeshGenerationInput
from recon3d.steps.s04_mesh_generation.step import MeshGenerationStep


def _has_open3d() -> bool:
    try:
        import open3d  # noqa: F401
        return True
    except ImportError:
        return False


needs_open3d = pytest.mark.skipif(not _has_open3d(), reason="open3d not installed")


def _random_cloud(n: int, seed: int = 0) -> PointCloud:
    return PointCloud(positions=np.random.default_rng(seed).normal(size=(n, 3)))


def _assert_mesh_invariants(mesh):
    assert len(mesh.triangles) % 3 == 0
    if len(mesh.triangles):
        assert int(mesh.triangles.max()) < mesh.vertex_count
    assert len(mesh.normals) == mesh.vertex_count
    np.testing.assert_allclose(np.linalg.norm(mesh.normals, axis=1), 1.0, atol=1e-9)


class TestStridedTriangulation:
    @pytest.mark.parametrize("n, expected", [(0, 0), (2, 0), (3, 3), (7, 6), (9, 9)])
    def test_triangle_indices(self, n, expected):
        tris = strided_triangles(n)
        assert tris.dtype == np.uint32
        np.testing.assert_array_equal(tris, np.arange(expected))

    def test_downsamples_then_groups(self):
        cloud = _random_cloud(100)
        mesh = strided_mesh(cloud, stride=5)
        assert mesh.vertex_count == 20
        assert mesh.triangle_count == 6
        np.testing.assert_array_equal(mesh.vertices, cloud.positions[::5])
        _assert_mesh_invariants(mesh)

    @pytest.mark.parametrize("n", [3, 14, 15, 16, 1000])
    def test_invariants_hold_for_any_size(self, n):
        _assert_mesh_invariants(strided_mesh(_random_cloud(n, seed=n), stride=5))

    def test_too_few_points_rejected(self):
        with pytest.raises(InvalidInputError):
            generate_mesh(_random_cloud(2), MeshGenerationConfig())

    def test_mesh_carries_name(self):
        mesh = generate_mesh(_random_cloud(30), MeshGenerationConfig(), name="kitchen")
        assert mesh.name == "kitchen"


class TestVertexNormals:
    def test_face_normal_direction(self):
        verts = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
        normals, ok = face_normals(verts, np.array([[0, 1, 2]]))
        np.testing.assert_allclose(normals, [[0.0, 0.0, 1.0]])
        assert ok.all()

    def test_shared_vertex_averages(self):
        verts = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
        # Faces with normals +z and +x share vertex 0
        tris = np.array([0, 1, 2, 0, 2, 3])
        normals = vertex_normals(verts, tris)
        np.testing.assert_allclose(normals[0], np.array([1.0, 0.0, 1.0]) / np.sqrt(2))
        np.testing.assert_allclose(normals[1], [0.0, 0.0, 1.0])
        np.testing.assert_allclose(normals[3], [1.0, 0.0, 0.0])

    def test_unreferenced_vertex_gets_up(self):
        verts = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [5.0, 5.0, 5.0]])
        normals = vertex_normals(verts, np.array([0, 1, 2]))
        np.testing.assert_array_equal(normals[3], UP)

    def test_degenerate_triangle_gets_up(self):
        collinear = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [2.0, 0.0, 0.0]])
        normals = vertex_normals(collinear, np.array([0, 1, 2]))
        np.testing.assert_array_equal(normals, np.tile(UP, (3, 1)))

    def test_opposing_faces_cancel_to_up(self):
        verts = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
        normals = vertex_normals(verts, np.array([0, 1, 2, 0, 2, 1]))
        np.testing.assert_array_equal(normals, np.tile(UP, (3, 1)))


@needs_open3d
class TestOpen3dMethods:
    def _plane_grid(self) -> PointCloud:
        xs, ys = np.meshgrid(np.linspace(0, 1, 25), np.linspace(0, 1, 25))
        return PointCloud(positions=np.column_stack([xs.ravel(), ys.ravel(), np.zeros(625)]))

    def _sphere(self, n: int = 3000) -> PointCloud:
        rng = np.random.default_rng(5)
        v = rng.normal(size=(n, 3))
        return PointCloud(positions=v / np.linalg.norm(v, axis=1, keepdims=True))

    def test_ball_pivoting(self):
        cfg = MeshGenerationConfig(method="ball_pivoting", downsample_stride=1, bpa_radii=[0.05, 0.08])
        mesh = generate_mesh(self._plane_grid(), cfg)
        assert mesh.triangle_count > 0
        _assert_mesh_invariants(mesh)

    def test_poisson(self):
        cfg = MeshGenerationConfig(method="poisson", downsample_stride=1, poisson_depth=5, normal_radius=0.3)
        mesh = generate_mesh(self._sphere(), cfg)
        assert mesh.triangle_count > 0
        _assert_mesh_invariants(mesh)


class TestMeshGenerationStep:
    def test_writes_mesh_archive(self, data_root: Path):
        from recon3d.utils.io import load_mesh_npz, write_point_cloud_ply

        cloud_path = write_point_cloud_ply(
            data_root / "interim" / "s03_outlier_filter" / "filtered.ply", _random_cloud(50)
        )
        step = MeshGenerationStep(config=MeshGenerationConfig(), data_root=data_root)
        out = step.execute(MeshGenerationInput(filtered_cloud_path=cloud_path, mesh_name="room"))

        assert out.num_vertices == 10
        assert out.num_triangles == 3
        mesh = load_mesh_npz(out.mesh_path)
        assert mesh.name == "room"
        _assert_mesh_invariants(mesh)


def _grid_mesh(n: int = 10, bump: float = 0.0) -> Mesh:
    """n x n vertex grid in the z = 0 plane, two triangles per cell."""
    xs, ys = np.meshgrid(np.arange(n, dtype=float), np.arange(n, dtype=float))
    verts = np.column_stack([xs.ravel(), ys.ravel(), np.zeros(n * n)])
    verts[(n // 2) * n + n // 2, 2] = bump
    tris = []
    for row in range(n - 1):
        for col in range(n - 1):
            a = row * n + col
            tris += [a, a + 1, a + n, a + 1, a + n + 1, a + n]
    tris = np.array(tris, dtype=np.uint32)
    return Mesh(vertices=verts, normals=vertex_normals(verts, tris), triangles=tris)


class TestDegenerateRemoval:
    def test_drops_zero_area_triangles(self):
        verts = np.array([
            [0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0],
            [0.0, 0.0, 1.0], [1.0, 0.0, 1.0], [2.0, 0.0, 1.0],
        ])
        tris = np.array([0, 1, 2, 3, 4, 5], dtype=np.uint32)
        mesh = Mesh(vertices=verts, normals=vertex_normals(verts, tris), triangles=tris, name="m")

        cleaned = remove_degenerate_triangles(mesh)
        assert cleaned.triangle_count == 1
        assert cleaned.vertex_count == 6
        assert cleaned.name == "m"
        np.testing.assert_array_equal(cleaned.normals[3:], np.tile(UP, (3, 1)))
        _assert_mesh_invariants(cleaned)

    def test_area_threshold(self):
        verts = np.array([[0.0, 0.0, 0.0], [0.01, 0.0, 0.0], [0.0, 0.01, 0.0]])
        tris = np.array([0, 1, 2], dtype=np.uint32)
        mesh = Mesh(vertices=verts, normals=vertex_normals(verts, tris), triangles=tris)
        # Area 5e-5: degenerate at the default threshold, kept with a lower one
        assert remove_degenerate_triangles(mesh).triangle_count == 0
        assert remove_degenerate_triangles(mesh, min_area=1e-6) is mesh

    def test_strided_path_can_drop_collinear_triples(self):
        line = np.column_stack([np.arange(30.0), np.zeros(30), np.zeros(30)])
        cloud = PointCloud(positions=np.vstack([line, np.random.default_rng(1).normal(size=(30, 3))]))
        cfg = MeshGenerationConfig(downsample_stride=1, remove_degenerate=True)
        mesh = generate_mesh(cloud, cfg)
        assert mesh.vertex_count == 60
        assert mesh.triangle_count == 10
        _assert_mesh_invariants(mesh)

    def test_postprocess_is_off_by_default(self):
        mesh = _grid_mesh()
        assert postprocess_mesh(mesh, MeshGenerationConfig()) is mesh


@needs_open3d
class TestOpen3dPostprocess:
    def test_laplacian_smoothing_flattens_bump(self):
        mesh = _grid_mesh(bump=1.0)
        smoothed = smooth_laplacian(mesh, iterations=3, strength=0.5)
        assert smoothed.vertex_count == mesh.vertex_count
        assert smoothed.triangle_count == mesh.triangle_count
        assert np.abs(smoothed.vertices[:, 2]).max() < 1.0
        _assert_mesh_invariants(smoothed)

    def test_decimation_halves_triangles(self):
        mesh = _grid_mesh(12)
        decimated = decimate(mesh, mesh.triangle_count // 2)
        assert 0 < decimated.triangle_count <= mesh.triangle_count // 2
        _assert_mesh_invariants(decimated)

    def test_decimation_noop_below_target(self):
        mesh = _grid_mesh()
        assert decimate(mesh, mesh.triangle_count) is mesh

    def test_generate_mesh_runs_postprocess(self):
        cloud = _random_cloud(300, seed=2)
        plain = generate_mesh(cloud, MeshGenerationConfig(downsample_stride=1))
        cfg = MeshGenerationConfig(
            downsample_stride=1, smoothing_iterations=2, decimation_ratio=0.5, remove_degenerate=True
        )
        mesh = generate_mesh(cloud, cfg)
        assert mesh.triangle_count <= plain.triangle_count // 2
        _assert_mesh_invariants(mesh)
