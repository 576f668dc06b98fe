"""Tests for S02: pinhole back-projection and cloud accumulation."""

from pathlib import Path

import numpy as np
import pytest

from recon3d.core.contracts import CameraIntrinsics, CameraPose, ReconstructionMethod
from recon3d.core.errors import InvalidInputError
from recon3d.steps.s02_point_cloud._back_projection import (
    back_project,
    depth_to_point_cloud,
    valid_depth_mask,
)
from recon3d.steps.s02_point_cloud.config import PointCloudConfig
from recon3d.steps.s02_point_cloud.contracts import PointCloudInput
from recon3d.steps.s02_point_cloud.step import PointCloudStep


class TestBackProjection:
    def test_principal_point_maps_to_optical_axis(self):
        k = CameraIntrinsics(fx=50.0, fy=50.0, cx=2.0, cy=1.0)
        depth = np.zeros((3, 5))
        depth[1, 2] = 4.0
        points, pixels = back_project(depth, k, CameraPose())
        np.testing.assert_allclose(points, [[0.0, 0.0, 4.0]])
        np.testing.assert_array_equal(pixels, [[2, 1]])

    def test_pinhole_formula(self):
        k = CameraIntrinsics(fx=100.0, fy=200.0, cx=1.0, cy=0.5)
        depth = np.full((2, 3), 2.0)
        points, _ = back_project(depth, k, CameraPose())
        # Raster order: (x=0, y=0) first, then along the row
        np.testing.assert_allclose(points[0], [(0 - 1.0) * 2.0 / 100.0, (0 - 0.5) * 2.0 / 200.0, 2.0])
        np.testing.assert_allclose(points[5], [(2 - 1.0) * 2.0 / 100.0, (1 - 0.5) * 2.0 / 200.0, 2.0])

    def test_pose_is_applied(self):
        from recon3d.utils.geometry import rotation_about_axis

        k = CameraIntrinsics(fx=10.0, fy=10.0, cx=0.0, cy=0.0)
        R = rotation_about_axis([0.0, 1.0, 0.0], np.pi / 2)
        pose = CameraPose(rotation=R.flatten().tolist(), translation=[1.0, 2.0, 3.0])
        depth = np.array([[5.0]])
        points, _ = back_project(depth, k, pose)
        np.testing.assert_allclose(points[0], R @ [0.0, 0.0, 5.0] + [1.0, 2.0, 3.0], atol=1e-12)

    def test_projection_round_trip(self, intrinsics):
        from recon3d.utils.geometry import project_points, rotation_about_axis

        rng = np.random.default_rng(3)
        depth = rng.uniform(0.5, 20.0, size=(32, 64))
        R = rotation_about_axis([0.3, 1.0, -0.2], 0.4)
        pose = CameraPose(rotation=R.flatten().tolist(), translation=[0.1, -0.4, 2.0])
        points, pixels = back_project(depth, intrinsics, pose)

        uv, z = project_points(
            points, pose.rotation_matrix(), pose.translation_vector(),
            intrinsics.fx, intrinsics.fy, intrinsics.cx, intrinsics.cy,
        )
        np.testing.assert_allclose(uv, pixels, atol=1e-6)
        np.testing.assert_allclose(z, depth[pixels[:, 1], pixels[:, 0]], rtol=1e-9)

    @pytest.mark.parametrize("bad", [0.0, -1.0, 100.5, np.nan, np.inf])
    def test_invalid_depths_dropped(self, bad):
        k = CameraIntrinsics(fx=1.0, fy=1.0, cx=0.0, cy=0.0)
        depth = np.array([[1.0, bad, 100.0]])
        points, pixels = back_project(depth, k, CameraPose(), max_range=100.0)
        np.testing.assert_array_equal(pixels[:, 0], [0, 2])
        assert np.isfinite(points).all()

    def test_valid_depth_mask_bounds(self):
        mask = valid_depth_mask(np.array([0.0, 1e-9, 100.0, 100.0001]), max_range=100.0)
        np.testing.assert_array_equal(mask, [False, True, True, False])

    def test_all_invalid_gives_empty_cloud(self, intrinsics):
        cloud = depth_to_point_cloud(np.zeros((32, 64)), intrinsics, CameraPose())
        assert cloud.is_empty

    def test_pixel_stride(self, intrinsics):
        points, pixels = back_project(np.ones((32, 64)), intrinsics, CameraPose(), pixel_stride=4)
        assert len(points) == 8 * 16
        assert (pixels % 4 == 0).all()

    def test_colors_sampled_from_image(self, intrinsics, random_texture):
        depth = np.zeros((32, 64))
        depth[5, 7] = 1.0
        cloud = depth_to_point_cloud(depth, intrinsics, CameraPose(), image=random_texture)
        np.testing.assert_allclose(cloud.colors, [[random_texture[5, 7] / 255.0] * 3])

    def test_rejects_non_2d_depth(self, intrinsics):
        with pytest.raises(ValueError):
            back_project(np.ones(10), intrinsics, CameraPose())


class TestPointCloudStep:
    def _write_depth(self, data_root: Path, frames_dir: Path, value: float) -> Path:
        from recon3d.utils.io import list_frames, load_frame

        depth_dir = data_root / "interim" / "s01_depth"
        for frame_path in list_frames(frames_dir)[:3]:
            obs = load_frame(frame_path)
            np.save(depth_dir / f"{frame_path.stem}.npy", np.full(obs.image_left.shape, value, np.float32))
        return depth_dir

    def test_accumulates_frames(self, data_root: Path, sample_frames_dir: Path):
        depth_dir = self._write_depth(data_root, sample_frames_dir, 2.0)
        step = PointCloudStep(config=PointCloudConfig(pixel_stride=2), data_root=data_root)
        out = step.execute(PointCloudInput(
            depth_dir=depth_dir, frames_dir=sample_frames_dir,
            reconstruction_method=ReconstructionMethod.SENSOR_DEPTH,
        ))
        assert out.num_frames == 3
        assert out.num_points == 3 * 16 * 80
        assert out.point_cloud_path.exists()
        assert out.reconstruction_method == ReconstructionMethod.SENSOR_DEPTH

    def test_no_valid_depth_raises(self, data_root: Path, sample_frames_dir: Path):
        depth_dir = self._write_depth(data_root, sample_frames_dir, 500.0)
        step = PointCloudStep(config=PointCloudConfig(), data_root=data_root)
        with pytest.raises(InvalidInputError):
            step.execute(PointCloudInput(depth_dir=depth_dir, frames_dir=sample_frames_dir))
