"""Shared pytest fixtures for recon3d tests."""

from pathlib import Path

import numpy as np
import pytest

from recon3d.core.contracts import CameraIntrinsics, CameraObservation, CameraPose


@pytest.fixture
def data_root(tmp_path: Path) -> Path:
    """Create a temporary data root with standard directory structure."""
    for subdir in ["raw/frames", "interim/s01_depth", "interim/s02_point_cloud",
                    "interim/s03_outlier_filter", "interim/s04_mesh", "processed"]:
        (tmp_path / subdir).mkdir(parents=True, exist_ok=True)
    return tmp_path


@pytest.fixture
def intrinsics() -> CameraIntrinsics:
    return CameraIntrinsics(fx=100.0, fy=100.0, cx=31.5, cy=15.5, width=64, height=32)


@pytest.fixture
def random_texture() -> np.ndarray:
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, size=(32, 64), dtype=np.uint8)


@pytest.fixture
def sensor_frame(intrinsics: CameraIntrinsics, random_texture: np.ndarray) -> CameraObservation:
    """A frame with a constant 2.0 sensor depth field."""
    return CameraObservation(
        image_left=random_texture,
        depth=np.full((32, 64), 2.0, dtype=np.float32),
        intrinsics=intrinsics,
        pose=CameraPose(),
        timestamp=0.0,
    )


@pytest.fixture
def plane_frames():
    """15 stereo frames of a textured plane at depth 2.0."""
    from recon3d.utils.synthetic import textured_plane_sequence

    return textured_plane_sequence(num_frames=15, depth=2.0)


@pytest.fixture
def sample_frames_dir(data_root: Path, plane_frames) -> Path:
    """Synthetic plane sequence written as frame archives."""
    from recon3d.utils.io import save_frame

    frames_dir = data_root / "raw" / "frames"
    for i, obs in enumerate(plane_frames):
        save_frame(frames_dir / f"frame_{i:04d}.npz", obs)
    return frames_dir


@pytest.fixture
def grid_points() -> np.ndarray:
    """6 x 6 grid of points in the z = 0 plane, 0.1 apart."""
    xs, ys = np.meshgrid(np.arange(6) * 0.1, np.arange(6) * 0.1)
    return np.column_stack([xs.ravel(), ys.ravel(), np.zeros(36)])
