"""Tests for debugging plots."""

from pathlib import Path

import numpy as np
import pytest


def _has_matplotlib() -> bool:
    try:
        import matplotlib
        matplotlib.use("Agg")
        return True
    except ImportError:
        return False


needs_matplotlib = pytest.mark.skipif(not _has_matplotlib(), reason="matplotlib not installed")


@needs_matplotlib
class TestPlots:
    def test_depth_map(self, tmp_path: Path):
        from recon3d.utils.visualization import plot_depth_map

        depth = np.full((16, 24), 2.0)
        depth[:3] = 0.0
        out = tmp_path / "depth.png"
        plot_depth_map(depth, save_path=out)
        assert out.stat().st_size > 0

    def test_point_cloud_subsamples(self, tmp_path: Path):
        from recon3d.utils.visualization import plot_point_cloud

        pts = np.random.default_rng(0).normal(size=(500, 3))
        out = tmp_path / "cloud.png"
        plot_point_cloud(pts, max_points=100, save_path=out)
        assert out.exists()

    def test_mesh(self, tmp_path: Path):
        from recon3d.utils.visualization import plot_mesh

        verts = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
        out = tmp_path / "mesh.png"
        plot_mesh(verts, np.array([0, 1, 2], dtype=np.uint32), save_path=out)
        assert out.exists()

    def test_depth_previews_from_step(self, data_root: Path, sample_frames_dir: Path):
        from recon3d.steps.s01_depth_estimation.config import DepthEstimationConfig
        from recon3d.steps.s01_depth_estimation.contracts import DepthEstimationInput
        from recon3d.steps.s01_depth_estimation.step import DepthEstimationStep

        cfg = DepthEstimationConfig(max_disparity=8, save_previews=True)
        out = DepthEstimationStep(config=cfg, data_root=data_root).execute(
            DepthEstimationInput(frames_dir=sample_frames_dir)
        )
        assert len(list((out.depth_dir / "previews").glob("*.png"))) == 15
