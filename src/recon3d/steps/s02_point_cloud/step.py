"""Step 02: Back-project depth maps into one accumulated world-space cloud."""

from __future__ import annotations

import logging
from typing import ClassVar

import numpy as np

from recon3d.core.contracts import PointCloud
from recon3d.core.errors import InvalidInputError
from recon3d.core.step_base import BaseStep
from recon3d.utils.io import load_frame, write_point_cloud_ply
from ._back_projection import depth_to_point_cloud
from .config import PointCloudConfig
from .contracts import PointCloudInput, PointCloudOutput

logger = logging.getLogger(__name__)


class PointCloudStep(BaseStep[PointCloudInput, PointCloudOutput, PointCloudConfig]):
    name: ClassVar[str] = "point_cloud"
    input_type: ClassVar = PointCloudInput
    output_type: ClassVar = PointCloudOutput
    config_type: ClassVar = PointCloudConfig

    def validate_inputs(self, inputs: PointCloudInput) -> bool:
        if not inputs.depth_dir.is_dir() or not inputs.frames_dir.is_dir():
            logger.error(f"Missing depth dir {inputs.depth_dir} or frames dir {inputs.frames_dir}")
            return False
        return True

    def run(self, inputs: PointCloudInput) -> PointCloudOutput:
        output_dir = self.output_dir("interim", "s02_point_cloud")
        cloud = PointCloud()
        contributing = 0

        for depth_path in sorted(inputs.depth_dir.glob("*.npy")):
            frame_path = inputs.frames_dir / f"{depth_path.stem}.npz"
            if not frame_path.exists():
                logger.warning(f"No frame archive for {depth_path.name}; skipping")
                continue

            obs = load_frame(frame_path)
            frame_cloud = depth_to_point_cloud(
                np.load(depth_path),
                obs.intrinsics,
                obs.pose,
                image=obs.image_left if self.config.attach_colors else None,
                max_range=self.config.max_range,
                pixel_stride=self.config.pixel_stride,
            )
            if frame_cloud.is_empty:
                logger.info(f"{depth_path.stem}: no valid depth pixels")
                continue
            cloud.append(frame_cloud.positions, frame_cloud.colors)
            contributing += 1

        if cloud.is_empty:
            raise InvalidInputError("No valid depth pixels in any frame")

        cloud_path = write_point_cloud_ply(output_dir / "cloud.ply", cloud)
        logger.info(f"Accumulated {len(cloud)} points from {contributing} frames -> {cloud_path}")

        return PointCloudOutput(
            point_cloud_path=cloud_path,
            num_points=len(cloud),
            num_frames=contributing,
            reconstruction_method=inputs.reconstruction_method,
        )
