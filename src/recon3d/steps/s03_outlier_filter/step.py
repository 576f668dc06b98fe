"""Step 03: Statistical outlier removal on the accumulated cloud."""

from __future__ import annotations

import logging
from typing import ClassVar

from recon3d.core.step_base import BaseStep
from recon3d.utils.io import read_point_cloud_ply, write_point_cloud_ply
from ._statistical_filter import statistical_inlier_mask
from .config import OutlierFilterConfig
from .contracts import OutlierFilterInput, OutlierFilterOutput

logger = logging.getLogger(__name__)


class OutlierFilterStep(BaseStep[OutlierFilterInput, OutlierFilterOutput, OutlierFilterConfig]):
    name: ClassVar[str] = "outlier_filter"
    input_type: ClassVar = OutlierFilterInput
    output_type: ClassVar = OutlierFilterOutput
    config_type: ClassVar = OutlierFilterConfig

    def validate_inputs(self, inputs: OutlierFilterInput) -> bool:
        if not inputs.point_cloud_path.exists():
            logger.error(f"Point cloud not found: {inputs.point_cloud_path}")
            return False
        return True

    def run(self, inputs: OutlierFilterInput) -> OutlierFilterOutput:
        output_dir = self.output_dir("interim", "s03_outlier_filter")
        cloud = read_point_cloud_ply(inputs.point_cloud_path)

        mask, mu, sigma = statistical_inlier_mask(
            cloud.positions,
            nb_neighbors=self.config.nb_neighbors,
            std_ratio=self.config.std_ratio,
            search=self.config.search,
        )
        filtered = cloud.subset(mask)
        logger.info(f"Outlier removal: {len(cloud)} -> {len(filtered)} points")

        filtered_path = write_point_cloud_ply(output_dir / "filtered.ply", filtered)
        return OutlierFilterOutput(
            filtered_cloud_path=filtered_path,
            num_input_points=len(cloud),
            num_points=len(filtered),
            mean_distance=mu,
            std_distance=sigma,
        )
