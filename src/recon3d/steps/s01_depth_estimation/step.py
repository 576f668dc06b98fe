"""Step 01: Per-frame depth maps from stereo block matching or sensor depth."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import ClassVar

import numpy as np

from recon3d.core.contracts import CameraObservation, ReconstructionMethod
from recon3d.core.errors import InvalidInputError, ReconstructionError
from recon3d.core.step_base import BaseStep
from recon3d.utils.io import list_frames, load_frame
from ._block_matching import estimate_depth
from .config import DepthEstimationConfig
from .contracts import DepthEstimationInput, DepthEstimationOutput

logger = logging.getLogger(__name__)


def depth_from_observation(
    obs: CameraObservation, config: DepthEstimationConfig
) -> tuple[np.ndarray, ReconstructionMethod]:
    """Depth map for one frame and the method that produced it.

    A sensor depth field is used as-is and bypasses block matching.
    """
    if obs.depth is not None:
        depth = np.asarray(obs.depth, dtype=np.float64)
        if depth.shape != obs.image_left.shape[:2]:
            raise InvalidInputError(
                f"Sensor depth {depth.shape} does not match image {obs.image_left.shape[:2]}"
            )
        return depth, ReconstructionMethod.SENSOR_DEPTH

    if obs.image_right is None:
        raise InvalidInputError("Frame has neither a right image nor sensor depth")

    depth = estimate_depth(
        obs.image_left,
        obs.image_right,
        baseline=obs.baseline or config.default_baseline,
        focal_length=obs.intrinsics.fx,
        patch_radius=config.patch_radius,
        max_disparity=config.max_disparity,
        zero_disparity_depth=config.zero_disparity_depth,
        invalidate_truncated_search=config.invalidate_truncated_search,
        border_depth=config.border_depth,
    )
    return depth, ReconstructionMethod.STEREO


def combine_methods(methods: set[ReconstructionMethod]) -> ReconstructionMethod:
    """Collapse the per-frame depth sources into one session-level tag."""
    if ReconstructionMethod.HYBRID in methods:
        return ReconstructionMethod.HYBRID
    if methods == {ReconstructionMethod.SENSOR_DEPTH}:
        return ReconstructionMethod.SENSOR_DEPTH
    if methods == {ReconstructionMethod.STEREO} or not methods:
        return ReconstructionMethod.STEREO
    return ReconstructionMethod.HYBRID


class DepthEstimationStep(
    BaseStep[DepthEstimationInput, DepthEstimationOutput, DepthEstimationConfig]
):
    name: ClassVar[str] = "depth_estimation"
    input_type: ClassVar = DepthEstimationInput
    output_type: ClassVar = DepthEstimationOutput
    config_type: ClassVar = DepthEstimationConfig

    def validate_inputs(self, inputs: DepthEstimationInput) -> bool:
        if not inputs.frames_dir.is_dir():
            logger.error(f"Frames directory not found: {inputs.frames_dir}")
            return False
        if not list_frames(inputs.frames_dir):
            logger.error(f"No frame_*.npz files in {inputs.frames_dir}")
            return False
        return True

    def run(self, inputs: DepthEstimationInput) -> DepthEstimationOutput:
        depth_dir = self.output_dir("interim", "s01_depth")
        frame_paths = list_frames(inputs.frames_dir)

        methods: set[ReconstructionMethod] = set()
        written = 0
        failed = 0
        for frame_path in frame_paths:
            try:
                obs = load_frame(frame_path)
                depth, method = depth_from_observation(obs, self.config)
            except (ReconstructionError, OSError, KeyError, ValueError) as exc:
                logger.warning(f"Skipping {frame_path.name}: {exc}")
                failed += 1
                continue

            np.save(depth_dir / f"{frame_path.stem}.npy", depth.astype(np.float32))
            if self.config.save_previews:
                self._save_preview(depth, depth_dir / "previews" / f"{frame_path.stem}.png")
            methods.add(method)
            written += 1
            logger.debug(f"{frame_path.name}: {method.value}, {int((depth > 0).sum())} valid px")

        logger.info(f"Depth maps: {written}/{len(frame_paths)} frames ({failed} skipped)")
        if written == 0:
            raise InvalidInputError(f"No usable frames in {inputs.frames_dir}")

        return DepthEstimationOutput(
            depth_dir=depth_dir,
            frames_dir=inputs.frames_dir,
            num_frames=written,
            num_failed=failed,
            reconstruction_method=combine_methods(methods),
        )

    @staticmethod
    def _save_preview(depth: np.ndarray, path: Path) -> None:
        from recon3d.utils.visualization import plot_depth_map

        path.parent.mkdir(parents=True, exist_ok=True)
        plot_depth_map(depth, title=path.stem, save_path=path)
