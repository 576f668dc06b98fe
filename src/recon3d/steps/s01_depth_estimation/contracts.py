"""I/O contracts for Step 01: Depth estimation."""

from pathlib import Path

from pydantic import BaseModel, Field

from recon3d.core.contracts import ReconstructionMethod


class DepthEstimationInput(BaseModel):
    frames_dir: Path = Field(..., description="Directory of frame_*.npz archives")


class DepthEstimationOutput(BaseModel):
    depth_dir: Path = Field(..., description="Directory of depth maps (.npy), one per frame")
    frames_dir: Path = Field(..., description="Frames the depth maps were computed from")
    num_frames: int = Field(..., description="Frames that produced a depth map")
    num_failed: int = Field(0, description="Frames skipped after an error")
    reconstruction_method: ReconstructionMethod = Field(
        ReconstructionMethod.STEREO, description="Depth source across all frames"
    )
