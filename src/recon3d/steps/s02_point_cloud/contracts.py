"""I/O contracts for Step 02: Point cloud back-projection."""

from pathlib import Path

from pydantic import BaseModel, Field

from recon3d.core.contracts import ReconstructionMethod


class PointCloudInput(BaseModel):
    depth_dir: Path = Field(..., description="Directory of depth maps (.npy) from s01")
    frames_dir: Path = Field(..., description="Frame archives holding intrinsics and poses")
    reconstruction_method: ReconstructionMethod = ReconstructionMethod.STEREO


class PointCloudOutput(BaseModel):
    point_cloud_path: Path = Field(..., description="Accumulated world-space cloud (.ply)")
    num_points: int = Field(..., description="Number of points in the cloud")
    num_frames: int = Field(..., description="Frames that contributed points")
    reconstruction_method: ReconstructionMethod = ReconstructionMethod.STEREO
