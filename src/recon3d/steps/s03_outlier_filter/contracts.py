"""I/O contracts for Step 03: Statistical outlier removal."""

from pathlib import Path

from pydantic import BaseModel, Field


class OutlierFilterInput(BaseModel):
    point_cloud_path: Path = Field(..., description="Point cloud (.ply) from s02")


class OutlierFilterOutput(BaseModel):
    filtered_cloud_path: Path = Field(..., description="Inlier cloud (.ply)")
    num_input_points: int = Field(..., description="Points before filtering")
    num_points: int = Field(..., description="Points kept")
    mean_distance: float = Field(0.0, description="Global mean of per-point k-NN distances")
    std_distance: float = Field(0.0, description="Std deviation of per-point k-NN distances")
