"""Configuration for Step 01: Depth estimation."""

from pydantic import BaseModel, Field


class DepthEstimationConfig(BaseModel):
    patch_radius: int = Field(3, ge=1, description="Block half-size (3 -> 7x7 window)")
    max_disparity: int = Field(64, ge=1, description="Disparities searched: [0, max_disparity)")
    zero_disparity_depth: float = Field(
        1.0, description="Depth assigned when the best disparity is 0"
    )
    invalidate_truncated_search: bool = Field(
        False,
        description="Mark pixels whose disparity search was cut short by the left border as invalid",
    )
    border_depth: float = Field(
        1.0, ge=0, description="Depth of pixels too close to the edge for a full patch (0 = invalid)"
    )
    default_baseline: float = Field(0.1, gt=0, description="Baseline when a frame carries none")
    save_previews: bool = Field(False, description="Write a PNG heatmap next to each depth map")
