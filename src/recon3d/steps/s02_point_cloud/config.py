"""Configuration for Step 02: Point cloud back-projection."""

from pydantic import BaseModel, Field


class PointCloudConfig(BaseModel):
    max_range: float = Field(100.0, gt=0, description="Depths above this are invalid")
    pixel_stride: int = Field(
        1, ge=1, description="Back-project every N-th pixel in x and y (1 = all pixels)"
    )
    attach_colors: bool = Field(True, description="Carry left-image intensity as point color")
