"""Configuration for Step 03: Statistical outlier removal."""

from typing import Literal

from pydantic import BaseModel, Field


class OutlierFilterConfig(BaseModel):
    nb_neighbors: int = Field(20, ge=1, description="k nearest neighbors per point")
    std_ratio: float = Field(2.0, description="Keep points with mean distance < mu + std_ratio * sigma")
    search: Literal["kdtree", "exhaustive"] = Field(
        "kdtree", description="Neighbor search backend (same result, different cost)"
    )
