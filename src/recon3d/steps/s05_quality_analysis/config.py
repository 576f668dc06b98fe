"""Configuration for Step 05: Mesh quality analysis."""

from pydantic import BaseModel, Field


class QualityAnalysisConfig(BaseModel):
    strict_density: bool = Field(
        False,
        description="Raise DegenerateGeometryError on a zero-volume box instead of reporting density=None",
    )
