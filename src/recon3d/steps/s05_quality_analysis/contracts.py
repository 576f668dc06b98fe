"""I/O contracts for Step 05: Mesh quality analysis."""

from pathlib import Path

from pydantic import BaseModel, Field

from recon3d.core.contracts import QualityMetrics, ReconstructionMethod


class QualityAnalysisInput(BaseModel):
    mesh_path: Path = Field(..., description="Mesh archive (.npz) from s04")
    reconstruction_method: ReconstructionMethod = Field(
        ReconstructionMethod.STEREO, description="Depth source tag carried into the metrics"
    )


class QualityAnalysisOutput(BaseModel):
    metrics_path: Path = Field(..., description="Path to quality_metrics.json")
    metrics: QualityMetrics
