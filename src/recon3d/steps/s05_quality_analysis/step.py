"""Step 05: Surface area, volume, density and edge statistics of the mesh."""

from __future__ import annotations

import logging
from typing import ClassVar

from recon3d.core.step_base import BaseStep
from recon3d.utils.io import load_mesh_npz, write_json
from ._metrics import analyze_mesh
from .config import QualityAnalysisConfig
from .contracts import QualityAnalysisInput, QualityAnalysisOutput

logger = logging.getLogger(__name__)


class QualityAnalysisStep(
    BaseStep[QualityAnalysisInput, QualityAnalysisOutput, QualityAnalysisConfig]
):
    name: ClassVar[str] = "quality_analysis"
    input_type: ClassVar = QualityAnalysisInput
    output_type: ClassVar = QualityAnalysisOutput
    config_type: ClassVar = QualityAnalysisConfig

    def validate_inputs(self, inputs: QualityAnalysisInput) -> bool:
        if not inputs.mesh_path.exists():
            logger.error(f"Mesh not found: {inputs.mesh_path}")
            return False
        return True

    def run(self, inputs: QualityAnalysisInput) -> QualityAnalysisOutput:
        output_dir = self.output_dir("processed")
        mesh = load_mesh_npz(inputs.mesh_path)

        metrics = analyze_mesh(
            mesh, inputs.reconstruction_method, strict=self.config.strict_density
        )
        metrics_path = write_json(
            output_dir / "quality_metrics.json", metrics.model_dump(mode="json")
        )
        return QualityAnalysisOutput(metrics_path=metrics_path, metrics=metrics)
