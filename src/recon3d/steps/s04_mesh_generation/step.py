"""Step 04: Triangulate the filtered cloud into a vertex/normal/triangle mesh."""

from __future__ import annotations

import logging
from typing import ClassVar

from recon3d.core.step_base import BaseStep
from recon3d.utils.io import read_point_cloud_ply, save_mesh_npz
from ._triangulation import generate_mesh
from .config import MeshGenerationConfig
from .contracts import MeshGenerationInput, MeshGenerationOutput

logger = logging.getLogger(__name__)


class MeshGenerationStep(
    BaseStep[MeshGenerationInput, MeshGenerationOutput, MeshGenerationConfig]
):
    name: ClassVar[str] = "mesh_generation"
    input_type: ClassVar = MeshGenerationInput
    output_type: ClassVar = MeshGenerationOutput
    config_type: ClassVar = MeshGenerationConfig

    def validate_inputs(self, inputs: MeshGenerationInput) -> bool:
        if not inputs.filtered_cloud_path.exists():
            logger.error(f"Filtered cloud not found: {inputs.filtered_cloud_path}")
            return False
        return True

    def run(self, inputs: MeshGenerationInput) -> MeshGenerationOutput:
        output_dir = self.output_dir("interim", "s04_mesh")
        cloud = read_point_cloud_ply(inputs.filtered_cloud_path)

        mesh = generate_mesh(cloud, self.config, name=inputs.mesh_name)
        mesh_path = save_mesh_npz(output_dir / "mesh.npz", mesh)

        return MeshGenerationOutput(
            mesh_path=mesh_path,
            num_vertices=mesh.vertex_count,
            num_triangles=mesh.triangle_count,
        )
