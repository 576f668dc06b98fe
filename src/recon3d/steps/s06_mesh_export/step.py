"""Step 06: Mesh export to OBJ text, GLB and PLY.

- OBJ: human-readable interchange format with per-vertex normals
- GLB (glTF Binary): for 3D viewers and content tools
- PLY: binary mesh for point/mesh processing tools
"""

from __future__ import annotations

import logging
from typing import ClassVar

from recon3d.core.step_base import BaseStep
from recon3d.utils.io import load_mesh_npz
from ._exporter import export_mesh
from .config import MeshExportConfig
from .contracts import MeshExportInput, MeshExportOutput

logger = logging.getLogger(__name__)


class MeshExportStep(BaseStep[MeshExportInput, MeshExportOutput, MeshExportConfig]):
    name: ClassVar[str] = "mesh_export"
    input_type: ClassVar = MeshExportInput
    output_type: ClassVar = MeshExportOutput
    config_type: ClassVar = MeshExportConfig

    def validate_inputs(self, inputs: MeshExportInput) -> bool:
        if not inputs.mesh_path.exists():
            logger.error(f"Mesh archive not found: {inputs.mesh_path}")
            return False
        return True

    def run(self, inputs: MeshExportInput) -> MeshExportOutput:
        output_dir = self.output_dir("processed")
        mesh = load_mesh_npz(inputs.mesh_path)

        paths = {}
        for fmt in self.config.formats:
            if fmt in ("glb", "ply"):
                from ._glb_writer import _has_trimesh

                if not _has_trimesh():
                    logger.warning(
                        f"trimesh not installed; skipping {fmt.upper()} export. "
                        "Install with: pip install trimesh"
                    )
                    continue
            paths[fmt] = export_mesh(
                mesh, fmt, self.config.filename, output_dir, y_up=self.config.glb_y_up
            )

        logger.info(
            "Mesh export complete: "
            + ", ".join(f"{fmt.upper()}={'yes' if fmt in paths else 'no'}" for fmt in ("obj", "glb", "ply"))
        )
        return MeshExportOutput(
            obj_path=paths.get("obj"),
            glb_path=paths.get("glb"),
            ply_path=paths.get("ply"),
            num_vertices=mesh.vertex_count,
            num_triangles=mesh.triangle_count,
        )
