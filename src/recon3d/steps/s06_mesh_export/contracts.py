"""I/O contracts for Step 06: Mesh export."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class MeshExportInput(BaseModel):
    mesh_path: Path = Field(..., description="Mesh archive (.npz) from s04")


class MeshExportOutput(BaseModel):
    obj_path: Optional[Path] = Field(None, description="Path to exported .obj file")
    glb_path: Optional[Path] = Field(None, description="Path to exported .glb file")
    ply_path: Optional[Path] = Field(None, description="Path to exported .ply file")
    num_vertices: int = Field(0, description="Vertex count of the exported mesh")
    num_triangles: int = Field(0, description="Triangle count of the exported mesh")
