"""I/O contracts for Step 04: Mesh generation."""

from pathlib import Path

from pydantic import BaseModel, Field


class MeshGenerationInput(BaseModel):
    filtered_cloud_path: Path = Field(..., description="Filtered point cloud (.ply) from s03")
    mesh_name: str = Field("Reconstruction", description="Name carried by the mesh")


class MeshGenerationOutput(BaseModel):
    mesh_path: Path = Field(..., description="Mesh archive (.npz: vertices, normals, triangles)")
    num_vertices: int = Field(..., description="Number of mesh vertices")
    num_triangles: int = Field(..., description="Number of mesh triangles")
