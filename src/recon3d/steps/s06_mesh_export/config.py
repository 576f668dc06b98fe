"""Configuration for Step 06: Mesh export."""

from typing import Literal

from pydantic import BaseModel, Field


class MeshExportConfig(BaseModel):
    formats: list[Literal["obj", "glb", "ply"]] = Field(
        default=["obj"], description="Formats to write: obj (text), glb (binary glTF), ply"
    )
    filename: str = Field("reconstruction", description="Output file stem")
    glb_y_up: bool = Field(
        False, description="Rotate Z-up scene coordinates to glTF's Y-up on GLB export"
    )
