"""Configuration for Step 04: Mesh generation."""

from typing import Literal

from pydantic import BaseModel, Field


class MeshGenerationConfig(BaseModel):
    method: Literal["strided", "ball_pivoting", "poisson"] = Field(
        "strided",
        description=(
            "strided: consecutive index triples over a downsampled cloud (fast placeholder); "
            "ball_pivoting / poisson: Open3D surface reconstruction"
        ),
    )
    downsample_stride: int = Field(5, ge=1, description="Keep every N-th point before meshing")
    min_points: int = Field(3, ge=3, description="Fewer points than this cannot be meshed")

    # Open3D surface reconstruction
    normal_radius: float = Field(0.1, gt=0, description="KDTree radius for normal estimation")
    normal_max_nn: int = Field(30, ge=3, description="Max neighbors for normal estimation")
    bpa_radii: list[float] = Field(
        default=[0.05, 0.1, 0.2], description="Ball radii for ball pivoting"
    )
    poisson_depth: int = Field(8, ge=1, description="Octree depth for Poisson reconstruction")
    poisson_density_quantile: float = Field(
        0.02, ge=0, lt=1, description="Drop Poisson vertices below this density quantile"
    )

    # Post-processing, applied in this order to every method's output
    smoothing_iterations: int = Field(
        0, ge=0, description="Laplacian smoothing passes (0 = off; Open3D)"
    )
    smoothing_strength: float = Field(
        0.5, gt=0, le=1, description="Fraction of the way each vertex moves toward its neighbors"
    )
    decimation_ratio: float = Field(
        1.0, gt=0, le=1, description="Fraction of triangles kept by quadric decimation (1.0 = off; Open3D)"
    )
    remove_degenerate: bool = Field(False, description="Drop near-zero-area triangles")
    degenerate_area: float = Field(
        1e-4, ge=0, description="Triangles with area at or below this are degenerate"
    )
