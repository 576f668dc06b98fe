"""Configuration for an in-memory reconstruction session."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

from recon3d.steps.s01_depth_estimation.config import DepthEstimationConfig
from recon3d.steps.s02_point_cloud.config import PointCloudConfig
from recon3d.steps.s03_outlier_filter.config import OutlierFilterConfig
from recon3d.steps.s04_mesh_generation.config import MeshGenerationConfig
from recon3d.steps.s05_quality_analysis.config import QualityAnalysisConfig
from recon3d.steps.s06_mesh_export.config import MeshExportConfig


class SessionConfig(BaseModel):
    """Per-step configs plus session bookkeeping limits."""

    depth: DepthEstimationConfig = Field(default_factory=DepthEstimationConfig)
    point_cloud: PointCloudConfig = Field(default_factory=PointCloudConfig)
    outlier_filter: OutlierFilterConfig = Field(default_factory=OutlierFilterConfig)
    mesh: MeshGenerationConfig = Field(default_factory=MeshGenerationConfig)
    quality: QualityAnalysisConfig = Field(default_factory=QualityAnalysisConfig)
    export: MeshExportConfig = Field(default_factory=MeshExportConfig)

    min_frames: int = Field(10, ge=1, description="Frames required before finalize")
    max_buffered_frames: int = Field(
        100, ge=1, description="Frames allowed in flight before the overflow policy applies"
    )
    overflow_policy: Literal["drop_oldest", "block"] = Field(
        "drop_oldest", description="What add_frame does when the buffer is full"
    )
    num_workers: int = Field(4, ge=1, description="Depth estimation worker threads")
    export_dir: Path = Field(Path("./exports"), description="Default export directory")


def load_session_config(config_path: Path) -> SessionConfig:
    """Load a session YAML file; missing keys take their defaults."""
    with open(config_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return SessionConfig(**raw)
