"""recon3d core: pipeline runner, base step, shared contracts, errors."""

from .step_base import BaseStep
from .contracts import (
    BoundingBox,
    CameraIntrinsics,
    CameraObservation,
    CameraPose,
    Mesh,
    PipelineConfig,
    PointCloud,
    QualityMetrics,
    ReconstructionMethod,
    StepEntry,
    StepMeta,
)
from .errors import (
    DegenerateGeometryError,
    ExportFailedError,
    InsufficientDataError,
    InvalidInputError,
    ReconstructionError,
)
from .pipeline_runner import run_pipeline, load_pipeline_config
from .logging import setup_logging

__all__ = [
    "BaseStep",
    "BoundingBox",
    "CameraIntrinsics",
    "CameraObservation",
    "CameraPose",
    "Mesh",
    "PipelineConfig",
    "PointCloud",
    "QualityMetrics",
    "ReconstructionMethod",
    "StepEntry",
    "StepMeta",
    "DegenerateGeometryError",
    "ExportFailedError",
    "InsufficientDataError",
    "InvalidInputError",
    "ReconstructionError",
    "run_pipeline",
    "load_pipeline_config",
    "setup_logging",
]
