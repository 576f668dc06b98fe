"""Common models shared across pipeline steps and the session layer.

Configuration and metadata are Pydantic models. Bulk geometry (point
clouds, meshes) lives in numpy-backed dataclasses; those never go through
JSON and would only be slowed down by validation.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from .errors import InvalidInputError


class StepMeta(BaseModel):
    """Metadata attached to step outputs for reproducibility."""

    step_name: str
    elapsed_seconds: float = 0.0
    params: dict[str, Any] = Field(default_factory=dict)


class ReconstructionMethod(str, Enum):
    """Where the depth behind a reconstruction came from."""

    SENSOR_DEPTH = "sensor-depth"
    STEREO = "stereo"
    HYBRID = "hybrid"


class CameraIntrinsics(BaseModel):
    """Camera intrinsic parameters (pinhole model)."""

    fx: float = Field(..., gt=0)
    fy: float = Field(..., gt=0)
    cx: float
    cy: float
    width: int = Field(0, ge=0)
    height: int = Field(0, ge=0)


class CameraPose(BaseModel):
    """Camera-to-world extrinsic: row-major 3x3 rotation plus translation."""

    rotation: list[float] = Field(
        default_factory=lambda: [1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0],
        min_length=9,
        max_length=9,
    )
    translation: list[float] = Field(
        default_factory=lambda: [0.0, 0.0, 0.0], min_length=3, max_length=3
    )

    @classmethod
    def from_matrix_4x4(cls, matrix: list[float] | np.ndarray) -> CameraPose:
        """Build from a 4x4 camera-to-world matrix (flat row-major or 4x4)."""
        m = np.asarray(matrix, dtype=np.float64).reshape(4, 4)
        return cls(rotation=m[:3, :3].flatten().tolist(), translation=m[:3, 3].tolist())

    @classmethod
    def from_qvec(cls, qvec: list[float], tvec: list[float]) -> CameraPose:
        """Build from a (w, x, y, z) quaternion and camera position."""
        from recon3d.utils.geometry import qvec2rotmat

        return cls(rotation=qvec2rotmat(qvec).flatten().tolist(), translation=list(tvec))

    def rotation_matrix(self) -> np.ndarray:
        return np.asarray(self.rotation, dtype=np.float64).reshape(3, 3)

    def translation_vector(self) -> np.ndarray:
        return np.asarray(self.translation, dtype=np.float64)

    def matrix_4x4(self) -> np.ndarray:
        m = np.eye(4)
        m[:3, :3] = self.rotation_matrix()
        m[:3, 3] = self.translation_vector()
        return m


class CameraObservation(BaseModel):
    """One captured frame. Immutable once built.

    Either ``image_right`` (stereo pair) or ``depth`` (sensor depth field)
    must be present for the frame to contribute points. When both are
    present the sensor depth wins and stereo matching is skipped.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    image_left: np.ndarray
    image_right: Optional[np.ndarray] = None
    depth: Optional[np.ndarray] = None
    intrinsics: CameraIntrinsics
    pose: CameraPose = Field(default_factory=CameraPose)
    baseline: Optional[float] = Field(None, gt=0, description="Stereo baseline in scene units")
    timestamp: float = Field(default_factory=time.time)

    @property
    def has_sensor_depth(self) -> bool:
        return self.depth is not None

    @property
    def is_stereo(self) -> bool:
        return self.image_right is not None


def _as_points(values, name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        return np.zeros((0, 3))
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise InvalidInputError(f"{name} must have shape (N, 3), got {arr.shape}")
    return arr


@dataclass
class PointCloud:
    """Ordered collection of world-space points.

    Normals stay ``None`` until the mesh generator fills them in for the
    points that survived filtering.
    """

    positions: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    normals: Optional[np.ndarray] = None
    colors: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        self.positions = _as_points(self.positions, "positions")
        if self.normals is not None:
            self.normals = _as_points(self.normals, "normals")
        if self.colors is not None:
            self.colors = _as_points(self.colors, "colors")

    def __len__(self) -> int:
        return len(self.positions)

    @property
    def is_empty(self) -> bool:
        return len(self.positions) == 0

    def append(self, positions: np.ndarray, colors: Optional[np.ndarray] = None) -> None:
        """Append a block of points in place."""
        positions = _as_points(positions, "positions")
        if len(positions) == 0:
            return
        if colors is not None:
            colors = _as_points(colors, "colors")

        if self.is_empty:
            self.colors = colors
        elif self.colors is not None and colors is not None:
            self.colors = np.vstack([self.colors, colors])
        else:
            self.colors = None
        self.positions = np.vstack([self.positions, positions])
        self.normals = None

    def subset(self, selector: np.ndarray) -> PointCloud:
        """New cloud holding the points picked by a boolean mask or index array."""
        return PointCloud(
            positions=self.positions[selector].copy(),
            normals=None if self.normals is None else self.normals[selector].copy(),
            colors=None if self.colors is None else self.colors[selector].copy(),
        )

    def downsample(self, stride: int) -> PointCloud:
        """Keep every ``stride``-th point, starting from the first."""
        if stride < 1:
            raise InvalidInputError(f"Downsample stride must be >= 1, got {stride}")
        return self.subset(np.arange(0, len(self), stride))

    def copy(self) -> PointCloud:
        return self.subset(np.arange(len(self)))


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box around a set of vertices."""

    min: np.ndarray
    max: np.ndarray

    @classmethod
    def from_points(cls, points: np.ndarray) -> BoundingBox:
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if len(pts) == 0:
            return cls(min=np.zeros(3), max=np.zeros(3))
        return cls(min=pts.min(axis=0), max=pts.max(axis=0))

    @property
    def size(self) -> np.ndarray:
        return self.max - self.min

    @property
    def center(self) -> np.ndarray:
        return (self.min + self.max) / 2.0

    @property
    def volume(self) -> float:
        s = self.size
        return float(s[0] * s[1] * s[2])


@dataclass
class Mesh:
    """Triangle mesh: vertices, one normal per vertex, flat uint32 index list.

    Geometry arrays are read-only after construction. The only field that
    changes afterwards is the export location, which can be set (or moved
    to a newer export) but never cleared.
    """

    vertices: np.ndarray
    normals: np.ndarray
    triangles: np.ndarray
    texture_coordinates: Optional[np.ndarray] = None
    name: str = "Reconstruction"
    mesh_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: float = field(default_factory=time.time)
    _export_path: Optional[Path] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.vertices = _as_points(self.vertices, "vertices")
        self.normals = _as_points(self.normals, "normals")
        self.triangles = np.asarray(self.triangles, dtype=np.uint32).reshape(-1)
        if self.texture_coordinates is not None:
            self.texture_coordinates = np.asarray(self.texture_coordinates, dtype=np.float64)
        for arr in (self.vertices, self.normals, self.triangles, self.texture_coordinates):
            if arr is not None:
                arr.flags.writeable = False

    @classmethod
    def empty(cls, name: str = "Reconstruction") -> Mesh:
        return cls(vertices=np.zeros((0, 3)), normals=np.zeros((0, 3)), triangles=[], name=name)

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def triangle_count(self) -> int:
        return len(self.triangles) // 3

    @property
    def faces(self) -> np.ndarray:
        """Triangles as an (M, 3) view."""
        return self.triangles.reshape(-1, 3)

    @property
    def has_texture(self) -> bool:
        return self.texture_coordinates is not None

    @property
    def bounding_box(self) -> BoundingBox:
        return BoundingBox.from_points(self.vertices)

    @property
    def export_path(self) -> Optional[Path]:
        return self._export_path

    def annotate_export(self, path: Path) -> None:
        if path is None:
            raise ValueError("Export path cannot be cleared")
        self._export_path = Path(path)

    def validate(self) -> None:
        """Raise InvalidInputError if the index or normal invariants are broken."""
        if len(self.triangles) % 3 != 0:
            raise InvalidInputError(
                f"Triangle index count {len(self.triangles)} is not a multiple of 3"
            )
        if len(self.normals) != len(self.vertices):
            raise InvalidInputError(
                f"Normal count {len(self.normals)} != vertex count {len(self.vertices)}"
            )
        if len(self.triangles) and int(self.triangles.max()) >= len(self.vertices):
            raise InvalidInputError(
                f"Triangle index {int(self.triangles.max())} out of range "
                f"for {len(self.vertices)} vertices"
            )


class QualityMetrics(BaseModel):
    """Geometric statistics describing one reconstructed mesh."""

    vertex_count: int
    triangle_count: int
    surface_area: float
    volume: float
    density: Optional[float] = Field(
        None, description="vertex_count / bounding-box volume; None when the box is flat"
    )
    average_edge_length: float
    has_texture: bool = False
    reconstruction_method: ReconstructionMethod
    bounding_box_min: list[float] = Field(default_factory=lambda: [0.0, 0.0, 0.0])
    bounding_box_max: list[float] = Field(default_factory=lambda: [0.0, 0.0, 0.0])


class PipelineConfig(BaseModel):
    """Top-level pipeline configuration loaded from pipeline.yaml."""

    project_name: str = "recon3d_project"
    data_root: Path = Path("./data")
    steps: list[StepEntry] = Field(default_factory=list)


class StepEntry(BaseModel):
    """One entry in the pipeline step list."""

    name: str
    module: str
    config_file: str
    depends_on: list[str] = Field(default_factory=list)
    inputs: dict[str, Any] = Field(default_factory=dict, description="Literal input fields")
    enabled: bool = True


# Fix forward reference
PipelineConfig.model_rebuild()
