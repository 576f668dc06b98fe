"""I/O utilities: frame archives, PLY point clouds, intermediate meshes."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import numpy as np

from recon3d.core.contracts import (
    CameraIntrinsics,
    CameraObservation,
    CameraPose,
    Mesh,
    PointCloud,
)

logger = logging.getLogger(__name__)


# ── Frame archives (.npz) ────────────────────────────────────────────

def save_frame(path: Path, obs: CameraObservation) -> Path:
    """Write one CameraObservation to a compressed .npz archive."""
    k = obs.intrinsics
    arrays: dict[str, Any] = {
        "image_left": obs.image_left,
        "intrinsics": np.array([k.fx, k.fy, k.cx, k.cy], dtype=np.float64),
        "rotation": obs.pose.rotation_matrix(),
        "translation": obs.pose.translation_vector(),
        "timestamp": np.float64(obs.timestamp),
    }
    if obs.image_right is not None:
        arrays["image_right"] = obs.image_right
    if obs.depth is not None:
        arrays["depth"] = obs.depth
    if obs.baseline is not None:
        arrays["baseline"] = np.float64(obs.baseline)

    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(path, **arrays)
    return path


def load_frame(path: Path) -> CameraObservation:
    """Read a frame archive written by :func:`save_frame`."""
    with np.load(path) as data:
        left = data["image_left"]
        fx, fy, cx, cy = data["intrinsics"].tolist()
        height, width = left.shape[:2]
        return CameraObservation(
            image_left=left,
            image_right=data["image_right"] if "image_right" in data else None,
            depth=data["depth"] if "depth" in data else None,
            intrinsics=CameraIntrinsics(fx=fx, fy=fy, cx=cx, cy=cy, width=width, height=height),
            pose=CameraPose(
                rotation=data["rotation"].flatten().tolist(),
                translation=data["translation"].tolist(),
            ),
            baseline=float(data["baseline"]) if "baseline" in data else None,
            timestamp=float(data["timestamp"]) if "timestamp" in data else 0.0,
        )


def list_frames(frames_dir: Path) -> list[Path]:
    return sorted(frames_dir.glob("frame_*.npz"))


# ── PLY I/O ──────────────────────────────────────────────────────────

def write_point_cloud_ply(path: Path, cloud: PointCloud) -> Path:
    """Write a point cloud (positions, optional normals/colors) as binary PLY."""
    from plyfile import PlyData, PlyElement

    n = len(cloud)
    dtype = [("x", "f8"), ("y", "f8"), ("z", "f8")]
    if cloud.normals is not None:
        dtype += [("nx", "f8"), ("ny", "f8"), ("nz", "f8")]
    if cloud.colors is not None:
        dtype += [("red", "u1"), ("green", "u1"), ("blue", "u1")]

    vertex = np.empty(n, dtype=dtype)
    vertex["x"], vertex["y"], vertex["z"] = cloud.positions.T
    if cloud.normals is not None:
        vertex["nx"], vertex["ny"], vertex["nz"] = cloud.normals.T
    if cloud.colors is not None:
        rgb = np.clip(cloud.colors * 255, 0, 255).astype(np.uint8)
        vertex["red"], vertex["green"], vertex["blue"] = rgb.T

    path.parent.mkdir(parents=True, exist_ok=True)
    PlyData([PlyElement.describe(vertex, "vertex")]).write(str(path))
    return path


def read_point_cloud_ply(path: Path) -> PointCloud:
    """Read positions (and normals/colors when present) from a PLY file."""
    from plyfile import PlyData

    vertex = PlyData.read(str(path))["vertex"]
    names = {p.name for p in vertex.properties}

    positions = np.column_stack([vertex[c].astype(np.float64) for c in ("x", "y", "z")])
    normals = None
    if {"nx", "ny", "nz"}.issubset(names):
        normals = np.column_stack([vertex[c].astype(np.float64) for c in ("nx", "ny", "nz")])
    colors = None
    if {"red", "green", "blue"}.issubset(names):
        colors = np.column_stack([vertex[c] for c in ("red", "green", "blue")]) / 255.0
    return PointCloud(positions=positions, normals=normals, colors=colors)


# ── Intermediate mesh (.npz) ─────────────────────────────────────────

def save_mesh_npz(path: Path, mesh: Mesh) -> Path:
    arrays = {
        "vertices": mesh.vertices,
        "normals": mesh.normals,
        "triangles": mesh.triangles,
        "name": np.array(mesh.name),
    }
    if mesh.texture_coordinates is not None:
        arrays["texture_coordinates"] = mesh.texture_coordinates
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(path, **arrays)
    return path


def load_mesh_npz(path: Path) -> Mesh:
    with np.load(path) as data:
        return Mesh(
            vertices=data["vertices"],
            normals=data["normals"],
            triangles=data["triangles"],
            texture_coordinates=(
                data["texture_coordinates"] if "texture_coordinates" in data else None
            ),
            name=str(data["name"]) if "name" in data else "Reconstruction",
        )


def write_json(path: Path, payload: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
    return path
