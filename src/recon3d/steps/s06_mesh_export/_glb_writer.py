"""GLB / PLY writer through trimesh.

GLB (glTF Binary) is the interchange container for 3D content tools;
trimesh builds the scene and handles the binary layout.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from recon3d.core.contracts import Mesh

logger = logging.getLogger(__name__)


def _has_trimesh() -> bool:
    """Check if trimesh is available."""
    try:
        import trimesh  # noqa: F401
        return True
    except ImportError:
        return False


def _to_trimesh(mesh: Mesh, y_up: bool = False):
    import trimesh

    verts = np.array(mesh.vertices)
    normals = np.array(mesh.normals)
    if y_up:
        # Z-up -> Y-up: (x, y, z) -> (x, z, -y)
        verts = np.column_stack([verts[:, 0], verts[:, 2], -verts[:, 1]])
        normals = np.column_stack([normals[:, 0], normals[:, 2], -normals[:, 1]])

    return trimesh.Trimesh(
        vertices=verts,
        faces=mesh.faces.astype(np.int64),
        vertex_normals=normals,
        process=False,
    )


def write_glb(mesh: Mesh, output_path: Path, *, y_up: bool = False) -> Path:
    """Write one mesh to a GLB file."""
    import trimesh

    scene = trimesh.Scene()
    node_name = mesh.name.replace(" ", "_").replace("/", "_") or "mesh"
    scene.add_geometry(_to_trimesh(mesh, y_up), node_name=node_name)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    scene.export(str(output_path), file_type="glb")

    size_mb = output_path.stat().st_size / (1024 * 1024)
    logger.info(f"GLB exported: {output_path} ({size_mb:.2f} MB)")
    return output_path


def write_ply_mesh(mesh: Mesh, output_path: Path) -> Path:
    """Write one mesh to a binary PLY file."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    _to_trimesh(mesh).export(str(output_path), file_type="ply")
    logger.info(f"PLY exported: {output_path}")
    return output_path
