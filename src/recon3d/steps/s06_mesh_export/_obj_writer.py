"""Wavefront OBJ text writer.

Layout (consumed by external tools, keep it stable):

    # recon3d 3D Reconstruction
    # Vertices: <N>
    # Triangles: <M>
    <blank>
    v x y z        (N lines)
    vn x y z       (N lines)
    f a//a b//b c//c   (M lines, 1-based)
"""

from __future__ import annotations

import logging
from pathlib import Path

from recon3d.core.contracts import Mesh

logger = logging.getLogger(__name__)

HEADER = "# recon3d 3D Reconstruction"


def format_obj(mesh: Mesh) -> str:
    lines = [
        HEADER,
        f"# Vertices: {mesh.vertex_count}",
        f"# Triangles: {mesh.triangle_count}",
        "",
    ]
    lines.extend(f"v {x!r} {y!r} {z!r}" for x, y, z in mesh.vertices.tolist())
    lines.extend(f"vn {x!r} {y!r} {z!r}" for x, y, z in mesh.normals.tolist())
    for a, b, c in (mesh.faces.astype("int64") + 1).tolist():
        lines.append(f"f {a}//{a} {b}//{b} {c}//{c}")
    return "\n".join(lines) + "\n"


def write_obj(mesh: Mesh, output_path: Path) -> Path:
    """Write ``mesh`` as OBJ. I/O errors propagate to the caller."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(format_obj(mesh), encoding="utf-8")
    logger.info(
        f"OBJ exported: {output_path} ({mesh.vertex_count} vertices, {mesh.triangle_count} triangles)"
    )
    return output_path
