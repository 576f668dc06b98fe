"""Format dispatch for mesh export."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from recon3d.core.contracts import Mesh
from recon3d.core.errors import ExportFailedError, InvalidInputError

logger = logging.getLogger(__name__)

ExportFormat = Literal["obj", "glb", "ply"]


def export_mesh(
    mesh: Mesh,
    fmt: ExportFormat,
    filename: str,
    output_dir: Path,
    *,
    y_up: bool = False,
) -> Path:
    """Write ``mesh`` to ``output_dir/filename.<fmt>`` and annotate its export path.

    Raises:
        ExportFailedError: the file could not be written; the OSError is
            chained and kept on ``.cause``.
    """
    if fmt not in ("obj", "glb", "ply"):
        raise InvalidInputError(f"Unsupported export format: {fmt}")

    path = Path(output_dir) / f"{filename}.{fmt}"
    try:
        if fmt == "obj":
            from ._obj_writer import write_obj

            write_obj(mesh, path)
        elif fmt == "glb":
            from ._glb_writer import write_glb

            write_glb(mesh, path, y_up=y_up)
        else:
            from ._glb_writer import write_ply_mesh

            write_ply_mesh(mesh, path)
    except OSError as exc:
        logger.error(f"Export to {path} failed: {exc}")
        raise ExportFailedError(path, exc) from exc

    mesh.annotate_export(path)
    return path
