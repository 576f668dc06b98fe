"""Exception hierarchy for reconstruction failures.

Every error raised by a pipeline stage or a session derives from
``ReconstructionError`` so callers can catch the whole family at once.
No error here is fatal to the process: a session that raised during
finalize can take more frames and try again.
"""

from __future__ import annotations


class ReconstructionError(Exception):
    """Base class for all reconstruction errors."""


class InvalidInputError(ReconstructionError):
    """Malformed input: mismatched images, empty stream, no valid depth."""


class InsufficientDataError(ReconstructionError):
    """Too few frames captured to attempt a reconstruction."""

    def __init__(self, captured: int, required: int):
        super().__init__(
            f"Not enough frames for reconstruction: {captured} captured, need at least {required}"
        )
        self.captured = captured
        self.required = required


class ExportFailedError(ReconstructionError):
    """Writing a mesh artifact failed. The I/O error is kept on ``cause``."""

    def __init__(self, path, cause: BaseException | None = None):
        msg = f"Failed to export mesh to {path}"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)
        self.path = path
        self.cause = cause


class DegenerateGeometryError(ReconstructionError):
    """Mesh bounding box has zero volume, so density is undefined."""
