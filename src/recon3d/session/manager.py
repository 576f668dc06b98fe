"""Owner of reconstruction sessions and the worker pools they share."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from recon3d.core.contracts import CameraObservation, Mesh, QualityMetrics
from recon3d.core.errors import InvalidInputError
from recon3d.steps.s06_mesh_export._exporter import ExportFormat, export_mesh
from .config import SessionConfig
from .progress import ProgressEvent
from .session import ReconstructionSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionHandle:
    session_id: str
    name: str


class ReconstructionManager:
    """Starts, feeds, finalizes and exports reconstruction sessions.

    Frame tasks of every session run on one ``ThreadPoolExecutor``;
    finalize and export run on a separate single-thread executor so a long
    finalize never starves frame ingestion.

    Usage::

        with ReconstructionManager() as manager:
            handle = manager.start_reconstruction("living_room")
            for obs in frames:
                manager.add_frame(handle, obs)
            mesh = manager.stop_reconstruction(handle).result()
            path = manager.export_mesh(mesh, "glb").result()
    """

    def __init__(self, config: Optional[SessionConfig] = None):
        self.config = config or SessionConfig()
        self._workers = ThreadPoolExecutor(
            max_workers=self.config.num_workers, thread_name_prefix="recon-worker"
        )
        self._finalizer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="recon-finalize")
        self._sessions: dict[str, ReconstructionSession] = {}
        self._lock = threading.Lock()

    def __enter__(self) -> ReconstructionManager:
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    def _session(self, handle: SessionHandle) -> ReconstructionSession:
        with self._lock:
            session = self._sessions.get(handle.session_id)
        if session is None:
            raise InvalidInputError(f"Unknown session: {handle.name} ({handle.session_id})")
        return session

    def session(self, handle: SessionHandle) -> ReconstructionSession:
        return self._session(handle)

    # ── Lifecycle ─────────────────────────────────────────────────────

    def start_reconstruction(
        self, name: str = "Reconstruction", config: Optional[SessionConfig] = None
    ) -> SessionHandle:
        session = ReconstructionSession(name, config or self.config, self._workers)
        with self._lock:
            self._sessions[session.session_id] = session
        logger.info(f"Started reconstruction '{name}' ({session.session_id})")
        return SessionHandle(session_id=session.session_id, name=name)

    def add_frame(self, handle: SessionHandle, obs: CameraObservation) -> Future:
        return self._session(handle).add_frame(obs)

    def flush(self, handle: SessionHandle, timeout: float | None = None) -> None:
        self._session(handle).flush(timeout)

    def stop_reconstruction(self, handle: SessionHandle, drain: bool = False) -> Future:
        """Stop recording and finalize in the background.

        In-flight frames are discarded unless ``drain`` is set. The returned
        future resolves to the finished Mesh, or raises the finalize error;
        either way the session stays usable.
        """
        session = self._session(handle)
        session.stop(drain=drain)
        return self._finalizer.submit(session.finalize)

    def finalize(self, handle: SessionHandle) -> Mesh:
        """Finalize synchronously, e.g. to retry after more frames were added."""
        return self._session(handle).finalize()

    def close(self, handle: SessionHandle) -> None:
        """Stop a session and forget it."""
        session = self._session(handle)
        session.stop()
        with self._lock:
            self._sessions.pop(handle.session_id, None)
        logger.info(f"Closed reconstruction '{handle.name}'")

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.stop()
        self._workers.shutdown(wait=wait, cancel_futures=True)
        self._finalizer.shutdown(wait=wait)

    # ── Observation ───────────────────────────────────────────────────

    def progress(self, handle: SessionHandle) -> float:
        return self._session(handle).progress.value

    def subscribe(
        self, handle: SessionHandle, callback: Callable[[ProgressEvent], None]
    ) -> Callable[[], None]:
        """Receive every progress event of a session; returns an unsubscribe function."""
        return self._session(handle).progress.subscribe(callback)

    def current_mesh(self, handle: SessionHandle) -> Optional[Mesh]:
        return self._session(handle).current_mesh

    def quality_metrics(self, handle: SessionHandle) -> Optional[QualityMetrics]:
        return self._session(handle).quality_metrics

    def available_meshes(self, handle: SessionHandle) -> list[Mesh]:
        return self._session(handle).available_meshes

    # ── Export ────────────────────────────────────────────────────────

    def export_mesh(
        self,
        mesh: Mesh,
        fmt: ExportFormat = "obj",
        filename: Optional[str] = None,
        output_dir: Optional[Path] = None,
    ) -> Future:
        """Write ``mesh`` in the background; the future resolves to the file path.

        Failures surface as ExportFailedError from ``future.result()``.
        """
        export_cfg = self.config.export
        return self._finalizer.submit(
            export_mesh,
            mesh,
            fmt,
            filename or export_cfg.filename,
            Path(output_dir or self.config.export_dir),
            y_up=export_cfg.glb_y_up,
        )
