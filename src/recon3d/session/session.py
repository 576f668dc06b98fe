"""One reconstruction run: frame ingestion, point accumulation, finalize.

Frames are processed on a shared worker pool, one task per frame. The
accumulated cloud is the only shared mutable state; tasks append to it
under ``_lock`` and nothing else writes to it.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import deque
from concurrent.futures import Executor, Future, wait
from enum import Enum
from typing import Optional

from recon3d.core.contracts import (
    CameraObservation,
    Mesh,
    PointCloud,
    QualityMetrics,
    ReconstructionMethod,
)
from recon3d.core.errors import (
    InsufficientDataError,
    InvalidInputError,
    ReconstructionError,
)
from recon3d.steps.s01_depth_estimation.step import combine_methods, depth_from_observation
from recon3d.steps.s02_point_cloud._back_projection import depth_to_point_cloud
from recon3d.steps.s03_outlier_filter._statistical_filter import remove_statistical_outliers
from recon3d.steps.s04_mesh_generation._triangulation import generate_mesh
from recon3d.steps.s05_quality_analysis._metrics import analyze_mesh
from .config import SessionConfig
from .progress import ProgressTracker

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    RECORDING = "recording"
    STOPPED = "stopped"
    FINALIZING = "finalizing"
    FINALIZED = "finalized"


class ReconstructionSession:
    """State for one named reconstruction.

    Lifecycle: RECORDING -> stop() -> STOPPED -> finalize() -> FINALIZED.
    A failed finalize returns to STOPPED; frames may still be added and
    finalize retried. Adding a frame to a STOPPED or FINALIZED session
    resumes recording.
    """

    def __init__(self, name: str, config: SessionConfig, executor: Executor):
        self.session_id = uuid.uuid4().hex
        self.name = name
        self.config = config
        self.progress = ProgressTracker(self.session_id)

        self._executor = executor
        self._lock = threading.Lock()
        self._cloud = PointCloud()
        self._methods: set[ReconstructionMethod] = set()
        self._state = SessionState.RECORDING

        # Frames still in flight: (generation, seq, future), oldest first
        self._pending: deque[tuple[int, int, Future]] = deque()
        self._generation = 0
        self._next_seq = 0
        self._discarded: dict[int, Future] = {}

        self.frames_received = 0
        self.frames_processed = 0
        self.frames_failed = 0
        self.frames_dropped = 0

        self._mesh: Optional[Mesh] = None
        self._metrics: Optional[QualityMetrics] = None
        self._meshes: list[Mesh] = []

    # ── Accessors ─────────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def current_mesh(self) -> Optional[Mesh]:
        with self._lock:
            return self._mesh

    @property
    def quality_metrics(self) -> Optional[QualityMetrics]:
        with self._lock:
            return self._metrics

    @property
    def available_meshes(self) -> list[Mesh]:
        with self._lock:
            return list(self._meshes)

    @property
    def point_count(self) -> int:
        with self._lock:
            return len(self._cloud)

    @property
    def reconstruction_method(self) -> ReconstructionMethod:
        with self._lock:
            return combine_methods(self._methods)

    def point_cloud(self) -> PointCloud:
        """Snapshot copy of the accumulated cloud."""
        with self._lock:
            return self._cloud.copy()

    # ── Ingestion ─────────────────────────────────────────────────────

    def add_frame(self, obs: CameraObservation) -> Future:
        """Queue ``obs`` for depth estimation; the future resolves to its point count."""
        with self._lock:
            if self._state == SessionState.FINALIZING:
                raise InvalidInputError(f"Session '{self.name}' is finalizing")
            if self._state != SessionState.RECORDING:
                logger.info(f"Session '{self.name}' resumed recording")
                self._state = SessionState.RECORDING

        self._apply_overflow_policy()

        with self._lock:
            # finalize() may have started while the buffer had no room
            if self._state == SessionState.FINALIZING:
                raise InvalidInputError(f"Session '{self.name}' is finalizing")
            seq = self._next_seq
            self._next_seq += 1
            generation = self._generation
            self.frames_received += 1
            future = self._executor.submit(self._process_frame, obs, generation, seq)
            self._pending.append((generation, seq, future))
        return future

    def _prune_pending(self) -> None:
        self._pending = deque(p for p in self._pending if not p[2].done())
        self._discarded = {s: f for s, f in self._discarded.items() if not f.done()}

    def _apply_overflow_policy(self) -> None:
        limit = self.config.max_buffered_frames
        while True:
            with self._lock:
                self._prune_pending()
                if len(self._pending) < limit:
                    return
                if self.config.overflow_policy == "drop_oldest":
                    _, seq, oldest = self._pending.popleft()
                    self._discarded[seq] = oldest
                    oldest.cancel()
                    self.frames_dropped += 1
                    logger.warning(
                        f"Session '{self.name}': frame buffer full ({limit}); dropped oldest frame"
                    )
                    continue
                waiting_on = self._pending[0][2]
            wait([waiting_on])

    def _process_frame(self, obs: CameraObservation, generation: int, seq: int) -> int:
        with self._lock:
            if generation != self._generation or seq in self._discarded:
                return 0

        try:
            depth, method = depth_from_observation(obs, self.config.depth)
            frame_cloud = depth_to_point_cloud(
                depth,
                obs.intrinsics,
                obs.pose,
                image=obs.image_left if self.config.point_cloud.attach_colors else None,
                max_range=self.config.point_cloud.max_range,
                pixel_stride=self.config.point_cloud.pixel_stride,
            )
        except (ReconstructionError, ValueError) as exc:
            logger.warning(f"Session '{self.name}': skipping frame {seq}: {exc}")
            with self._lock:
                self.frames_failed += 1
            return 0

        with self._lock:
            if generation != self._generation or seq in self._discarded:
                logger.debug(f"Session '{self.name}': frame {seq} finished after stop; discarded")
                return 0
            self._cloud.append(frame_cloud.positions, frame_cloud.colors)
            self._methods.add(method)
            self.frames_processed += 1
            processed = self.frames_processed

        if frame_cloud.is_empty:
            logger.info(f"Session '{self.name}': frame {seq} had no valid depth")
        self.progress.capture(processed, self.config.max_buffered_frames)
        return len(frame_cloud)

    def flush(self, timeout: float | None = None) -> None:
        """Block until every frame queued so far has been processed."""
        with self._lock:
            futures = [f for gen, _, f in self._pending if gen == self._generation]
        wait(futures, timeout=timeout)

    def stop(self, drain: bool = False) -> None:
        """Stop recording. In-flight frames are discarded unless ``drain`` is set."""
        if drain:
            self.flush()
        with self._lock:
            if self._state == SessionState.RECORDING:
                self._state = SessionState.STOPPED
            in_flight = [f for _, _, f in self._pending if not f.done()]
            self._generation += 1
            self._discarded.clear()
            for future in in_flight:
                future.cancel()
            self._pending.clear()
        if in_flight:
            logger.info(f"Session '{self.name}': discarded {len(in_flight)} in-flight frames")
        logger.info(f"Stopped recording '{self.name}' ({self.frames_processed} frames processed)")

    # ── Finalize ──────────────────────────────────────────────────────

    def finalize(self) -> Mesh:
        """Filter, mesh and analyze the accumulated cloud.

        Raises:
            InsufficientDataError: fewer than ``min_frames`` frames processed.
            InvalidInputError: no frame received, or no valid depth pixel in
                the whole session.
            DegenerateGeometryError: zero-volume mesh with strict density.
        """
        with self._lock:
            if self._state == SessionState.FINALIZING:
                raise InvalidInputError(f"Session '{self.name}' is already finalizing")
            if self._state == SessionState.RECORDING:
                self._state = SessionState.STOPPED
            prior_state = self._state
            self._state = SessionState.FINALIZING

        self.flush()
        try:
            mesh, metrics = self._run_finalize()
        except ReconstructionError as exc:
            with self._lock:
                self._state = prior_state
            self.progress.publish("failed", message=str(exc))
            logger.warning(f"Finalize of '{self.name}' failed: {exc}")
            raise

        with self._lock:
            self._mesh = mesh
            self._metrics = metrics
            self._meshes.append(mesh)
            self._state = SessionState.FINALIZED
        self.progress.stage("complete")
        logger.info(f"Reconstruction '{self.name}' complete")
        return mesh

    def _run_finalize(self) -> tuple[Mesh, QualityMetrics]:
        with self._lock:
            received = self.frames_received
            processed = self.frames_processed
            cloud = self._cloud.copy()
            method = combine_methods(self._methods)

        if received == 0:
            raise InvalidInputError(f"Session '{self.name}' received no frames")
        if processed < self.config.min_frames:
            raise InsufficientDataError(processed, self.config.min_frames)
        if cloud.is_empty:
            raise InvalidInputError(
                f"Session '{self.name}' has no valid depth pixels in {processed} frames"
            )

        self.progress.stage("filtering")
        cfg = self.config.outlier_filter
        filtered, _ = remove_statistical_outliers(
            cloud, cfg.nb_neighbors, cfg.std_ratio, cfg.search
        )

        self.progress.stage("meshing")
        mesh = generate_mesh(filtered, self.config.mesh, name=self.name)

        self.progress.stage("analyzing")
        metrics = analyze_mesh(mesh, method, strict=self.config.quality.strict_density)
        return mesh, metrics
