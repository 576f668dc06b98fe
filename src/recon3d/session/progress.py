"""Monotonic progress reporting with subscriber callbacks."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

# Share of the [0, 1] range covered by frame capture; finalize stages fill the rest.
CAPTURE_SHARE = 0.4
STAGE_PROGRESS = {
    "filtering": 0.4,
    "meshing": 0.6,
    "analyzing": 0.8,
    "complete": 1.0,
}


@dataclass(frozen=True)
class ProgressEvent:
    session_id: str
    stage: str
    progress: float
    message: str = ""


ProgressCallback = Callable[[ProgressEvent], None]


class ProgressTracker:
    """Thread-safe progress value in [0, 1] that never decreases."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self._value = 0.0
        self._lock = threading.Lock()
        self._subscribers: list[ProgressCallback] = []

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        """Register ``callback``; returns a function that unregisters it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, stage: str, progress: float | None = None, message: str = "") -> float:
        """Raise progress to ``progress`` (clamped, never lowered) and notify subscribers."""
        with self._lock:
            if progress is not None:
                self._value = max(self._value, min(max(progress, 0.0), 1.0))
            event = ProgressEvent(self.session_id, stage, self._value, message)
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception(f"Progress subscriber failed on '{stage}' event")
        return event.progress

    def capture(self, processed: int, expected: int) -> float:
        fraction = min(processed / max(expected, 1), 1.0)
        return self.publish("capturing", CAPTURE_SHARE * fraction)

    def stage(self, stage: str, message: str = "") -> float:
        return self.publish(stage, STAGE_PROGRESS.get(stage), message)
