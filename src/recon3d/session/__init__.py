"""In-memory reconstruction sessions fed frame by frame."""

from .config import SessionConfig, load_session_config
from .manager import ReconstructionManager, SessionHandle
from .progress import ProgressEvent, ProgressTracker
from .session import ReconstructionSession, SessionState

__all__ = [
    "ProgressEvent",
    "ProgressTracker",
    "ReconstructionManager",
    "ReconstructionSession",
    "SessionConfig",
    "SessionHandle",
    "SessionState",
    "load_session_config",
]
