"""
Core data types for the live monocular front-end.
Defines contracts between capture, preprocessing and tracking.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple
import numpy as np
from numpy.typing import NDArray


class CaptureBackend(Enum):
    """Capture topologies. Exactly one is used per run."""
    DIRECT_DEVICE = "direct"  # Numbered camera via V4L2
    PIPELINE = "pipeline"  # GStreamer pipeline description


class SessionState(Enum):
    """Lifecycle of a capture/tracking session."""
    IDLE = "idle"
    RUNNING = "running"
    TERMINATING = "terminating"
    TERMINATED = "terminated"


class ExitReason(Enum):
    """Why the capture loop stopped."""
    END_OF_STREAM = "end_of_stream"
    READ_ERROR = "read_error"
    USER_CANCEL = "user_cancel"
    INTERRUPTED = "interrupted"


@dataclass
class Frame:
    """
    Represents a single captured frame with metadata.
    """
    image: NDArray[np.uint8]  # (H, W, C) or (H, W)
    timestamp: float  # Seconds since loop start (monotonic)
    frame_id: int  # Sequential frame counter

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.image.shape

    @property
    def width(self) -> int:
        return self.image.shape[1]

    @property
    def height(self) -> int:
        return self.image.shape[0]

    @property
    def channels(self) -> int:
        return 1 if self.image.ndim == 2 else self.image.shape[2]

    @property
    def is_grayscale(self) -> bool:
        return self.channels == 1


@dataclass
class KeyframePose:
    """
    Keyframe pose in TUM convention: camera position and
    orientation quaternion (x, y, z, w) at a timestamp.
    """
    timestamp: float
    position: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    orientation: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)

    def to_tum_line(self) -> str:
        tx, ty, tz = self.position
        qx, qy, qz, qw = self.orientation
        return (
            f"{self.timestamp:.6f} {tx:.7f} {ty:.7f} {tz:.7f} "
            f"{qx:.7f} {qy:.7f} {qz:.7f} {qw:.7f}"
        )


@dataclass
class LoopResult:
    """
    Summary of a finished capture loop.
    """
    exit_reason: ExitReason
    frames_fed: int = 0
    first_timestamp: Optional[float] = None
    last_timestamp: Optional[float] = None
    trajectory_path: Optional[str] = None
    message: str = ""
