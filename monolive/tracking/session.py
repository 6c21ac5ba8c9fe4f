"""
Tracking session: owns one engine from initialization to trajectory export.
"""
from pathlib import Path
from typing import Optional, Union
import logging

from monolive.core import Frame, SessionStateError
from .engine import TrackingEngine

logger = logging.getLogger(__name__)


class TrackingSession:
    """
    Lifecycle wrapper around a TrackingEngine.

    Guarantees:
    - feed() accepts only non-decreasing timestamps
    - close() runs engine.shutdown() then save_keyframe_trajectory()
      at most once, and only if initialization succeeded
    - the trajectory is never requested before shutdown

    Example:
        session = TrackingSession(engine, "KeyFrameTrajectory.txt")
        scale = session.start("ORBvoc.txt", "Settings.yaml")
        try:
            session.feed(frame)
        finally:
            session.close()
    """

    def __init__(self, engine: TrackingEngine,
                 trajectory_path: Union[str, Path] = "KeyFrameTrajectory.txt"):
        self.engine = engine
        self.trajectory_path = Path(trajectory_path)

        self.image_scale: float = 1.0
        self.frames_fed = 0
        self.last_timestamp: Optional[float] = None

        self._initialized = False
        self._closed = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def is_closed(self) -> bool:
        return self._closed

    def start(self, vocabulary_path: Union[str, Path], settings_path: Union[str, Path],
              enable_viewer: bool = True) -> float:
        """
        Initialize the engine and read back its image scale.

        Returns:
            Image scale to hand to the preprocessor

        Raises:
            EngineInitError: Engine could not be created
            SessionStateError: Session already started or closed
        """
        if self._initialized or self._closed:
            raise SessionStateError("Tracking session can only be started once")

        self.engine.initialize(vocabulary_path, settings_path, enable_viewer)
        self._initialized = True

        self.image_scale = float(self.engine.get_image_scale())
        logger.info(f"Tracking engine ready (image scale {self.image_scale})")
        return self.image_scale

    def feed(self, frame: Frame) -> None:
        """
        Push one preprocessed frame into the engine.

        Raises:
            SessionStateError: Not started, already closed
            ValueError: Timestamp earlier than the previous frame's
        """
        if not self._initialized or self._closed:
            raise SessionStateError("Tracking session is not running")

        if self.last_timestamp is not None and frame.timestamp < self.last_timestamp:
            raise ValueError(
                f"Out-of-order timestamp {frame.timestamp:.6f} "
                f"(previous {self.last_timestamp:.6f})"
            )

        self.engine.track_monocular(frame.image, frame.timestamp)
        self.last_timestamp = frame.timestamp
        self.frames_fed += 1

    def close(self) -> Optional[Path]:
        """
        Shut the engine down and export the keyframe trajectory.

        Safe to call on every exit path: a second call, or a call on a
        session that never initialized, does nothing.

        Returns:
            Trajectory path if written by this call, else None
        """
        if not self._initialized or self._closed:
            return None

        # Mark first so a failing shutdown is never retried
        self._closed = True

        logger.info(f"Shutting down tracking engine after {self.frames_fed} frames")
        self.engine.shutdown()
        self.engine.save_keyframe_trajectory(self.trajectory_path)
        logger.info(f"Keyframe trajectory saved to {self.trajectory_path}")
        return self.trajectory_path
