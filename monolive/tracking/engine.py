"""
Tracking engine interface and its implementations.

The engine is a black box: it is created from a vocabulary and a settings
file, consumes (image, timestamp) pairs in order, reports the image scale
it expects, and writes a keyframe trajectory after shutdown.
"""
import importlib
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union
import logging

import numpy as np

from monolive.core import EngineInitError, KeyframePose
from .trajectory import write_tum_trajectory

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class TrackingEngine(ABC):
    """Capabilities the capture loop needs from a monocular tracker."""

    @abstractmethod
    def initialize(self, vocabulary_path: PathLike, settings_path: PathLike,
                   enable_viewer: bool = True) -> None:
        """Create the engine. Raises EngineInitError on failure."""

    @abstractmethod
    def track_monocular(self, image: np.ndarray, timestamp: float) -> None:
        """Feed one preprocessed image."""

    @abstractmethod
    def get_image_scale(self) -> float:
        """Scale the engine expects input images to be resized by."""

    @abstractmethod
    def shutdown(self) -> None:
        """Flush and stop engine threads."""

    @abstractmethod
    def save_keyframe_trajectory(self, path: PathLike) -> None:
        """Write keyframe poses in TUM format. Only valid after shutdown()."""


class OrbSlam3Engine(TrackingEngine):
    """
    Adapter for an ORB-SLAM3 Python binding that mirrors the C++ System API
    (TrackMonocular, GetImageScale, Shutdown, SaveKeyFrameTrajectoryTUM).

    The binding is a locally built extension, so it is imported by name
    when the engine is initialized rather than at module import.

    Example:
        engine = OrbSlam3Engine(module="orbslam3", class_name="ORB_SLAM3")
        engine.initialize("ORBvoc.txt", "Settings.yaml", enable_viewer=False)
    """

    def __init__(
            self,
            module: str = "orbslam3",
            class_name: str = "ORB_SLAM3",
            sensor: str = "MONOCULAR"
    ):
        self.module_name = module
        self.class_name = class_name
        self.sensor = sensor
        self._system = None

    def _load_system_class(self):
        try:
            module = importlib.import_module(self.module_name)
        except ImportError as e:
            raise EngineInitError(
                f"ORB-SLAM3 binding '{self.module_name}' is not importable: {e}"
            ) from e

        system_cls = getattr(module, self.class_name, None)
        if system_cls is None:
            raise EngineInitError(
                f"Module '{self.module_name}' has no '{self.class_name}'"
            )
        return system_cls

    def initialize(self, vocabulary_path: PathLike, settings_path: PathLike,
                   enable_viewer: bool = True) -> None:
        for label, path in (("Vocabulary", vocabulary_path), ("Settings", settings_path)):
            if not Path(path).is_file():
                raise EngineInitError(f"{label} file not found: {path}")

        system_cls = self._load_system_class()
        logger.info(f"Loading ORB-SLAM3 ({self.sensor}, viewer={enable_viewer})...")

        try:
            self._system = system_cls(
                str(vocabulary_path), str(settings_path), self.sensor, enable_viewer
            )
        except Exception as e:
            raise EngineInitError(f"ORB-SLAM3 initialization failed: {e}") from e

    def _require_system(self):
        if self._system is None:
            raise RuntimeError("Engine not initialized")
        return self._system

    def track_monocular(self, image: np.ndarray, timestamp: float) -> None:
        self._require_system().TrackMonocular(image, float(timestamp))

    def get_image_scale(self) -> float:
        system = self._require_system()
        if not hasattr(system, "GetImageScale"):
            logger.warning("Binding has no GetImageScale(), assuming 1.0")
            return 1.0
        return float(system.GetImageScale())

    def shutdown(self) -> None:
        self._require_system().Shutdown()

    def save_keyframe_trajectory(self, path: PathLike) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._require_system().SaveKeyFrameTrajectoryTUM(str(path))


class DryRunEngine(TrackingEngine):
    """
    Engine stand-in that runs the whole front-end without ORB-SLAM3.

    Records fed timestamps and emits an identity-pose keyframe every
    keyframe_interval frames.
    """

    def __init__(self, image_scale: float = 1.0, keyframe_interval: int = 10):
        if keyframe_interval < 1:
            raise ValueError("keyframe_interval must be >= 1")

        self.image_scale = image_scale
        self.keyframe_interval = keyframe_interval
        self.timestamps: List[float] = []
        self.keyframes: List[KeyframePose] = []
        self.last_shape: Optional[tuple] = None
        self._initialized = False
        self._shut_down = False

    def initialize(self, vocabulary_path: PathLike, settings_path: PathLike,
                   enable_viewer: bool = True) -> None:
        self._initialized = True
        logger.info(f"Dry-run engine initialized (scale={self.image_scale})")

    def track_monocular(self, image: np.ndarray, timestamp: float) -> None:
        if not self._initialized or self._shut_down:
            raise RuntimeError("Dry-run engine is not accepting frames")

        if len(self.timestamps) % self.keyframe_interval == 0:
            self.keyframes.append(KeyframePose(timestamp=timestamp))
        self.timestamps.append(timestamp)
        self.last_shape = image.shape

    def get_image_scale(self) -> float:
        return self.image_scale

    def shutdown(self) -> None:
        self._shut_down = True

    def save_keyframe_trajectory(self, path: PathLike) -> None:
        if not self._shut_down:
            raise RuntimeError("Trajectory requested before shutdown")
        write_tum_trajectory(path, self.keyframes)
