"""
Capture sources for the two supported topologies:
a numbered local device (V4L2) and a GStreamer pipeline description.
There is no fallback from one to the other.
"""
import cv2
import logging
from typing import Optional
from dataclasses import dataclass

from monolive.core import (
    CaptureBackend,
    CaptureOpenError,
    CaptureReadError,
    DEFAULT_PIPELINE,
    EndOfStream,
    Frame,
    MonotonicClock,
)

logger = logging.getLogger(__name__)

DEVICE_APIS = {
    "v4l2": cv2.CAP_V4L2,
    "any": cv2.CAP_ANY,
    "dshow": cv2.CAP_DSHOW,
    "msmf": cv2.CAP_MSMF,
}


@dataclass
class CaptureConfig:
    """Configuration for camera capture."""
    backend: CaptureBackend = CaptureBackend.DIRECT_DEVICE
    device_index: int = 0
    device_api: str = "v4l2"  # "v4l2", "any", "dshow", "msmf"
    # Requested mode; advisory only, the device may pick its nearest mode
    width: int = 640
    height: int = 480
    fps: int = 30
    grayscale: bool = False
    pipeline: str = DEFAULT_PIPELINE  # Only used by PIPELINE backend

    # Read in a worker thread; bounded queue, no frame dropping
    threaded: bool = False
    queue_size: int = 4

    def __post_init__(self):
        """Accept backend given as its string value."""
        if isinstance(self.backend, str):
            self.backend = CaptureBackend(self.backend)

    def get_api_flag(self) -> int:
        """Convert device API string to OpenCV flag."""
        return DEVICE_APIS.get(self.device_api.lower(), cv2.CAP_V4L2)


class CaptureSource:
    """
    Base class for blocking, single-threaded capture sources.

    Subclasses implement _create_capture(); the base class handles
    reading, timestamping and release.

    Example:
        source = DirectDeviceSource(CaptureConfig(device_index=0))
        source.open()
        frame = source.read_frame(clock)
        source.close()
    """

    backend: CaptureBackend = None

    # Failed grab on a backend that can legitimately end (pipeline EOS)
    # is end-of-stream; on a live device it is a read error.
    failed_grab_is_end_of_stream = False

    def __init__(self, config: CaptureConfig):
        self.config = config
        self._capture: Optional[cv2.VideoCapture] = None
        self._frame_counter = 0

    def _create_capture(self) -> cv2.VideoCapture:
        raise NotImplementedError

    def _describe(self) -> str:
        raise NotImplementedError

    def open(self) -> None:
        """
        Open the backend.

        Raises:
            CaptureOpenError: If the backend cannot be opened
        """
        if self.is_open:
            logger.warning("Capture already open")
            return

        try:
            capture = self._create_capture()
        except cv2.error as e:
            raise CaptureOpenError(f"Failed to open {self._describe()}: {e}") from e

        if capture is None or not capture.isOpened():
            if capture is not None:
                capture.release()
            raise CaptureOpenError(f"Failed to open {self._describe()}")

        self._capture = capture
        self._frame_counter = 0
        self._after_open()

    def _after_open(self) -> None:
        logger.info(f"Opened {self._describe()}")

    def read_frame(self, clock: MonotonicClock) -> Frame:
        """
        Block until the next frame is available and stamp it.

        The clock is read exactly once, immediately after a successful grab.

        Args:
            clock: Started session clock

        Returns:
            Frame with capture-relative timestamp

        Raises:
            EndOfStream: Stream ended or delivered an empty frame
            CaptureReadError: Backend failed mid-stream
        """
        if self._capture is None:
            raise CaptureReadError("Capture is not open")

        try:
            ret, image = self._capture.read()
        except cv2.error as e:
            raise CaptureReadError(f"Failed to grab frame: {e}") from e

        if not ret:
            if self.failed_grab_is_end_of_stream:
                raise EndOfStream(f"{self._describe()} ended")
            raise CaptureReadError("Failed to grab frame")

        if image is None or image.size == 0:
            raise EndOfStream("Empty frame")

        timestamp = clock.elapsed()
        frame = Frame(image=image, timestamp=timestamp, frame_id=self._frame_counter)
        self._frame_counter += 1
        return frame

    def close(self) -> None:
        """Release the backend. Safe to call more than once."""
        if self._capture is None:
            return

        self._capture.release()
        self._capture = None
        logger.info(f"Released {self._describe()} after {self._frame_counter} frames")

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    @property
    def frames_read(self) -> int:
        return self._frame_counter

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class DirectDeviceSource(CaptureSource):
    """
    Numbered local camera through the platform capture API (V4L2 by default).

    After opening, width/height/fps are requested. The device is free to
    substitute its nearest supported mode; the actual mode is logged.
    """

    backend = CaptureBackend.DIRECT_DEVICE

    def _describe(self) -> str:
        return f"camera {self.config.device_index} ({self.config.device_api})"

    def _create_capture(self) -> cv2.VideoCapture:
        return cv2.VideoCapture(self.config.device_index, self.config.get_api_flag())

    def _after_open(self) -> None:
        # Ask for a common mode (camera may choose nearest)
        self._capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
        self._capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
        self._capture.set(cv2.CAP_PROP_FPS, self.config.fps)

        actual_width = int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_height = int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        actual_fps = self._capture.get(cv2.CAP_PROP_FPS)

        logger.info(
            f"Camera opened: {actual_width}x{actual_height} @ {actual_fps:.0f} FPS "
            f"(requested: {self.config.width}x{self.config.height} @ {self.config.fps} FPS)"
        )
        if (actual_width, actual_height) != (self.config.width, self.config.height):
            logger.warning("Camera substituted a different mode than requested")


class PipelineSource(CaptureSource):
    """
    Camera reached through a GStreamer pipeline description
    (source ! conversion stages ! appsink).
    """

    backend = CaptureBackend.PIPELINE
    failed_grab_is_end_of_stream = True

    def _describe(self) -> str:
        return "GStreamer pipeline"

    def _create_capture(self) -> cv2.VideoCapture:
        if not self.config.pipeline or not self.config.pipeline.strip():
            raise CaptureOpenError("Empty pipeline description")
        return cv2.VideoCapture(self.config.pipeline, cv2.CAP_GSTREAMER)

    def _after_open(self) -> None:
        logger.info(f"Pipeline opened: {self.config.pipeline}")


SOURCES = {
    CaptureBackend.DIRECT_DEVICE: DirectDeviceSource,
    CaptureBackend.PIPELINE: PipelineSource,
}


def create_source(config: CaptureConfig) -> CaptureSource:
    """Instantiate (without opening) the source for config.backend."""
    return SOURCES[config.backend](config)


def open_capture(config: CaptureConfig) -> CaptureSource:
    """
    Open exactly the backend selected by config.backend.

    Raises:
        CaptureOpenError: If it cannot be opened (no retry, no fallback)
    """
    source = create_source(config)
    source.open()
    return source
