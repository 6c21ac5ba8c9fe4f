"""
Threaded capture with a bounded, order-preserving queue.
Moves the blocking backend read off the tracking thread.
"""
import threading
import queue
import logging
from typing import Optional, Union

from monolive.core import (
    CaptureReadError,
    EndOfStream,
    Frame,
    MonotonicClock,
)
from .camera import CaptureSource

logger = logging.getLogger(__name__)


class ThreadedCaptureSource:
    """
    Producer/consumer wrapper around a CaptureSource.

    The worker thread reads and stamps frames and puts them on a bounded
    queue. Unlike a preview camera, frames are never dropped: a full queue
    blocks the worker, so the tracking engine still sees every frame in
    capture order. End-of-stream and read errors travel through the queue
    after the last good frame and are re-raised by read_frame().

    Example:
        source = ThreadedCaptureSource(DirectDeviceSource(config), queue_size=4)
        source.open()
        frame = source.read_frame(clock)
        source.close()
    """

    def __init__(self, source: CaptureSource, queue_size: int = 4):
        """
        Args:
            source: Unopened or opened blocking source
            queue_size: Max frames buffered between worker and consumer
        """
        if queue_size < 1:
            raise ValueError("queue_size must be >= 1")

        self.source = source
        self.queue_size = queue_size

        self._frame_queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._capture_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._terminal: Optional[Exception] = None

    @property
    def backend(self):
        return self.source.backend

    @property
    def config(self):
        return self.source.config

    def open(self) -> None:
        """Open the wrapped source. The worker starts on the first read."""
        if not self.source.is_open:
            self.source.open()

    def _start(self, clock: MonotonicClock) -> None:
        self._stop_event.clear()
        self._capture_thread = threading.Thread(
            target=self._capture_loop,
            args=(clock,),
            daemon=True,
            name="CameraCapture"
        )
        self._capture_thread.start()
        logger.info(f"Capture thread started (queue size {self.queue_size})")

    def _put(self, item: Union[Frame, Exception]) -> bool:
        """Blocking put that gives up only when stopping."""
        while not self._stop_event.is_set():
            try:
                self._frame_queue.put(item, timeout=0.1)
                return True
            except queue.Full:
                continue
        return False

    def _capture_loop(self, clock: MonotonicClock) -> None:
        """Main capture loop (runs in separate thread)."""
        logger.debug("Capture loop started")

        while not self._stop_event.is_set():
            try:
                frame = self.source.read_frame(clock)
            except (EndOfStream, CaptureReadError) as e:
                self._put(e)
                break
            except Exception as e:
                logger.exception("Unexpected capture failure")
                self._put(CaptureReadError(f"Capture thread failed: {e}"))
                break

            if not self._put(frame):
                break

        logger.debug("Capture loop ended")

    def read_frame(self, clock: MonotonicClock) -> Frame:
        """
        Next frame in capture order.

        Raises:
            EndOfStream: Worker reached end of stream
            CaptureReadError: Worker hit a read error, or source not open
        """
        if self._terminal is not None:
            raise self._terminal

        if not self.source.is_open:
            raise CaptureReadError("Capture is not open")

        if self._capture_thread is None:
            self._start(clock)

        item = self._frame_queue.get()
        if isinstance(item, Exception):
            self._terminal = item
            raise item
        return item

    def close(self) -> None:
        """Stop the worker, then release the wrapped source."""
        self._stop_event.set()

        # Unblock a worker waiting on a full queue
        while True:
            try:
                self._frame_queue.get_nowait()
            except queue.Empty:
                break

        if self._capture_thread is not None:
            self._capture_thread.join(timeout=2.0)
            if self._capture_thread.is_alive():
                logger.warning("Capture thread did not stop within 2s")
            self._capture_thread = None

        self.source.close()

    @property
    def is_open(self) -> bool:
        return self.source.is_open

    @property
    def frames_read(self) -> int:
        return self.source.frames_read

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
