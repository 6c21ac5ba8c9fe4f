"""
Capture loop: the session object that drives capture, preprocessing and
tracking, and owns the session lifecycle.

State flow:
- IDLE: constructed, nothing opened
- RUNNING: capture open, engine initialized, frames flowing
- TERMINATING: loop decided to stop (end of stream, read error, quit key,
  Ctrl-C) or startup failed
- TERMINATED: capture released, engine shut down, trajectory written

TERMINATING -> TERMINATED happens exactly once, on every exit path.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union
import logging

from monolive.core import (
    CaptureReadError,
    EndOfStream,
    ExitReason,
    LoopResult,
    MonotonicClock,
    PerformanceMonitor,
    SessionState,
    SessionStateError,
)
from monolive.capture import (
    CaptureConfig,
    FramePreprocessor,
    PreprocessConfig,
    ThreadedCaptureSource,
    open_capture,
)
from monolive.tracking import TrackingEngine, TrackingSession
from .preview import Preview

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    SessionState.IDLE: {SessionState.RUNNING, SessionState.TERMINATING},
    SessionState.RUNNING: {SessionState.TERMINATING},
    SessionState.TERMINATING: {SessionState.TERMINATED},
    SessionState.TERMINATED: set(),
}


@dataclass
class SessionConfig:
    """Configuration for one tracking run."""
    vocabulary_path: Union[str, Path] = "ORBvoc.txt"
    settings_path: Union[str, Path] = "Settings.yaml"
    trajectory_path: Union[str, Path] = "KeyFrameTrajectory.txt"

    # Engine's own map/trajectory viewer
    enable_viewer: bool = True

    # Raw-frame preview window with quit keys
    preview: bool = True
    window_name: str = "ORB-SLAM3 Live"
    quit_keys: List[str] = field(default_factory=lambda: ["q", "esc"])


class CaptureLoop:
    """
    Orchestrates one live monocular session.

    run() opens the selected backend, initializes the tracking session,
    then repeats read -> stamp -> preprocess -> feed -> preview -> poll
    until the stream ends, a read fails or the user quits. Capture release,
    engine shutdown and trajectory export happen in a finally block.

    Example:
        loop = CaptureLoop(capture_config, session_config, OrbSlam3Engine())
        result = loop.run()
    """

    def __init__(
            self,
            capture_config: CaptureConfig,
            session_config: SessionConfig,
            engine: TrackingEngine,
            source_factory: Callable = open_capture,
            clock: Optional[MonotonicClock] = None,
            preview: Optional[Preview] = None,
            monitor: Optional[PerformanceMonitor] = None
    ):
        """
        Args:
            capture_config: Backend selection and requested mode
            session_config: Engine inputs, trajectory path, preview options
            engine: Tracking engine (ORB-SLAM3 adapter or stand-in)
            source_factory: Callable returning an opened capture source
            clock: Session clock (default: MonotonicClock())
            preview: Preview window (default: built from session_config)
            monitor: Stage timing collector
        """
        self.capture_config = capture_config
        self.session_config = session_config
        self.session = TrackingSession(engine, session_config.trajectory_path)
        self.source_factory = source_factory
        self.clock = clock or MonotonicClock()
        self.preview = preview or Preview(
            window_name=session_config.window_name,
            quit_keys=session_config.quit_keys,
            enabled=session_config.preview
        )
        self.monitor = monitor or PerformanceMonitor()

        self.state = SessionState.IDLE
        self.state_history: List[SessionState] = [SessionState.IDLE]
        self.preprocessor: Optional[FramePreprocessor] = None

        self._source = None
        self._first_timestamp: Optional[float] = None
        self._last_timestamp: Optional[float] = None
        self._trajectory_path: Optional[Path] = None

    def _transition_to(self, new_state: SessionState) -> None:
        """Single mutation point for the session state."""
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise SessionStateError(
                f"Illegal transition {self.state.value} -> {new_state.value}"
            )
        logger.debug(f"State transition: {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.state_history.append(new_state)

    def _open_source(self):
        source = self.source_factory(self.capture_config)
        if self.capture_config.threaded:
            source = ThreadedCaptureSource(source, queue_size=self.capture_config.queue_size)
            source.open()
        return source

    def run(self) -> LoopResult:
        """
        Run the session to completion.

        Returns:
            LoopResult describing why and when the loop stopped

        Raises:
            CaptureOpenError: Selected backend could not be opened
            EngineInitError: Tracking engine could not be created
            SessionStateError: run() called more than once
        """
        if self.state is not SessionState.IDLE:
            raise SessionStateError("CaptureLoop.run() can only be called once")

        try:
            self._source = self._open_source()

            image_scale = self.session.start(
                self.session_config.vocabulary_path,
                self.session_config.settings_path,
                enable_viewer=self.session_config.enable_viewer
            )
            self.preprocessor = FramePreprocessor(PreprocessConfig(
                convert_grayscale=self.capture_config.grayscale,
                scale=image_scale
            ))

            self._transition_to(SessionState.RUNNING)
            exit_reason = self._feed_loop()

        finally:
            self._finish()

        result = LoopResult(
            exit_reason=exit_reason,
            frames_fed=self.session.frames_fed,
            first_timestamp=self._first_timestamp,
            last_timestamp=self._last_timestamp,
            trajectory_path=str(self._trajectory_path) if self._trajectory_path else None,
        )
        logger.info(
            f"Session finished: {exit_reason.value}, {result.frames_fed} frames fed"
        )
        return result

    def _feed_loop(self) -> ExitReason:
        """Blocking read/feed loop. Returns why it stopped."""
        logger.info("Start live monocular tracking")
        self.clock.start()

        try:
            while True:
                try:
                    with self.monitor.measure("capture"):
                        frame = self._source.read_frame(self.clock)
                except EndOfStream as e:
                    logger.info(f"End of stream: {e}")
                    return ExitReason.END_OF_STREAM
                except CaptureReadError as e:
                    logger.error(f"{e}. Exiting.")
                    return ExitReason.READ_ERROR

                with self.monitor.measure("preprocess"):
                    processed = self.preprocessor.process(frame)

                with self.monitor.measure("track"):
                    self.session.feed(processed)

                if self._first_timestamp is None:
                    self._first_timestamp = processed.timestamp
                self._last_timestamp = processed.timestamp

                self.preview.show(frame.image)
                if self.preview.poll_quit():
                    return ExitReason.USER_CANCEL

        except KeyboardInterrupt:
            logger.info("Interrupted by user")
            return ExitReason.INTERRUPTED

    def _finish(self) -> None:
        """Release everything, whatever the exit path."""
        if self.state in (SessionState.IDLE, SessionState.RUNNING):
            self._transition_to(SessionState.TERMINATING)

        try:
            if self._source is not None:
                self._source.close()
        finally:
            try:
                self._trajectory_path = self.session.close()
            finally:
                self.preview.close()
                self._transition_to(SessionState.TERMINATED)
                self.monitor.log_report()
