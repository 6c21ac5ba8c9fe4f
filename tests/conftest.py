"""
Shared test doubles: synthetic capture source, recording engine,
stepping clock and scripted preview. No camera hardware needed.
"""
import itertools
from pathlib import Path
from typing import List, Optional

import numpy as np
import pytest

from monolive.core import (
    CaptureBackend,
    CaptureOpenError,
    CaptureReadError,
    EndOfStream,
    EngineInitError,
    Frame,
    MonotonicClock,
)
from monolive.tracking import TrackingEngine


class SyntheticSource:
    """
    Yields `count` frames, then ends.

    fail_at: 1-based read index that raises `failure` instead of a frame.
    """

    backend = CaptureBackend.DIRECT_DEVICE

    def __init__(self, config=None, count=10, width=640, height=480, channels=3,
                 fail_at=None, failure=EndOfStream):
        self.config = config
        self.count = count
        self.shape = (height, width, channels) if channels > 1 else (height, width)
        self.fail_at = fail_at
        self.failure = failure
        self.reads = 0
        self.open_calls = 0
        self.close_calls = 0
        self._open = False

    def open(self):
        self.open_calls += 1
        self._open = True

    @property
    def is_open(self):
        return self._open

    @property
    def frames_read(self):
        return self.reads

    def read_frame(self, clock):
        if not self._open:
            raise CaptureReadError("not open")
        self.reads += 1
        if self.fail_at is not None and self.reads == self.fail_at:
            raise self.failure(f"synthetic failure at read {self.reads}")
        if self.reads > self.count:
            raise EndOfStream("synthetic stream exhausted")
        image = np.full(self.shape, self.reads % 256, dtype=np.uint8)
        return Frame(image=image, timestamp=clock.elapsed(), frame_id=self.reads - 1)

    def close(self):
        self.close_calls += 1
        self._open = False


class RecordingEngine(TrackingEngine):
    """Engine double that logs every call in order."""

    def __init__(self, image_scale=1.0, fail_init=False):
        self.image_scale = image_scale
        self.fail_init = fail_init
        self.calls: List[str] = []
        self.fed_timestamps: List[float] = []
        self.fed_shapes: List[tuple] = []
        self.saved_paths: List[Path] = []

    def initialize(self, vocabulary_path, settings_path, enable_viewer=True):
        self.calls.append("initialize")
        if self.fail_init:
            raise EngineInitError("synthetic init failure")

    def track_monocular(self, image, timestamp):
        self.calls.append("track")
        self.fed_timestamps.append(timestamp)
        self.fed_shapes.append(image.shape)

    def get_image_scale(self):
        self.calls.append("get_image_scale")
        return self.image_scale

    def shutdown(self):
        self.calls.append("shutdown")

    def save_keyframe_trajectory(self, path):
        self.calls.append("save")
        self.saved_paths.append(Path(path))
        Path(path).write_text("0.000000 0 0 0 0 0 0 1\n")

    def count(self, name: str) -> int:
        return self.calls.count(name)


class ScriptedPreview:
    """Preview double that reports a quit key on the N-th poll."""

    def __init__(self, quit_on_poll: Optional[int] = None):
        self.quit_on_poll = quit_on_poll
        self.shown = 0
        self.polls = 0
        self.closed = 0

    def show(self, image):
        self.shown += 1

    def poll_quit(self):
        self.polls += 1
        return self.quit_on_poll is not None and self.polls >= self.quit_on_poll

    def close(self):
        self.closed += 1


def failing_factory(config):
    raise CaptureOpenError("synthetic open failure")


@pytest.fixture
def step_clock():
    """Clock advancing 1/30 s per reading."""
    ticks = itertools.count()
    return MonotonicClock(time_source=lambda: next(ticks) / 30.0)


@pytest.fixture
def engine():
    return RecordingEngine()


@pytest.fixture
def model_files(tmp_path: Path):
    """Placeholder vocabulary and settings files."""
    vocabulary = tmp_path / "ORBvoc.txt"
    settings = tmp_path / "Settings.yaml"
    vocabulary.write_text("vocabulary")
    settings.write_text("%YAML:1.0\nCamera.RGB: 0\n")
    return vocabulary, settings


@pytest.fixture
def synthetic_source():
    """Factory fixture: returns (source_factory, created_sources)."""
    def make(**kwargs):
        created = []

        def factory(config):
            source = SyntheticSource(config, **kwargs)
            source.open()
            created.append(source)
            return source

        return factory, created

    return make


@pytest.fixture
def scripted_preview():
    return ScriptedPreview


@pytest.fixture
def recording_engine():
    return RecordingEngine


@pytest.fixture
def open_failure_factory():
    return failing_factory
