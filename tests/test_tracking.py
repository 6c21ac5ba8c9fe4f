"""
Tests for tracking session, engines and trajectory files.
"""
import sys
import types
from pathlib import Path

import numpy as np
import pytest

from monolive.core import EngineInitError, Frame, KeyframePose, SessionStateError
from monolive.tracking import (
    DryRunEngine,
    OrbSlam3Engine,
    TrackingSession,
    read_tum_trajectory,
    write_tum_trajectory,
)


def make_frame(timestamp, frame_id=0):
    return Frame(image=np.zeros((48, 64), dtype=np.uint8), timestamp=timestamp, frame_id=frame_id)


def test_session_start_reads_scale(recording_engine, model_files, tmp_path):
    """start() initializes the engine and returns its image scale."""
    engine = recording_engine(image_scale=0.5)
    session = TrackingSession(engine, tmp_path / "traj.txt")

    scale = session.start(*model_files)

    assert scale == 0.5
    assert session.image_scale == 0.5
    assert engine.calls == ["initialize", "get_image_scale"]


def test_session_close_order(recording_engine, model_files, tmp_path):
    """Shutdown before export, each exactly once."""
    engine = recording_engine()
    session = TrackingSession(engine, tmp_path / "traj.txt")
    session.start(*model_files)
    session.feed(make_frame(0.1))

    written = session.close()
    again = session.close()

    assert written == tmp_path / "traj.txt"
    assert again is None
    assert engine.calls[-2:] == ["shutdown", "save"]
    assert engine.count("shutdown") == 1
    assert engine.count("save") == 1


def test_session_close_without_start(recording_engine, tmp_path):
    """Nothing to shut down if the engine never initialized."""
    engine = recording_engine()
    session = TrackingSession(engine, tmp_path / "traj.txt")

    assert session.close() is None
    assert engine.calls == []


def test_session_close_after_failed_init(recording_engine, model_files, tmp_path):
    """Failed init leaves the session closed-able without engine calls."""
    engine = recording_engine(fail_init=True)
    session = TrackingSession(engine, tmp_path / "traj.txt")

    with pytest.raises(EngineInitError):
        session.start(*model_files)

    assert session.close() is None
    assert engine.count("shutdown") == 0


def test_session_rejects_out_of_order(recording_engine, model_files, tmp_path):
    """Timestamps must not go backwards; ties are accepted."""
    session = TrackingSession(recording_engine(), tmp_path / "traj.txt")
    session.start(*model_files)

    session.feed(make_frame(1.0))
    session.feed(make_frame(1.0))
    with pytest.raises(ValueError):
        session.feed(make_frame(0.5))

    assert session.frames_fed == 2


def test_session_feed_requires_running(recording_engine, model_files, tmp_path):
    """No feeding before start or after close."""
    session = TrackingSession(recording_engine(), tmp_path / "traj.txt")
    with pytest.raises(SessionStateError):
        session.feed(make_frame(0.0))

    session.start(*model_files)
    session.close()
    with pytest.raises(SessionStateError):
        session.feed(make_frame(1.0))


def test_session_start_once(recording_engine, model_files, tmp_path):
    session = TrackingSession(recording_engine(), tmp_path / "traj.txt")
    session.start(*model_files)
    with pytest.raises(SessionStateError):
        session.start(*model_files)


def test_session_shutdown_failure_not_retried(recording_engine, model_files, tmp_path):
    """A failing shutdown skips export and is never called again."""
    engine = recording_engine()

    def broken_shutdown():
        engine.calls.append("shutdown")
        raise RuntimeError("engine crashed")

    engine.shutdown = broken_shutdown
    session = TrackingSession(engine, tmp_path / "traj.txt")
    session.start(*model_files)

    with pytest.raises(RuntimeError):
        session.close()
    assert session.close() is None

    assert engine.count("shutdown") == 1
    assert engine.count("save") == 0
    assert not (tmp_path / "traj.txt").exists()


def test_tum_roundtrip_sorted(tmp_path: Path):
    """Writer sorts by timestamp; reader parses 8 fields."""
    path = tmp_path / "KeyFrameTrajectory.txt"
    write_tum_trajectory(path, [
        KeyframePose(timestamp=2.0, position=(1.0, 0.0, 0.0)),
        KeyframePose(timestamp=1.0),
    ])

    poses = read_tum_trajectory(path)
    assert [p.timestamp for p in poses] == [1.0, 2.0]
    assert poses[1].position == (1.0, 0.0, 0.0)
    assert poses[0].orientation == (0.0, 0.0, 0.0, 1.0)


def test_read_tum_rejects_short_line(tmp_path: Path):
    path = tmp_path / "bad.txt"
    path.write_text("# comment\n\n1.0 2.0 3.0\n")
    with pytest.raises(ValueError):
        read_tum_trajectory(path)


def test_dry_run_engine_keyframes(tmp_path: Path, model_files):
    """Dry-run engine emits a keyframe every N frames."""
    engine = DryRunEngine(image_scale=0.5, keyframe_interval=3)
    session = TrackingSession(engine, tmp_path / "traj.txt")
    assert session.start(*model_files) == 0.5

    for i in range(7):
        session.feed(make_frame(i * 0.1, i))
    session.close()

    poses = read_tum_trajectory(tmp_path / "traj.txt")
    assert [p.timestamp for p in poses] == pytest.approx([0.0, 0.3, 0.6])
    assert engine.last_shape == (48, 64)


def test_dry_run_engine_requires_shutdown_before_save(tmp_path: Path):
    engine = DryRunEngine()
    engine.initialize("voc", "settings")
    with pytest.raises(RuntimeError):
        engine.save_keyframe_trajectory(tmp_path / "traj.txt")


class FakeSystem:
    """Mimics a binding exposing the C++ System API."""

    instances = []

    def __init__(self, vocabulary, settings, sensor, viewer):
        self.args = (vocabulary, settings, sensor, viewer)
        self.calls = []
        FakeSystem.instances.append(self)

    def TrackMonocular(self, image, timestamp):
        self.calls.append(("track", timestamp))

    def GetImageScale(self):
        return 0.75

    def Shutdown(self):
        self.calls.append(("shutdown",))

    def SaveKeyFrameTrajectoryTUM(self, path):
        self.calls.append(("save", path))


@pytest.fixture
def fake_binding(monkeypatch):
    FakeSystem.instances = []
    module = types.ModuleType("fake_orbslam3")
    module.ORB_SLAM3 = FakeSystem
    monkeypatch.setitem(sys.modules, "fake_orbslam3", module)
    return module


def test_orbslam3_engine_maps_calls(fake_binding, model_files, tmp_path):
    """Adapter forwards to the binding's System API."""
    vocabulary, settings = model_files
    engine = OrbSlam3Engine(module="fake_orbslam3")
    engine.initialize(vocabulary, settings, enable_viewer=False)

    system = FakeSystem.instances[0]
    assert system.args == (str(vocabulary), str(settings), "MONOCULAR", False)
    assert engine.get_image_scale() == 0.75

    engine.track_monocular(np.zeros((4, 4), dtype=np.uint8), 0.5)
    engine.shutdown()
    engine.save_keyframe_trajectory(tmp_path / "traj.txt")

    assert system.calls == [
        ("track", 0.5),
        ("shutdown",),
        ("save", str(tmp_path / "traj.txt")),
    ]


def test_orbslam3_engine_missing_module(model_files):
    """Unimportable binding is an engine init error."""
    engine = OrbSlam3Engine(module="no_such_orbslam_binding_module")
    with pytest.raises(EngineInitError):
        engine.initialize(*model_files)


def test_orbslam3_engine_missing_class(fake_binding, model_files):
    engine = OrbSlam3Engine(module="fake_orbslam3", class_name="System")
    with pytest.raises(EngineInitError):
        engine.initialize(*model_files)


def test_orbslam3_engine_missing_files(fake_binding, tmp_path):
    """Vocabulary/settings must exist."""
    engine = OrbSlam3Engine(module="fake_orbslam3")
    with pytest.raises(EngineInitError):
        engine.initialize(tmp_path / "missing.txt", tmp_path / "missing.yaml")
    assert FakeSystem.instances == []


def test_orbslam3_engine_constructor_failure(fake_binding, model_files):
    """Exceptions from the binding become EngineInitError."""
    def explode(*args):
        raise RuntimeError("bad settings")

    fake_binding.ORB_SLAM3 = explode
    with pytest.raises(EngineInitError):
        OrbSlam3Engine(module="fake_orbslam3").initialize(*model_files)
