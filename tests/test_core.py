"""
Unit tests for core module.
"""
import textwrap
from pathlib import Path

import numpy as np
import pytest

from monolive.core import (
    Config,
    ConfigError,
    Frame,
    KeyframePose,
    MonotonicClock,
    PerformanceMonitor,
    atomic_write_lines,
    load_yaml,
)


def test_frame_properties():
    """Test Frame dimension helpers."""
    img = np.zeros((480, 640, 3), dtype=np.uint8)
    frame = Frame(image=img, timestamp=0.5, frame_id=1)

    assert frame.shape == (480, 640, 3)
    assert frame.width == 640
    assert frame.height == 480
    assert frame.channels == 3
    assert not frame.is_grayscale

    gray = Frame(image=np.zeros((480, 640), dtype=np.uint8), timestamp=0.6, frame_id=2)
    assert gray.channels == 1
    assert gray.is_grayscale


def test_keyframe_pose_tum_line():
    """TUM line has timestamp, position and quaternion."""
    pose = KeyframePose(timestamp=1.5, position=(1.0, 2.0, 3.0))
    fields = pose.to_tum_line().split()

    assert len(fields) == 8
    assert float(fields[0]) == 1.5
    assert [float(v) for v in fields[1:4]] == [1.0, 2.0, 3.0]
    assert [float(v) for v in fields[4:]] == [0.0, 0.0, 0.0, 1.0]


def test_clock_requires_start():
    """Reading an unstarted clock is an error."""
    clock = MonotonicClock()
    assert not clock.started
    with pytest.raises(RuntimeError):
        clock.elapsed()


def test_clock_zeroed_at_start():
    """Elapsed time counts from start()."""
    readings = iter([100.0, 100.25, 101.0])
    clock = MonotonicClock(time_source=lambda: next(readings))

    clock.start()
    assert clock.elapsed() == pytest.approx(0.25)
    assert clock.elapsed() == pytest.approx(1.0)


def test_clock_never_decreases():
    """A backwards-jumping source yields a tie, not a decrease."""
    readings = iter([0.0, 2.0, 1.0, 3.0])
    clock = MonotonicClock(time_source=lambda: next(readings))
    clock.start()

    values = [clock.elapsed() for _ in range(3)]
    assert values == [2.0, 2.0, 3.0]


def test_real_clock_monotonic():
    """Default perf_counter clock is non-decreasing."""
    clock = MonotonicClock()
    clock.start()
    values = [clock.elapsed() for _ in range(1000)]

    assert values[0] >= 0.0
    assert all(b >= a for a, b in zip(values, values[1:]))


def test_config_defaults():
    """Defaults are available without a file."""
    config = Config()
    assert config.get("capture", "width") == 640
    assert config.get("capture", "height") == 480
    assert config.get("session", "trajectory_path") == "KeyFrameTrajectory.txt"
    assert "libcamerasrc" in config.get("capture", "pipeline")


def test_config_merges_yaml(tmp_path: Path):
    """File values override defaults section by section."""
    path = tmp_path / "run.yaml"
    path.write_text(textwrap.dedent("""
        capture:
          width: 1280
        session:
          preview: false
    """).strip())

    config = Config(path)

    assert config.get("capture", "width") == 1280
    assert config.get("capture", "height") == 480
    assert config.get("session", "preview") is False


def test_config_does_not_leak_between_instances(tmp_path: Path):
    """Overrides never modify the class defaults."""
    config = Config()
    config.set("capture", "width", 320)

    assert Config().get("capture", "width") == 640


def test_config_missing_file(tmp_path: Path):
    """Explicit but missing config file is an error."""
    with pytest.raises(ConfigError):
        Config(tmp_path / "missing.yaml")


def test_config_malformed_file(tmp_path: Path):
    """Malformed YAML is an error."""
    path = tmp_path / "bad.yaml"
    path.write_text("capture: [unclosed")
    with pytest.raises(ConfigError):
        Config(path)


def test_atomic_write_lines(tmp_path: Path):
    """Lines are written with trailing newlines, no temp files left."""
    target = tmp_path / "out" / "traj.txt"
    atomic_write_lines(target, ["a", "b"])

    assert target.read_text() == "a\nb\n"
    assert [p.name for p in target.parent.iterdir()] == ["traj.txt"]


def test_load_nonexistent_yaml():
    """Test loading non-existent file."""
    with pytest.raises(FileNotFoundError):
        load_yaml(Path("nonexistent_file.yaml"))


def test_performance_monitor_measure():
    """Measured stages show up in the report."""
    monitor = PerformanceMonitor()
    for _ in range(3):
        with monitor.measure("capture"):
            pass

    report = monitor.get_report()
    assert report["capture"]["call_count"] == 3
    assert monitor.get_stats("track") is None


def test_performance_monitor_disabled():
    """Disabled monitor records nothing."""
    monitor = PerformanceMonitor(enabled=False)
    with monitor.measure("capture"):
        pass
    assert monitor.get_report() == {}
