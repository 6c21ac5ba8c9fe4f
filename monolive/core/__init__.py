"""
Core module - shared data types, clock, errors, and configuration.
"""
from .types import (
    CaptureBackend,
    SessionState,
    ExitReason,
    Frame,
    KeyframePose,
    LoopResult,
)
from .exceptions import (
    MonoLiveError,
    ConfigError,
    CaptureError,
    CaptureOpenError,
    CaptureReadError,
    EndOfStream,
    EngineInitError,
    SessionStateError,
)
from .clock import MonotonicClock
from .io_utils import atomic_write_lines, load_yaml
from .config_loader import Config, apply_overrides, DEFAULT_PIPELINE
from .performance_monitor import PerformanceMonitor, TimingStats

__all__ = [
    # Types
    "CaptureBackend",
    "SessionState",
    "ExitReason",
    "Frame",
    "KeyframePose",
    "LoopResult",
    # Errors
    "MonoLiveError",
    "ConfigError",
    "CaptureError",
    "CaptureOpenError",
    "CaptureReadError",
    "EndOfStream",
    "EngineInitError",
    "SessionStateError",
    # Clock
    "MonotonicClock",
    # I/O
    "atomic_write_lines",
    "load_yaml",
    # Config
    "Config",
    "apply_overrides",
    "DEFAULT_PIPELINE",
    # Performance
    "PerformanceMonitor",
    "TimingStats",
]
