"""
App module - capture loop, preview and run configuration.
"""
from .capture_loop import CaptureLoop, SessionConfig, ALLOWED_TRANSITIONS
from .preview import Preview, key_code
from .config_loader import build_capture_config, build_session_config, build_engine

__all__ = [
    "CaptureLoop",
    "SessionConfig",
    "ALLOWED_TRANSITIONS",
    "Preview",
    "key_code",
    "build_capture_config",
    "build_session_config",
    "build_engine",
]
