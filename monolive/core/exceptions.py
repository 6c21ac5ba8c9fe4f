"""
Exception hierarchy for capture, tracking and session lifecycle failures.
"""


class MonoLiveError(Exception):
    """Base class for all monolive errors."""


class ConfigError(MonoLiveError):
    """Configuration file or value is invalid."""


class CaptureError(MonoLiveError):
    """Base class for capture backend failures."""


class CaptureOpenError(CaptureError):
    """Selected capture backend could not be opened."""


class CaptureReadError(CaptureError):
    """Backend failed while grabbing a frame mid-stream."""


class EndOfStream(Exception):
    """Capture source has no more frames. Not a failure."""


class EngineInitError(MonoLiveError):
    """Tracking engine could not be created."""


class SessionStateError(MonoLiveError):
    """Illegal session lifecycle transition."""
