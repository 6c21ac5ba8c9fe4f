"""
Capture module - backend selection, threaded capture and preprocessing.
"""
from .camera import (
    CaptureConfig,
    DEVICE_APIS,
    CaptureSource,
    DirectDeviceSource,
    PipelineSource,
    create_source,
    open_capture,
)
from .threaded_camera import ThreadedCaptureSource
from .preprocessor import FramePreprocessor, PreprocessConfig, scaled_size

__all__ = [
    "CaptureConfig",
    "DEVICE_APIS",
    "CaptureSource",
    "DirectDeviceSource",
    "PipelineSource",
    "create_source",
    "open_capture",
    "ThreadedCaptureSource",
    "FramePreprocessor",
    "PreprocessConfig",
    "scaled_size",
]
