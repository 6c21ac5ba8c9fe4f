"""
Tracking module - engine adapters, session lifecycle, trajectory files.
"""
from .engine import TrackingEngine, OrbSlam3Engine, DryRunEngine
from .session import TrackingSession
from .trajectory import write_tum_trajectory, read_tum_trajectory

__all__ = [
    "TrackingEngine",
    "OrbSlam3Engine",
    "DryRunEngine",
    "TrackingSession",
    "write_tum_trajectory",
    "read_tum_trajectory",
]
