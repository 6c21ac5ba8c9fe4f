"""
Keyframe trajectory persistence in TUM format:
one line per keyframe, "timestamp tx ty tz qx qy qz qw".
"""
from pathlib import Path
from typing import Iterable, List, Union
import logging

from monolive.core import KeyframePose, atomic_write_lines

logger = logging.getLogger(__name__)


def write_tum_trajectory(path: Union[str, Path], poses: Iterable[KeyframePose]) -> Path:
    """
    Write keyframe poses atomically, sorted by timestamp.

    Args:
        path: Output file
        poses: Keyframe poses

    Returns:
        Written path
    """
    ordered = sorted(poses, key=lambda p: p.timestamp)
    written = atomic_write_lines(path, (pose.to_tum_line() for pose in ordered))
    logger.info(f"Saved {len(ordered)} keyframes to {written}")
    return written


def read_tum_trajectory(path: Union[str, Path]) -> List[KeyframePose]:
    """
    Parse a TUM trajectory file. Blank lines and '#' comments are skipped.

    Raises:
        ValueError: On a line without 8 numeric fields
    """
    poses = []
    with open(path, 'r', encoding='utf-8') as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            fields = line.split()
            if len(fields) != 8:
                raise ValueError(f"{path}:{line_no}: expected 8 fields, got {len(fields)}")
            values = [float(v) for v in fields]
            poses.append(KeyframePose(
                timestamp=values[0],
                position=tuple(values[1:4]),
                orientation=tuple(values[4:8]),
            ))
    return poses
