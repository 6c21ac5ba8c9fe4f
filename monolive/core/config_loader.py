"""
Configuration loader with validation and defaults.
"""
import copy
from pathlib import Path
from typing import Any, Dict, Optional
import logging

import yaml

from .exceptions import ConfigError
from .io_utils import load_yaml

logger = logging.getLogger(__name__)

# libcamera-only Pi cameras: RGB from libcamerasrc, BGR conversion before appsink
DEFAULT_PIPELINE = (
    "libcamerasrc ! video/x-raw,format=RGB,width=640,height=480,framerate=30/1 "
    "! videoconvert ! video/x-raw,format=BGR ! appsink drop=1"
)


class Config:
    """
    Run configuration: built-in defaults merged with an optional YAML file.
    """

    DEFAULTS = {
        "capture": {
            "device_index": 0,
            "device_api": "v4l2",
            "width": 640,
            "height": 480,
            "fps": 30,
            "pipeline": DEFAULT_PIPELINE,
            "threaded": False,
            "queue_size": 4,
        },

        "session": {
            "trajectory_path": "KeyFrameTrajectory.txt",
            "preview": True,
            "window_name": "ORB-SLAM3 Live",
            "quit_keys": ["q", "esc"],
        },

        "engine": {
            "module": "orbslam3",
            "class_name": "ORB_SLAM3",
            "sensor": "MONOCULAR",
            "viewer": True,
            "dry_run_scale": 1.0,
            "dry_run_keyframe_interval": 10,
        },
    }

    def __init__(self, config_path: Optional[Path] = None):
        """
        Load configuration from file or use defaults.

        Args:
            config_path: Path to config YAML (None = use defaults)

        Raises:
            ConfigError: If an explicitly given file is missing or malformed
        """
        self.data = copy.deepcopy(self.DEFAULTS)

        if config_path is None:
            logger.info("Using default configuration")
            return

        config_path = Path(config_path)
        try:
            user_config = load_yaml(config_path)
        except FileNotFoundError as e:
            raise ConfigError(str(e)) from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Malformed config {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigError(f"Config root must be a mapping: {config_path}")

        self._merge_config(user_config)
        logger.info(f"Configuration loaded from {config_path}")

    def _merge_config(self, user_config: Dict[str, Any]) -> None:
        """Merge user config with defaults."""
        for section, values in user_config.items():
            if section in self.data and isinstance(values, dict):
                self.data[section].update(values)
            else:
                self.data[section] = values

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Get config value."""
        return self.data.get(section, {}).get(key, default)

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get entire config section."""
        return self.data.get(section, {})

    def set(self, section: str, key: str, value: Any) -> None:
        """Override a single value (used for CLI flags)."""
        self.data.setdefault(section, {})[key] = value


def apply_overrides(target: Any, overrides: Dict[str, Any]) -> None:
    """
    Apply dictionary overrides to a dataclass-like object.

    Unknown keys are ignored to remain forward compatible with new YAML fields.
    """
    for key, value in overrides.items():
        if hasattr(target, key):
            setattr(target, key, value)
        else:
            logger.warning("Ignoring unknown config key: %s", key)
