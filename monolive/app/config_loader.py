"""
Build capture, session and engine settings from a Config.

Command-line flags are applied to the Config before these builders run,
so values resolve as: CLI flag > YAML file > built-in default.
Every bad value surfaces as ConfigError.
"""
from pathlib import Path
from typing import Optional, Union
import logging

from monolive.core import CaptureBackend, Config, ConfigError, apply_overrides
from monolive.capture import CaptureConfig, DEVICE_APIS
from monolive.tracking import DryRunEngine, OrbSlam3Engine, TrackingEngine
from .capture_loop import SessionConfig
from .preview import key_code

logger = logging.getLogger(__name__)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def build_capture_config(
        config: Config,
        backend: Optional[CaptureBackend] = None,
        grayscale: Optional[bool] = None
) -> CaptureConfig:
    """
    Construct CaptureConfig from the 'capture' section.

    Args:
        config: Loaded configuration
        backend: Backend chosen on the command line (overrides file)
        grayscale: Grayscale flag from the command line (overrides file)

    Raises:
        ConfigError: On a value of the wrong type or out of range
    """
    capture_config = CaptureConfig()
    apply_overrides(capture_config, config.get_section("capture"))

    if backend is not None:
        capture_config.backend = backend
    if grayscale is not None:
        capture_config.grayscale = grayscale

    try:
        capture_config.__post_init__()
    except ValueError as e:
        raise ConfigError(f"Invalid capture backend: {capture_config.backend}") from e

    for key in ("width", "height", "fps", "queue_size"):
        value = getattr(capture_config, key)
        if not _is_int(value) or value <= 0:
            raise ConfigError(f"capture.{key} must be a positive integer, got {value!r}")

    if not _is_int(capture_config.device_index) or capture_config.device_index < 0:
        raise ConfigError(
            f"capture.device_index must be a non-negative integer, "
            f"got {capture_config.device_index!r}"
        )

    device_api = capture_config.device_api
    if not isinstance(device_api, str) or device_api.lower() not in DEVICE_APIS:
        raise ConfigError(
            f"capture.device_api must be one of {sorted(DEVICE_APIS)}, got {device_api!r}"
        )

    if not isinstance(capture_config.pipeline, str):
        raise ConfigError(
            f"capture.pipeline must be a string, got {capture_config.pipeline!r}"
        )

    return capture_config


def build_session_config(
        config: Config,
        vocabulary_path: Union[str, Path],
        settings_path: Union[str, Path]
) -> SessionConfig:
    """
    Construct SessionConfig from the 'session' and 'engine' sections.

    Raises:
        ConfigError: On unknown quit keys or a non-string window name
    """
    session_config = SessionConfig(
        vocabulary_path=vocabulary_path,
        settings_path=settings_path,
    )
    apply_overrides(session_config, config.get_section("session"))
    session_config.enable_viewer = bool(config.get("engine", "viewer", True))

    quit_keys = session_config.quit_keys
    if isinstance(quit_keys, str) or not isinstance(quit_keys, (list, tuple)):
        raise ConfigError(f"session.quit_keys must be a list, got {quit_keys!r}")
    for name in quit_keys:
        try:
            key_code(name)
        except (ValueError, TypeError) as e:
            raise ConfigError(f"session.quit_keys: {e}") from e

    if not isinstance(session_config.window_name, str):
        raise ConfigError(
            f"session.window_name must be a string, got {session_config.window_name!r}"
        )

    return session_config


def build_engine(config: Config, dry_run: bool = False) -> TrackingEngine:
    """
    Create the tracking engine named by the 'engine' section.

    Args:
        config: Loaded configuration
        dry_run: Use DryRunEngine instead of the ORB-SLAM3 binding

    Raises:
        ConfigError: On invalid dry-run settings or non-string binding names
    """
    if dry_run:
        logger.info("Dry run: ORB-SLAM3 replaced by DryRunEngine")
        scale = config.get("engine", "dry_run_scale", 1.0)
        interval = config.get("engine", "dry_run_keyframe_interval", 10)
        if isinstance(scale, bool) or not isinstance(scale, (int, float)):
            raise ConfigError(f"engine.dry_run_scale must be a number, got {scale!r}")
        if not _is_int(interval):
            raise ConfigError(
                f"engine.dry_run_keyframe_interval must be an integer, got {interval!r}"
            )
        try:
            return DryRunEngine(image_scale=float(scale), keyframe_interval=interval)
        except ValueError as e:
            raise ConfigError(f"engine: {e}") from e

    names = {
        "module": config.get("engine", "module", "orbslam3"),
        "class_name": config.get("engine", "class_name", "ORB_SLAM3"),
        "sensor": config.get("engine", "sensor", "MONOCULAR"),
    }
    for key, value in names.items():
        if not isinstance(value, str) or not value:
            raise ConfigError(f"engine.{key} must be a non-empty string, got {value!r}")

    return OrbSlam3Engine(**names)
