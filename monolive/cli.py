"""
Live monocular ORB-SLAM3 from a camera.

Usage:
    monolive ORBvoc.txt Settings.yaml
    monolive ORBvoc.txt Settings.yaml --gray
    monolive ORBvoc.txt Settings.yaml --gstreamer      # libcamera-only Pi cameras
    monolive ORBvoc.txt Settings.yaml --dry-run --no-preview

Notes:
    - If the settings use Camera.RGB: 0, pass --gray.
    - If the camera is only reachable through libcamera, use --gstreamer.
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from monolive.core import (
    CaptureBackend,
    CaptureOpenError,
    Config,
    ConfigError,
    EngineInitError,
)
from monolive.app import (
    CaptureLoop,
    build_capture_config,
    build_engine,
    build_session_config,
)

logger = logging.getLogger(__name__)


class ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> ArgumentParser:
    """Command line interface."""
    parser = ArgumentParser(
        prog="monolive",
        description="Feed a live camera into a monocular ORB-SLAM3 session",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  monolive ORBvoc.txt Settings.yaml                 # V4L2 camera 0
  monolive ORBvoc.txt Settings.yaml --gray          # grayscale input
  monolive ORBvoc.txt Settings.yaml --gstreamer     # libcamera via GStreamer
        """
    )

    parser.add_argument("vocabulary", type=Path, help="ORB vocabulary file")
    parser.add_argument("settings", type=Path, help="Camera/ORB settings YAML")

    parser.add_argument(
        "--gray",
        action="store_true",
        help="Convert frames to grayscale before tracking"
    )
    parser.add_argument(
        "--gstreamer",
        action="store_true",
        help="Capture through a GStreamer pipeline instead of a V4L2 device"
    )

    capture = parser.add_argument_group("capture")
    capture.add_argument("--device", type=int, default=None, help="Camera index (default: 0)")
    capture.add_argument("--width", type=int, default=None, help="Requested width (default: 640)")
    capture.add_argument("--height", type=int, default=None, help="Requested height (default: 480)")
    capture.add_argument("--fps", type=int, default=None, help="Requested frame rate (default: 30)")
    capture.add_argument("--pipeline", type=str, default=None, help="GStreamer pipeline description")
    capture.add_argument(
        "--threaded",
        action="store_true",
        help="Read frames in a worker thread (bounded queue, no drops)"
    )

    session = parser.add_argument_group("session")
    session.add_argument(
        "--trajectory",
        type=Path,
        default=None,
        help="Keyframe trajectory output (default: KeyFrameTrajectory.txt)"
    )
    session.add_argument("--no-preview", action="store_true", help="Don't open the preview window")
    session.add_argument("--no-viewer", action="store_true", help="Disable the ORB-SLAM3 viewer")
    session.add_argument(
        "--dry-run",
        action="store_true",
        help="Run capture and preprocessing without ORB-SLAM3"
    )

    parser.add_argument("-c", "--config", type=Path, default=None, help="YAML run configuration")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    return parser


def apply_cli_overrides(config: Config, args: argparse.Namespace) -> None:
    """Copy explicitly given flags into the config."""
    capture_flags = {
        "device_index": args.device,
        "width": args.width,
        "height": args.height,
        "fps": args.fps,
        "pipeline": args.pipeline,
    }
    for key, value in capture_flags.items():
        if value is not None:
            config.set("capture", key, value)

    if args.threaded:
        config.set("capture", "threaded", True)
    if args.trajectory is not None:
        config.set("session", "trajectory_path", str(args.trajectory))
    if args.no_preview:
        config.set("session", "preview", False)
    if args.no_viewer:
        config.set("engine", "viewer", False)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    for label, path in (("Vocabulary", args.vocabulary), ("Settings", args.settings)):
        if not path.is_file():
            logger.error(f"{label} file not found: {path}")
            return 1

    backend = CaptureBackend.PIPELINE if args.gstreamer else CaptureBackend.DIRECT_DEVICE

    try:
        config = Config(args.config)
        apply_cli_overrides(config, args)
        capture_config = build_capture_config(config, backend=backend, grayscale=args.gray)
        session_config = build_session_config(config, args.vocabulary, args.settings)
        engine = build_engine(config, dry_run=args.dry_run)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    loop = CaptureLoop(capture_config, session_config, engine)

    print("\n-------\nStart live monocular tracking...")
    if session_config.preview:
        print("Press 'q' or ESC in the preview window to quit.")
    else:
        print("Press Ctrl-C to quit.")

    try:
        result = loop.run()
    except CaptureOpenError as e:
        logger.error(str(e))
        if backend is CaptureBackend.DIRECT_DEVICE:
            logger.error("If the camera is only reachable through libcamera, retry with --gstreamer.")
        return 1
    except EngineInitError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        # Ctrl-C once frames flow is handled inside CaptureLoop
        logger.info("Interrupted during startup")
        return 0

    print(f"Stopped ({result.exit_reason.value}) after {result.frames_fed} frames.")
    if result.trajectory_path:
        print(f"Keyframe trajectory: {result.trajectory_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
