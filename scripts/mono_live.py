"""
Live monocular ORB-SLAM3 from a camera (source-tree launcher).

Usage:
    python scripts/mono_live.py ORBvoc.txt Settings.yaml [--gray] [--gstreamer]

Controls:
    - 'q' / ESC: Quit (preview window must have focus)
    - Ctrl-C: Quit (headless)
"""
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from monolive.cli import main


if __name__ == "__main__":
    sys.exit(main())
