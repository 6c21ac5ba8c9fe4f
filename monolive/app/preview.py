"""
Minimal preview window and cooperative quit-key polling.
"""
import cv2
import numpy as np
from typing import Iterable
import logging

logger = logging.getLogger(__name__)

KEY_CODES = {
    "esc": 27,
    "space": 32,
    "enter": 13,
}


def key_code(name: str) -> int:
    """Map a key name ('q', 'esc') to its waitKey code."""
    if not isinstance(name, str):
        raise TypeError(f"Key name must be a string, got {name!r}")
    name = name.lower()
    if name in KEY_CODES:
        return KEY_CODES[name]
    if len(name) != 1:
        raise ValueError(f"Unknown key name: {name}")
    return ord(name)


class Preview:
    """
    Shows the raw captured frame and polls for a quit key.

    poll_quit() uses waitKey(1), so it never blocks more than ~1 ms.
    With enabled=False no window is created and poll_quit() is always
    False (Ctrl-C still cancels).
    """

    def __init__(
            self,
            window_name: str = "ORB-SLAM3 Live",
            quit_keys: Iterable[str] = ("q", "esc"),
            enabled: bool = True
    ):
        self.window_name = window_name
        self.enabled = enabled
        self._quit_codes = {key_code(k) for k in quit_keys}
        self._window_open = False

    def show(self, image: np.ndarray) -> None:
        if not self.enabled:
            return
        cv2.imshow(self.window_name, image)
        self._window_open = True

    def poll_quit(self) -> bool:
        """Return True if a quit key was pressed since the last poll."""
        if not self.enabled:
            return False

        key = cv2.waitKey(1) & 0xFF
        if key in self._quit_codes:
            logger.info("Quit key pressed")
            return True
        return False

    def close(self) -> None:
        if not self._window_open:
            return
        try:
            cv2.destroyWindow(self.window_name)
            cv2.waitKey(1)
        except cv2.error as e:
            logger.debug(f"Preview window already gone: {e}")
        self._window_open = False
