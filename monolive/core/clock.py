"""
Monotonic session clock for frame timestamps.
"""
import time
import logging

logger = logging.getLogger(__name__)


class MonotonicClock:
    """
    Elapsed-seconds clock zeroed at session start.

    Uses time.perf_counter(), which is monotonic and unaffected by
    wall-clock adjustments. Successive readings never decrease; two
    readings may be equal if the clock resolution is coarser than the
    capture interval, which downstream consumers accept.

    Usage:
        clock = MonotonicClock()
        clock.start()
        t = clock.elapsed()
    """

    def __init__(self, time_source=time.perf_counter):
        self._time_source = time_source
        self._t0 = None
        self._last = 0.0

    def start(self) -> None:
        """Zero the clock."""
        self._t0 = self._time_source()
        self._last = 0.0
        logger.debug("Session clock started")

    @property
    def started(self) -> bool:
        return self._t0 is not None

    def elapsed(self) -> float:
        """
        Seconds since start().

        Raises:
            RuntimeError: If the clock was never started
        """
        if self._t0 is None:
            raise RuntimeError("Clock not started")

        now = self._time_source() - self._t0
        # Guard against a non-monotonic injected source
        if now < self._last:
            now = self._last
        self._last = now
        return now
