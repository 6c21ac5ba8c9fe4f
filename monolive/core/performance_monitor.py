"""
Per-stage timing for the capture pipeline.
"""
import time
from typing import Dict, Optional
from dataclasses import dataclass, field
from collections import deque
import logging

logger = logging.getLogger(__name__)


@dataclass
class TimingStats:
    """Statistics for a timed operation."""
    total_time: float = 0.0
    call_count: int = 0
    min_time: float = float('inf')
    max_time: float = 0.0

    # Recent history (sliding window)
    recent_times: deque = field(default_factory=lambda: deque(maxlen=100))

    def update(self, duration: float) -> None:
        """Update statistics with new timing."""
        self.total_time += duration
        self.call_count += 1
        self.min_time = min(self.min_time, duration)
        self.max_time = max(self.max_time, duration)
        self.recent_times.append(duration)

    @property
    def avg_time(self) -> float:
        if self.call_count == 0:
            return 0.0
        return self.total_time / self.call_count

    @property
    def recent_avg_time(self) -> float:
        if not self.recent_times:
            return 0.0
        return sum(self.recent_times) / len(self.recent_times)

    @property
    def avg_fps(self) -> float:
        if self.avg_time == 0:
            return 0.0
        return 1.0 / self.avg_time


class PerformanceMonitor:
    """
    Performance monitor for pipeline stages.

    Usage:
        monitor = PerformanceMonitor()

        with monitor.measure("capture"):
            frame = source.read_frame(clock)

        with monitor.measure("track"):
            session.feed(frame)

        monitor.log_report()
    """

    def __init__(self, enabled: bool = True):
        self.timings: Dict[str, TimingStats] = {}
        self.enabled = enabled

    def measure(self, name: str) -> "TimingContext":
        """
        Context manager for measuring operation time.

        Args:
            name: Operation name
        """
        return TimingContext(self, name)

    def record(self, name: str, duration: float) -> None:
        """Record timing manually."""
        if not self.enabled:
            return

        if name not in self.timings:
            self.timings[name] = TimingStats()

        self.timings[name].update(duration)

    def get_stats(self, name: str) -> Optional[TimingStats]:
        """Get statistics for operation."""
        return self.timings.get(name)

    def get_report(self) -> dict:
        """
        Get complete performance report.

        Returns:
            Dictionary with timing stats for all operations
        """
        report = {}

        for name, stats in self.timings.items():
            report[name] = {
                "avg_time_ms": stats.avg_time * 1000,
                "recent_avg_ms": stats.recent_avg_time * 1000,
                "min_ms": stats.min_time * 1000,
                "max_ms": stats.max_time * 1000,
                "call_count": stats.call_count,
                "avg_fps": stats.avg_fps,
            }

        return report

    def log_report(self) -> None:
        """Log one line per stage."""
        if not self.timings:
            logger.info("No timing data collected")
            return

        for name, stats in sorted(self.timings.items()):
            logger.info(
                f"{name:<12} calls={stats.call_count:<6} "
                f"avg={stats.avg_time * 1000:.2f}ms "
                f"recent={stats.recent_avg_time * 1000:.2f}ms "
                f"max={stats.max_time * 1000:.2f}ms"
            )


class TimingContext:
    """Context manager for timing operations."""

    def __init__(self, monitor: PerformanceMonitor, name: str):
        self.monitor = monitor
        self.name = name
        self.start_time = None

    def __enter__(self):
        if self.monitor.enabled:
            self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.monitor.enabled and self.start_time is not None:
            self.monitor.record(self.name, time.perf_counter() - self.start_time)

        return False
