"""
Frame cadence control and timing statistics.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RunningStats:
    """Welford running mean / variance with min and max."""

    def __init__(self) -> None:
        self.count = 0
        self.mean = 0.0
        self._m2 = 0.0
        self.min = 0.0
        self.max = 0.0

    def add(self, x: float) -> None:
        if self.count == 0:
            self.min = self.max = x
        else:
            self.min = min(self.min, x)
            self.max = max(self.max, x)
        self.count += 1
        delta = x - self.mean
        self.mean += delta / self.count
        self._m2 += delta * (x - self.mean)

    @property
    def variance(self) -> float:
        """Sample variance (n - 1 denominator); 0 for fewer than 2 values."""
        return self._m2 / (self.count - 1) if self.count > 1 else 0.0

    @property
    def std(self) -> float:
        return math.sqrt(self.variance)

    def reset(self) -> None:
        self.count = 0
        self.mean = 0.0
        self._m2 = 0.0
        self.min = 0.0
        self.max = 0.0


class FramePacer:
    """
    Soft frame-rate limiter.

    Each iteration sleeps whatever is left of ``1 / fps``.  Iterations that
    take more than twice the interval are logged as overruns; nothing is
    dropped.

    Parameters
    ----------
    fps:
        Target acquisition rate.
    stats_interval:
        Seconds between sample-jitter log lines (debug mode only).
    clock, sleep:
        Injectable for tests.
    """

    def __init__(
        self,
        fps: float,
        stats_interval: float = 2.0,
        clock: Callable[[], float] = time.perf_counter,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self.interval = 1.0 / fps
        self.stats_interval = stats_interval
        self._clock = clock
        self._sleep = sleep

        self.sample_dt = RunningStats()
        self._last_sample: Optional[float] = None
        self._last_stats_log = clock()
        self.frames = 0
        self.faces = 0
        self.overruns = 0

    def now(self) -> float:
        return self._clock()

    def wait(self, frame_start: float) -> float:
        """Sleep the residual of the interval; return the elapsed frame time."""
        elapsed = self._clock() - frame_start
        if elapsed > 2 * self.interval:
            self.overruns += 1
            logger.warning(
                "Frame processing overrun: %.1f ms (interval %.1f ms)",
                elapsed * 1000.0, self.interval * 1000.0,
            )
        elif logger.isEnabledFor(logging.DEBUG):
            logger.debug("Frame processing time: %.1f ms", elapsed * 1000.0)
        if elapsed < self.interval:
            self._sleep(self.interval - elapsed)
        return elapsed

    def record_frame(self, face_found: bool) -> None:
        self.frames += 1
        if face_found:
            self.faces += 1

    def record_sample(self) -> None:
        """Record the time of an admitted sample for jitter statistics."""
        now = self._clock()
        if self._last_sample is not None:
            self.sample_dt.add((now - self._last_sample) * 1000.0)
        self._last_sample = now

    def log_stats(self) -> bool:
        """Log sample-interval jitter every ``stats_interval`` seconds."""
        now = self._clock()
        if now - self._last_stats_log < self.stats_interval or self.sample_dt.count < 2:
            return False

        stats = self.sample_dt
        target_ms = self.interval * 1000.0
        face_pct = 100.0 * self.faces / self.frames if self.frames else 0.0
        logger.debug(
            "Sample dt: mean %.2f ms (std %.2f), min %.2f, max %.2f, est %.2f fps, "
            "jitter [min %.2f, max %.2f] ms, faces %.0f%% (%d/%d)",
            stats.mean, stats.std, stats.min, stats.max,
            1000.0 / stats.mean if stats.mean > 0 else 0.0,
            stats.min - target_ms, stats.max - target_ms,
            face_pct, self.faces, self.frames,
        )
        self._last_stats_log = now
        stats.reset()
        self.frames = 0
        self.faces = 0
        return True
