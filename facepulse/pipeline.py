"""
Per-frame processing pipeline.

landmarks → forehead stabiliser → colour sampler → estimator → BPM

Every condition that prevents a fresh estimate (no face, forehead out of
view, window still buffering, no spectral peak) is reported as a
:class:`FrameStatus` and leaves the previously reported BPM untouched.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import numpy as np

from facepulse.debug import DebugIntrospector, describe_peaks
from facepulse.errors import BufferingError, NoDominantPeakError
from facepulse.estimator import HeartRateEstimator
from facepulse.landmarks import LandmarkProvider, LandmarkSet
from facepulse.sampler import ColorSample, ColorSampler
from facepulse.spectrum import SpectrumReport
from facepulse.stabilizer import EMPTY_PATCH, ForeheadStabilizer, StabilizedPatch
from facepulse.visualizer import Visualizer

logger = logging.getLogger(__name__)


class FrameStatus(Enum):
    OK = "ok"
    BUFFERING = "buffering"
    NO_FACE = "no_face"
    DEGENERATE_ROI = "degenerate_roi"
    NO_DOMINANT_PEAK = "no_dominant_peak"


@dataclass
class FrameResult:
    status: FrameStatus
    bpm: Optional[float]                 # last reported BPM, possibly stale
    patch: StabilizedPatch = EMPTY_PATCH
    landmarks: Optional[LandmarkSet] = None
    sample: Optional[ColorSample] = None
    report: Optional[SpectrumReport] = None
    waveform: Optional[np.ndarray] = None   # debug mode only

    @property
    def fresh(self) -> bool:
        return self.status is FrameStatus.OK


def crop_to_roi(frame: np.ndarray, roi) -> np.ndarray:
    """Return the view of *frame* inside ``(x, y, w, h)`` clipped to the frame."""
    if roi is None:
        return frame
    x, y, w, h = roi
    if w <= 0 or h <= 0:
        return frame
    rows, cols = frame.shape[:2]
    x0, y0 = min(max(x, 0), cols), min(max(y, 0), rows)
    x1, y1 = min(max(x + w, 0), cols), min(max(y + h, 0), rows)
    if x1 <= x0 or y1 <= y0:
        return frame
    return frame[y0:y1, x0:x1]


class PulsePipeline:
    """
    Parameters
    ----------
    provider:
        Landmark source for each frame.
    estimator:
        Heart-rate estimator owning the sliding window.
    stabilizer, sampler:
        Patch extraction; defaults are used when omitted.
    visualizer, introspector:
        Frame annotation; only used by :meth:`annotate`.
    buffer_log_interval:
        Seconds between "Buffering" progress log lines.
    """

    def __init__(
        self,
        provider: LandmarkProvider,
        estimator: HeartRateEstimator,
        stabilizer: Optional[ForeheadStabilizer] = None,
        sampler: Optional[ColorSampler] = None,
        visualizer: Optional[Visualizer] = None,
        introspector: Optional[DebugIntrospector] = None,
        buffer_log_interval: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.provider = provider
        self.estimator = estimator
        self.stabilizer = stabilizer or ForeheadStabilizer()
        self.sampler = sampler or ColorSampler()
        self.visualizer = visualizer or Visualizer()
        self.introspector = introspector or DebugIntrospector()
        self.buffer_log_interval = buffer_log_interval
        self._clock = clock

        self.last_bpm: Optional[float] = None
        self._buffer_ready_logged = False
        self._last_buffer_log = clock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def process(self, frame: np.ndarray, debug: bool = False) -> FrameResult:
        """Run one frame through the pipeline."""
        landmarks = self.provider.detect(frame)
        if landmarks is None:
            return self._finish(FrameResult(FrameStatus.NO_FACE, self.last_bpm))

        patch = self.stabilizer.stabilize(frame, landmarks)
        sample = self.sampler.sample(patch)
        if sample is None:
            return self._finish(
                FrameResult(FrameStatus.DEGENERATE_ROI, self.last_bpm, patch, landmarks)
            )

        self.estimator.add_sample(sample)
        result = FrameResult(FrameStatus.OK, self.last_bpm, patch, landmarks, sample)
        try:
            waveform = self.estimator.pulse_waveform()
            report = self.estimator.analyzer.analyze(waveform, diagnostics=debug)
        except BufferingError:
            result.status = FrameStatus.BUFFERING
        except NoDominantPeakError as exc:
            logger.debug("%s", exc)
            result.status = FrameStatus.NO_DOMINANT_PEAK
        else:
            self.last_bpm = report.bpm
            result.bpm = report.bpm
            result.report = report
            if debug:
                result.waveform = waveform
                logger.debug(describe_peaks(report))
        return self._finish(result)

    def annotate(self, frame: np.ndarray, result: FrameResult, debug: bool = False) -> np.ndarray:
        """Draw status and, in debug mode, geometry and plots onto *frame*."""
        self.visualizer.draw_status(frame, result.status.value, self.estimator.fill_ratio)
        if debug:
            self.visualizer.draw_debug(frame, result.landmarks, result.patch.polygon)
            if result.waveform is not None:
                self.introspector.annotate(frame, result.waveform, result.report)
        return frame

    def reset(self) -> None:
        """Clear the analysis window and forget the last BPM."""
        self.estimator.clear()
        self.last_bpm = None
        self._buffer_ready_logged = False
        logger.info("Signal buffer reset.")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _finish(self, result: FrameResult) -> FrameResult:
        self._log_buffer_progress()
        return result

    def _log_buffer_progress(self) -> None:
        if self._buffer_ready_logged:
            return
        size, capacity = self.estimator.buffer_size, self.estimator.window_size
        if size >= capacity:
            logger.info("Buffer filled: %d samples", capacity)
            self._buffer_ready_logged = True
            return
        now = self._clock()
        if now - self._last_buffer_log > self.buffer_log_interval:
            logger.info("Buffering: %d/%d (%.0f%%)", size, capacity, 100.0 * size / capacity)
            self._last_buffer_log = now
