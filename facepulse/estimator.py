"""
Heart-rate estimator.

Algorithm
---------
1. Keep the last N colour samples in a :class:`SlidingWindow`.
2. Once the window is full, turn it into a zero-mean pulse waveform with
   the configured extraction strategy (POS by default).
3. Apply a symmetric Hamming window.
4. Pick the dominant DFT bin inside the BPM band.

Every estimate is recomputed from scratch from the window contents, so two
calls on an unchanged window return identical results.
"""

from __future__ import annotations

import logging
import threading

import numpy as np
from scipy.signal import windows

from facepulse.errors import BufferingError
from facepulse.extractors import PulseExtractor, make_extractor
from facepulse.sampler import ColorSample
from facepulse.spectrum import SpectralAnalyzer, SpectrumReport
from facepulse.window import SlidingWindow

logger = logging.getLogger(__name__)


class HeartRateEstimator:
    """
    Parameters
    ----------
    window_size:
        Number of samples N analysed per estimate (>= 2).
    fps:
        Acquisition rate of the samples in Hz.
    min_bpm, max_bpm:
        Heart-rate search band.
    extractor:
        Strategy instance or registered name (``"pos"``, ``"hue"``, ``"green"``).
    """

    def __init__(
        self,
        window_size: int = 256,
        fps: float = 20.0,
        min_bpm: float = 45.0,
        max_bpm: float = 180.0,
        extractor: PulseExtractor | str = "pos",
    ) -> None:
        self.fps = fps
        self.extractor = (
            make_extractor(extractor) if isinstance(extractor, str) else extractor
        )
        self.analyzer = SpectralAnalyzer(window_size, fps, min_bpm, max_bpm)
        self._window = SlidingWindow(window_size)
        self._taper = windows.hamming(window_size, sym=True)
        # window mutation and reads are mutually exclusive
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def add_sample(self, sample: ColorSample) -> None:
        with self._lock:
            self._window.add(sample)

    def clear(self) -> None:
        """Drop every buffered sample."""
        with self._lock:
            self._window.clear()

    def pulse_waveform(self) -> np.ndarray:
        """
        Return the Hamming-windowed pulse waveform of the full window.

        Raises
        ------
        BufferingError
            While fewer than N samples have been collected.
        """
        with self._lock:
            samples = self._ready_samples()
        return self._windowed(samples)

    def analyze(self, diagnostics: bool = False) -> SpectrumReport:
        """Run the full estimate and return the spectral report."""
        return self.analyzer.analyze(self.pulse_waveform(), diagnostics=diagnostics)

    def estimate(self) -> float:
        """Return the current heart rate in BPM."""
        return self.analyze().bpm

    @property
    def window_size(self) -> int:
        return self._window.capacity

    @property
    def buffer_size(self) -> int:
        return len(self._window)

    @property
    def fill_ratio(self) -> float:
        return self._window.fill_ratio

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _ready_samples(self) -> np.ndarray:
        if not self._window.is_full:
            raise BufferingError(len(self._window), self._window.capacity)
        return self._window.as_array()

    def _windowed(self, samples: np.ndarray) -> np.ndarray:
        return self.extractor.waveform(samples) * self._taper

