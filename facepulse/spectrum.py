"""
Spectral heart-rate peak search.

The windowed pulse waveform of length N is transformed with a real DFT
(no zero padding).  Bin ``k`` corresponds to ``k * fps / N`` Hz.  The
answer is the strict-maximum-magnitude bin inside the configured BPM band;
the DC bin is never considered.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, NamedTuple, Tuple

import numpy as np

from facepulse.errors import NoDominantPeakError

logger = logging.getLogger(__name__)

RANK_SLOTS = 3


class SpectrumPeak(NamedTuple):
    bin: int
    magnitude: float


@dataclass
class SpectrumReport:
    """Result of one spectral analysis."""

    bpm: float
    peak_bin: int
    low_bin: int
    high_bin: int
    magnitudes: np.ndarray = field(repr=False)
    peaks: List[SpectrumPeak] = field(default_factory=list)
    peak_bpms: List[float] = field(default_factory=list)
    peak_ratio: float = math.nan
    peak_ratio_db: float = math.nan


def rank_peaks(
    magnitudes: np.ndarray,
    low: int,
    high: int,
    slots: int = RANK_SLOTS,
) -> List[SpectrumPeak]:
    """
    Return the *slots* largest bins in ``[low, high]``, largest first.

    Kept as a fixed-size ranked list filled by insertion; on equal
    magnitude the lower bin ranks first.
    """
    ranked: List[SpectrumPeak] = []
    for k in range(low, high + 1):
        mag = float(magnitudes[k])
        pos = len(ranked)
        while pos > 0 and mag > ranked[pos - 1].magnitude:
            pos -= 1
        if pos < slots:
            ranked.insert(pos, SpectrumPeak(k, mag))
            del ranked[slots:]
    return ranked


class SpectralAnalyzer:
    """
    Parameters
    ----------
    window_size:
        Length N of the analysed waveform (equals the window capacity).
    fps:
        Sample rate of the waveform in Hz.
    min_bpm, max_bpm:
        Heart-rate search band.
    """

    def __init__(
        self,
        window_size: int,
        fps: float,
        min_bpm: float = 45.0,
        max_bpm: float = 180.0,
    ) -> None:
        if window_size < 2:
            raise ValueError(f"window_size must be >= 2, got {window_size}")
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self.window_size = window_size
        self.fps = fps
        self.min_bpm = min_bpm
        self.max_bpm = max_bpm
        self.low_bin, self.high_bin = self._band_bins()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def bin_width_hz(self) -> float:
        return self.fps / self.window_size

    def bin_to_bpm(self, k: int) -> float:
        return k * self.fps / self.window_size * 60.0

    def magnitudes(self, waveform: np.ndarray) -> np.ndarray:
        """Return ``|DFT|`` of *waveform*, bins 0 .. N // 2."""
        waveform = np.asarray(waveform, dtype=np.float64)
        if waveform.shape != (self.window_size,):
            raise ValueError(
                f"Expected waveform of length {self.window_size}, got {waveform.shape}"
            )
        return np.abs(np.fft.rfft(waveform))

    def analyze(self, waveform: np.ndarray, diagnostics: bool = False) -> SpectrumReport:
        """
        Locate the heart-rate peak of *waveform*.

        Raises
        ------
        NoDominantPeakError
            If no bin in the band has a positive magnitude.
        """
        mags = self.magnitudes(waveform)
        band = mags[self.low_bin:self.high_bin + 1]
        # argmax returns the first maximum: lowest bin wins ties
        peak = self.low_bin + int(np.argmax(band))
        if not mags[peak] > 0.0:
            raise NoDominantPeakError(
                f"No positive magnitude in bins {self.low_bin}..{self.high_bin}"
            )

        report = SpectrumReport(
            bpm=self.bin_to_bpm(peak),
            peak_bin=peak,
            low_bin=self.low_bin,
            high_bin=self.high_bin,
            magnitudes=mags,
        )
        if diagnostics:
            self._fill_diagnostics(report)
        return report

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _band_bins(self) -> Tuple[int, int]:
        n = self.window_size
        nyquist = self.fps / 2.0
        low_hz = min(max(self.min_bpm / 60.0, 0.0), nyquist)
        high_hz = min(max(self.max_bpm / 60.0, 0.0), nyquist)

        top = max(1, n // 2 - 1)
        low = math.floor(low_hz * n / self.fps)
        high = math.ceil(high_hz * n / self.fps)
        low = min(max(low, 1), top)
        high = min(max(high, 1), top)
        if low > high:
            high = low
        logger.debug(
            "Band %.1f-%.1f BPM -> bins %d..%d (N=%d, fps=%.2f)",
            self.min_bpm, self.max_bpm, low, high, n, self.fps,
        )
        return low, high

    def _fill_diagnostics(self, report: SpectrumReport) -> None:
        peaks = rank_peaks(report.magnitudes, report.low_bin, report.high_bin)
        report.peaks = peaks
        report.peak_bpms = [self.bin_to_bpm(p.bin) for p in peaks]
        if len(peaks) >= 2:
            top, second = peaks[0].magnitude, peaks[1].magnitude
            report.peak_ratio = top / second if second > 0 else math.inf
            report.peak_ratio_db = (
                20.0 * math.log10(report.peak_ratio)
                if math.isfinite(report.peak_ratio)
                else math.inf
            )
