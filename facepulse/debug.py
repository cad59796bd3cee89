"""
Diagnostic plots for the pulse estimator.

Renders the windowed pulse waveform (the FFT input) and its magnitude
spectrum as small BGR bitmaps and stacks them in the top-right corner of
the video frame.  The configured BPM band is shaded and the ranked peaks
are marked; nothing here influences the reported BPM.
"""

from __future__ import annotations

import math
from typing import Optional, Tuple

import cv2
import numpy as np

from facepulse.spectrum import SpectrumReport

_GREEN  = (0, 220,  80)
_YELLOW = (0, 210, 210)
_WHITE  = (255, 255, 255)
_PURPLE = (150, 100, 180)
_DARK   = (30, 30, 30)
_BAND   = (60, 45, 45)
_PEAK_COLOURS = (_YELLOW, (0, 140, 255), (200, 200, 200))

PLOT_SIZE = (360, 180)   # width, height


def _canvas(size: Tuple[int, int]) -> np.ndarray:
    w, h = size
    plot = np.empty((h, w, 3), dtype=np.uint8)
    plot[:] = _DARK
    return plot


def render_waveform(waveform: np.ndarray, size: Tuple[int, int] = PLOT_SIZE) -> np.ndarray:
    """Draw *waveform* as a polyline scaled to fill the plot."""
    plot = _canvas(size)
    w, h = size
    sig = np.asarray(waveform, dtype=np.float64)
    if sig.size < 2:
        return plot

    mn, mx = sig.min(), sig.max()
    rng = mx - mn if mx != mn else 1.0
    norm = (sig - mn) / rng

    margin = 24
    plot_h = h - margin - 6
    xs = np.linspace(0, w - 1, sig.size).astype(np.int32)
    ys = (margin + (1.0 - norm) * plot_h).astype(np.int32)
    cv2.line(plot, (0, margin + plot_h // 2), (w - 1, margin + plot_h // 2), _BAND, 1)
    pts = np.column_stack([xs, ys])
    cv2.polylines(plot, [pts[:, None, :]], False, _GREEN, 1, cv2.LINE_AA)
    return plot


def render_spectrum(report: SpectrumReport, size: Tuple[int, int] = PLOT_SIZE) -> np.ndarray:
    """Draw the magnitude spectrum as bars; shade the band, mark ranked peaks."""
    plot = _canvas(size)
    w, h = size
    mags = report.magnitudes[1:]        # DC is never a candidate
    if mags.size == 0:
        return plot

    top = mags.max()
    norm = mags / top if top > 0 else mags
    margin = 24
    plot_h = h - margin - 6
    bar_w = w / mags.size

    x_lo = int((report.low_bin - 1) * bar_w)
    x_hi = int(report.high_bin * bar_w)
    cv2.rectangle(plot, (x_lo, margin), (x_hi, h - 1), _BAND, -1)

    ranked = {p.bin: _PEAK_COLOURS[i] for i, p in enumerate(report.peaks)}
    ranked.setdefault(report.peak_bin, _YELLOW)
    y_bottom = h - 6
    for i, value in enumerate(norm):
        k = i + 1
        x0 = int(i * bar_w)
        x1 = max(x0, int((i + 1) * bar_w) - 1)
        y_top = y_bottom - int(value * plot_h)
        cv2.rectangle(plot, (x0, y_top), (x1, y_bottom), ranked.get(k, _PURPLE), -1)

    cv2.putText(
        plot, f"{report.bpm:.0f} BPM",
        (w - 90, margin + 14), cv2.FONT_HERSHEY_SIMPLEX, 0.45, _WHITE, 1, cv2.LINE_AA,
    )
    return plot


def resize_plot_to_fit(plot: np.ndarray, max_w: int, max_h: int) -> np.ndarray:
    """
    Scale *plot* down to fit inside ``max_w`` x ``max_h``.

    The scale factor is clamped to [0.1, 1.0] and the result is at least
    2x2 pixels.  Returns an empty array for empty input or a non-positive box.
    """
    if plot is None or plot.size == 0 or max_w <= 0 or max_h <= 0:
        return np.empty((0, 0, 3), dtype=np.uint8)
    rows, cols = plot.shape[:2]
    scale = min(max_w / cols, max_h / rows)
    scale = min(max(scale, 0.1), 1.0)
    w = max(2, int(round(cols * scale)))
    h = max(2, int(round(rows * scale)))
    return cv2.resize(plot, (w, h), interpolation=cv2.INTER_AREA)


def blit_plot(
    frame: np.ndarray,
    plot: np.ndarray,
    origin: Tuple[int, int],
    label: Optional[str] = None,
) -> None:
    """Copy *plot* into *frame* at *origin*, clipped to the frame, in-place."""
    if frame.size == 0 or plot.size == 0:
        return
    rows, cols = frame.shape[:2]
    x = min(max(origin[0], 0), cols - 1)
    y = min(max(origin[1], 0), rows - 1)
    w = min(plot.shape[1], cols - x)
    h = min(plot.shape[0], rows - y)
    if w < 2 or h < 2:
        return
    frame[y:y + h, x:x + w] = plot[:h, :w]
    cv2.rectangle(frame, (x, y), (x + w - 1, y + h - 1), _YELLOW, 1)
    if label:
        cv2.putText(
            frame, label, (x + 4, y + 16),
            cv2.FONT_HERSHEY_SIMPLEX, 0.5, _YELLOW, 1, cv2.LINE_AA,
        )


def describe_peaks(report: SpectrumReport) -> str:
    """One-line summary of the ranked peaks for the debug log."""
    ranked = ", ".join(
        f"#{i + 1} {bpm:.1f} BPM ({p.magnitude:.3g})"
        for i, (p, bpm) in enumerate(zip(report.peaks, report.peak_bpms))
    )
    if math.isfinite(report.peak_ratio):
        conf = f"ratio {report.peak_ratio:.2f} ({report.peak_ratio_db:.1f} dB)"
    else:
        conf = "ratio n/a"
    return f"Peaks: {ranked or 'none'}; {conf}"


class DebugIntrospector:
    """
    Overlay waveform and spectrum plots on a frame.

    Parameters
    ----------
    margin:
        Gap in pixels between the plots and the frame edge.
    """

    def __init__(self, margin: int = 10) -> None:
        self.margin = margin

    def annotate(
        self,
        frame: np.ndarray,
        waveform: np.ndarray,
        report: Optional[SpectrumReport] = None,
    ) -> np.ndarray:
        """Draw the plots onto *frame* in-place and return it."""
        rows, cols = frame.shape[:2]
        margin = self.margin
        max_w = min(360, max(160, cols // 2))
        max_h = min(180, max(120, (rows - 3 * margin) // 2))

        plot_input = resize_plot_to_fit(render_waveform(waveform), max_w, max_h)
        x = cols - plot_input.shape[1] - margin
        y = margin
        blit_plot(frame, plot_input, (x, y), "FFT Input")

        if report is not None:
            plot_fft = resize_plot_to_fit(render_spectrum(report), max_w, max_h)
            y += plot_input.shape[0] + margin
            x = cols - plot_fft.shape[1] - margin
            blit_plot(frame, plot_fft, (x, y), "FFT Mag")
        return frame
