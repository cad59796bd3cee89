"""
Unit tests for SlidingWindow, the pulse extractors and HeartRateEstimator.
Run with:  pytest tests/
"""

from __future__ import annotations

import numpy as np
import pytest

from facepulse.errors import BufferingError, EstimateUnavailable
from facepulse.estimator import HeartRateEstimator
from facepulse.extractors import (
    GreenExtractor,
    HueExtractor,
    POSExtractor,
    make_extractor,
)
from facepulse.sampler import ColorSample
from facepulse.window import SlidingWindow


def _pulse_samples(n: int, fps: float, hz: float, amp: float = 2.0) -> np.ndarray:
    """BGR samples with a sinusoid on green only (shows up in G - B)."""
    t = np.arange(n) / fps
    samples = np.empty((n, 3))
    samples[:, 0] = 100.0
    samples[:, 1] = 120.0 + amp * np.sin(2 * np.pi * hz * t)
    samples[:, 2] = 150.0
    return samples


def _filled(est: HeartRateEstimator, samples: np.ndarray) -> HeartRateEstimator:
    for row in samples:
        est.add_sample(ColorSample(*row))
    return est


# ---------------------------------------------------------------------------
# SlidingWindow tests
# ---------------------------------------------------------------------------

class TestSlidingWindow:

    def test_rejects_tiny_capacity(self):
        with pytest.raises(ValueError):
            SlidingWindow(1)

    def test_fill_ratio_grows(self):
        win = SlidingWindow(4)
        assert win.fill_ratio == 0.0
        win.add(ColorSample(1, 2, 3))
        assert win.fill_ratio == 0.25
        assert not win.is_full

    def test_keeps_most_recent_in_order(self):
        win = SlidingWindow(10)
        for i in range(95):
            win.add(ColorSample(i, i + 1, i + 2))
            assert len(win) <= 10
        assert win.is_full
        assert [s.blue for s in win] == list(range(85, 95))
        arr = win.as_array()
        assert arr.shape == (10, 3)
        assert arr[0].tolist() == [85, 86, 87]
        assert arr[-1].tolist() == [94, 95, 96]

    def test_clear(self):
        win = SlidingWindow(3)
        for _ in range(5):
            win.add(ColorSample(1, 1, 1))
        win.clear()
        assert len(win) == 0
        assert win.as_array().shape == (0, 3)


# ---------------------------------------------------------------------------
# Extractor tests
# ---------------------------------------------------------------------------

class TestExtractors:

    def test_pos_scale_invariance(self):
        rng = np.random.default_rng(7)
        samples = _pulse_samples(128, 20.0, 1.3)
        samples += rng.normal(0.0, 0.5, samples.shape)
        pos = POSExtractor()
        _, _, alpha = pos.components(samples)
        _, _, alpha_scaled = pos.components(samples * 3.7)
        assert alpha == pytest.approx(alpha_scaled, rel=1e-6)

    def test_pos_waveform_zero_mean(self):
        wave = POSExtractor().waveform(_pulse_samples(64, 20.0, 1.5))
        assert wave.shape == (64,)
        assert abs(wave.mean()) < 1e-12

    def test_pos_alpha_balances_equal_projections(self):
        # only green moves, so S1 == S2 and alpha is 1
        _, _, alpha = POSExtractor().components(_pulse_samples(64, 20.0, 1.5))
        assert alpha == pytest.approx(1.0, rel=1e-6)

    def test_hue_and_green_zero_mean(self):
        samples = _pulse_samples(64, 20.0, 1.5)
        for extractor in (HueExtractor(), GreenExtractor()):
            wave = extractor.waveform(samples)
            assert wave.shape == (64,)
            assert abs(wave.mean()) < 1e-9

    def test_make_extractor(self):
        assert isinstance(make_extractor("POS"), POSExtractor)
        assert isinstance(make_extractor("hue"), HueExtractor)
        with pytest.raises(ValueError):
            make_extractor("chrom")


# ---------------------------------------------------------------------------
# HeartRateEstimator tests
# ---------------------------------------------------------------------------

class TestHeartRateEstimator:

    def test_buffering_until_full(self):
        est = HeartRateEstimator(window_size=16, fps=20.0)
        samples = _pulse_samples(16, 20.0, 1.5)
        for row in samples[:-1]:
            est.add_sample(ColorSample(*row))
            with pytest.raises(BufferingError) as info:
                est.estimate()
            assert info.value.capacity == 16
        est.add_sample(ColorSample(*samples[-1]))
        assert est.buffer_size == est.window_size == 16
        est.pulse_waveform()

    def test_buffering_is_estimate_unavailable(self):
        est = HeartRateEstimator(window_size=8, fps=10.0)
        with pytest.raises(EstimateUnavailable):
            est.analyze()

    def test_synthetic_pulse_detected(self):
        """G - B sinusoid at 1.2 Hz (72 BPM) is found within one bin."""
        fps, n, hz = 20.0, 256, 1.2
        est = _filled(HeartRateEstimator(window_size=n, fps=fps), _pulse_samples(n, fps, hz))
        bin_bpm = fps / n * 60.0
        assert abs(est.estimate() - hz * 60.0) <= bin_bpm

    @pytest.mark.parametrize("method", ["hue", "green"])
    def test_alternative_methods_detect_pulse(self, method):
        fps, n, hz = 20.0, 256, 1.5
        est = _filled(
            HeartRateEstimator(window_size=n, fps=fps, extractor=method),
            _pulse_samples(n, fps, hz),
        )
        assert abs(est.estimate() - hz * 60.0) <= fps / n * 60.0

    def test_scale_invariant_peak(self):
        fps, n = 20.0, 128
        samples = _pulse_samples(n, fps, 1.4)
        a = _filled(HeartRateEstimator(window_size=n, fps=fps), samples).analyze()
        b = _filled(HeartRateEstimator(window_size=n, fps=fps), samples * 0.4).analyze()
        assert a.peak_bin == b.peak_bin

    def test_repeat_calls_identical(self):
        fps, n = 20.0, 64
        est = _filled(HeartRateEstimator(window_size=n, fps=fps), _pulse_samples(n, fps, 1.6))
        np.testing.assert_array_equal(est.pulse_waveform(), est.pulse_waveform())
        assert est.estimate() == est.estimate()

    def test_hamming_window_applied(self):
        n = 32
        samples = _pulse_samples(n, 20.0, 2.0)
        est = _filled(HeartRateEstimator(window_size=n, fps=20.0), samples)
        i = np.arange(n)
        taper = 0.54 - 0.46 * np.cos(2 * np.pi * i / (n - 1))
        expected = POSExtractor().waveform(samples) * taper
        np.testing.assert_allclose(est.pulse_waveform(), expected, rtol=1e-12, atol=1e-15)

    def test_sliding_keeps_ready(self):
        fps, n = 20.0, 32
        est = _filled(HeartRateEstimator(window_size=n, fps=fps), _pulse_samples(3 * n, fps, 1.5))
        assert est.buffer_size == n
        assert est.fill_ratio == 1.0
        est.estimate()

    def test_clear_returns_to_buffering(self):
        fps, n = 20.0, 16
        est = _filled(HeartRateEstimator(window_size=n, fps=fps), _pulse_samples(n, fps, 1.5))
        est.clear()
        with pytest.raises(BufferingError):
            est.estimate()
