"""
Integration tests for PulsePipeline with a scripted landmark provider.
Run with:  pytest tests/
"""

from __future__ import annotations

import numpy as np
import pytest

from facepulse.estimator import HeartRateEstimator
from facepulse.extractors import PulseExtractor
from facepulse.landmarks import ANCHOR_INDICES, NUM_LANDMARKS, LandmarkProvider
from facepulse.pipeline import FrameStatus, PulsePipeline, crop_to_roi
from facepulse.stabilizer import CANONICAL_ANCHORS

N, FPS, HZ = 32, 8.0, 1.25        # 1.25 Hz lands on bin 5 -> 75 BPM


def _face() -> np.ndarray:
    pts = np.zeros((NUM_LANDMARKS, 2))
    pts[list(ANCHOR_INDICES)] = CANONICAL_ANCHORS + (100.0, 100.0)
    return pts


def _degenerate() -> np.ndarray:
    return np.zeros((NUM_LANDMARKS, 2))


class ScriptedProvider(LandmarkProvider):
    """Returns a fixed face unless told otherwise."""

    def __init__(self) -> None:
        self.next = _face()

    def detect(self, frame):
        return self.next


class FlatExtractor(PulseExtractor):
    name = "flat"

    def waveform(self, samples):
        return np.zeros(len(samples))


def _frame(i: int) -> np.ndarray:
    g = 120.0 + 6.0 * np.sin(2 * np.pi * HZ * i / FPS)
    frame = np.empty((400, 400, 3), dtype=np.uint8)
    frame[:] = (100, int(round(g)), 150)
    return frame


def _pipeline(extractor="pos"):
    provider = ScriptedProvider()
    est = HeartRateEstimator(window_size=N, fps=FPS, min_bpm=45.0, max_bpm=180.0,
                             extractor=extractor)
    return provider, PulsePipeline(provider, est)


class TestPulsePipeline:

    def test_buffering_then_estimate(self):
        _, pipe = _pipeline()
        for i in range(N - 1):
            result = pipe.process(_frame(i))
            assert result.status is FrameStatus.BUFFERING
            assert result.bpm is None
        result = pipe.process(_frame(N - 1))
        assert result.fresh
        assert result.bpm == pytest.approx(75.0, abs=FPS / N * 60.0)
        assert pipe.last_bpm == result.bpm

    def test_no_face_keeps_previous_value(self):
        provider, pipe = _pipeline()
        for i in range(N):
            last = pipe.process(_frame(i))
        provider.next = None
        result = pipe.process(_frame(N))
        assert result.status is FrameStatus.NO_FACE
        assert result.bpm == last.bpm
        assert pipe.estimator.buffer_size == N

    def test_degenerate_roi_skips_sample(self):
        provider, pipe = _pipeline()
        for i in range(5):
            pipe.process(_frame(i))
        provider.next = _degenerate()
        result = pipe.process(_frame(5))
        assert result.status is FrameStatus.DEGENERATE_ROI
        assert result.sample is None
        assert pipe.estimator.buffer_size == 5

    def test_no_dominant_peak_keeps_previous_value(self):
        _, pipe = _pipeline(extractor=FlatExtractor())
        pipe.last_bpm = 61.0
        for i in range(N):
            result = pipe.process(_frame(i))
        assert result.status is FrameStatus.NO_DOMINANT_PEAK
        assert result.bpm == 61.0

    def test_debug_toggle_never_resets_window(self):
        _, pipe = _pipeline()
        for i in range(N):
            pipe.process(_frame(i), debug=(i % 2 == 0))
            assert pipe.estimator.buffer_size == i + 1

        debug = pipe.process(_frame(N), debug=True)
        plain = pipe.process(_frame(N + 1), debug=False)
        assert len(debug.report.peaks) == 3
        assert debug.waveform.shape == (N,)
        assert plain.report.peaks == []
        assert plain.waveform is None
        assert debug.patch.polygon is not None
        assert plain.patch.polygon is not None

    def test_annotate_draws_on_frame(self):
        _, pipe = _pipeline()
        for i in range(N):
            result = pipe.process(_frame(i), debug=True)
        frame = _frame(0)
        before = frame.copy()
        out = pipe.annotate(frame, result, debug=True)
        assert out is frame
        assert not np.array_equal(out, before)

    def test_reset(self):
        _, pipe = _pipeline()
        for i in range(N):
            pipe.process(_frame(i))
        pipe.reset()
        assert pipe.last_bpm is None
        assert pipe.process(_frame(0)).status is FrameStatus.BUFFERING


class TestCropToRoi:

    def test_none_returns_frame(self):
        frame = np.zeros((10, 10, 3), dtype=np.uint8)
        assert crop_to_roi(frame, None) is frame

    def test_clipped_to_frame(self):
        frame = np.zeros((100, 200, 3), dtype=np.uint8)
        assert crop_to_roi(frame, (150, 50, 100, 100)).shape == (50, 50, 3)

    def test_view_not_copy(self):
        frame = np.zeros((100, 100, 3), dtype=np.uint8)
        view = crop_to_roi(frame, (10, 10, 20, 20))
        view[:] = 255
        assert frame[15, 15, 0] == 255

    def test_disjoint_roi_ignored(self):
        frame = np.zeros((100, 100, 3), dtype=np.uint8)
        assert crop_to_roi(frame, (500, 500, 10, 10)) is frame
