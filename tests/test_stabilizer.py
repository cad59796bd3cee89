"""
Unit tests for ForeheadStabilizer, ColorSampler and landmark helpers.
Run with:  pytest tests/
"""

from __future__ import annotations

import numpy as np
import pytest

from facepulse.landmarks import (
    ANCHOR_INDICES,
    NUM_LANDMARKS,
    as_landmark_set,
    closest_to_center,
)
from facepulse.sampler import ColorSampler
from facepulse.stabilizer import (
    CANONICAL_ANCHORS,
    EMPTY_PATCH,
    PATCH_SIZE,
    ForeheadStabilizer,
)


def _landmarks(anchors: np.ndarray) -> np.ndarray:
    pts = np.zeros((NUM_LANDMARKS, 2))
    pts[list(ANCHOR_INDICES)] = anchors
    return pts


def _shifted(dx: float, dy: float, scale: float = 1.0) -> np.ndarray:
    return _landmarks(CANONICAL_ANCHORS.astype(np.float64) * scale + (dx, dy))


def _uniform(h: int, w: int, bgr=(10, 120, 200)) -> np.ndarray:
    frame = np.empty((h, w, 3), dtype=np.uint8)
    frame[:] = bgr
    return frame


class TestForeheadStabilizer:

    def test_patch_has_canonical_size(self):
        patch = ForeheadStabilizer().stabilize(_uniform(400, 400), _shifted(100, 100))
        w, h = PATCH_SIZE
        assert not patch.empty
        assert patch.image.shape == (h, w, 3)

    def test_polygon_in_source_coordinates(self):
        patch = ForeheadStabilizer().stabilize(_uniform(400, 400), _shifted(100, 100))
        expected = [[160, 125], [240, 125], [240, 165], [160, 165]]
        assert patch.polygon.dtype == np.int32
        np.testing.assert_array_equal(patch.polygon, expected)

    def test_size_independent_of_face_scale(self):
        stab = ForeheadStabilizer()
        frame = _uniform(600, 600)
        small = stab.stabilize(frame, _shifted(50, 50, scale=0.5))
        large = stab.stabilize(frame, _shifted(20, 20, scale=2.5))
        assert small.image.shape == large.image.shape

    def test_rotated_face(self):
        theta = np.deg2rad(20)
        rot = np.array([[np.cos(theta), -np.sin(theta)], [np.sin(theta), np.cos(theta)]])
        anchors = CANONICAL_ANCHORS.astype(np.float64) @ rot.T + (150, 100)
        patch = ForeheadStabilizer().stabilize(_uniform(480, 640), _landmarks(anchors))
        assert not patch.empty
        assert patch.polygon.shape == (4, 2)
        # rotated rectangle: its top edge is no longer horizontal
        assert patch.polygon[0, 1] != patch.polygon[1, 1]

    def test_motion_compensated(self):
        rng = np.random.default_rng(3)
        base = rng.integers(0, 256, (300, 300, 3), dtype=np.uint8)
        moved = np.zeros_like(base)
        moved[20:, 30:] = base[:-20, :-30]

        stab = ForeheadStabilizer()
        a = stab.stabilize(base, _shifted(40, 30))
        b = stab.stabilize(moved, _shifted(70, 50))
        diff = np.abs(a.image.astype(int) - b.image.astype(int))
        assert diff.max() <= 2

    @pytest.mark.parametrize("anchors", [
        np.zeros((3, 2)),                                    # all on one point
        np.array([[10.0, 10.0], [50.0, 50.0], [90.0, 90.0]]),  # collinear
        np.array([[np.nan, 1.0], [5.0, 5.0], [9.0, 1.0]]),
    ])
    def test_degenerate_anchors_give_empty_patch(self, anchors):
        patch = ForeheadStabilizer().stabilize(_uniform(200, 200), _landmarks(anchors))
        assert patch.empty
        assert patch.polygon is None

    def test_forehead_outside_frame_is_empty(self):
        # forehead lands entirely above the top edge
        patch = ForeheadStabilizer().stabilize(_uniform(300, 300), _shifted(100, -100))
        assert patch is EMPTY_PATCH

    def test_partially_visible_forehead(self):
        patch = ForeheadStabilizer().stabilize(_uniform(300, 300), _shifted(100, -40))
        assert not patch.empty
        assert patch.image.shape[:2] == (PATCH_SIZE[1], PATCH_SIZE[0])


class TestColorSampler:

    def test_mean_of_uniform_patch(self):
        patch = ForeheadStabilizer().stabilize(_uniform(400, 400, (10, 120, 200)), _shifted(100, 100))
        sample = ColorSampler().sample(patch)
        assert sample.blue == pytest.approx(10.0)
        assert sample.green == pytest.approx(120.0)
        assert sample.red == pytest.approx(200.0)

    def test_unweighted_mean(self):
        img = np.zeros((2, 2, 3), dtype=np.uint8)
        img[0, 0] = (255, 0, 0)
        patch = EMPTY_PATCH._replace(image=img)
        sample = ColorSampler().sample(patch)
        assert sample == (63.75, 0.0, 0.0)

    def test_empty_patch_gives_no_sample(self):
        assert ColorSampler().sample(EMPTY_PATCH) is None


class TestLandmarks:

    def test_closest_to_center(self):
        centers = [(10, 10), (330, 250), (600, 400)]
        assert closest_to_center(centers, (640, 480)) == 1

    def test_closest_to_center_requires_faces(self):
        with pytest.raises(ValueError):
            closest_to_center([], (640, 480))

    def test_as_landmark_set_validates_shape(self):
        assert as_landmark_set(np.ones((68, 2), dtype=int)).dtype == np.float64
        with pytest.raises(ValueError):
            as_landmark_set(np.ones((5, 2)))
