"""
Motion-compensated forehead patch extraction.

Three landmarks that stay roughly rigid relative to the forehead (both
eyebrow peaks and the nose bridge) define an affine transform from the
source frame onto a fixed *canonical frame*.  A fixed forehead rectangle
in that canonical frame is mapped back into the source image, cropped,
and resampled to a constant output size, so every patch covers the same
patch of skin regardless of head translation, in-plane rotation or
distance from the camera.

Canonical frame (arbitrary pixel units)::

      (60,25) +-----------------+ (140,25)
              |    forehead     |
      (60,65) +-----------------+ (140,65)
         L brow (60,80)    R brow (140,80)
                   nose bridge (100,100)
"""

from __future__ import annotations

import logging
import math
from typing import NamedTuple, Optional, Tuple

import cv2
import numpy as np

from facepulse.landmarks import ANCHOR_INDICES, LandmarkSet

logger = logging.getLogger(__name__)

CANONICAL_ANCHORS = np.array(
    [[60.0, 80.0], [140.0, 80.0], [100.0, 100.0]], dtype=np.float32
)
CANONICAL_FOREHEAD = (60.0, 25.0, 140.0, 65.0)   # x0, y0, x1, y1
PATCH_SIZE = (64, 32)                            # width, height

_MIN_CROP = 2
_MIN_ANCHOR_AREA = 1e-6


class StabilizedPatch(NamedTuple):
    """Fixed-size skin patch plus its source-frame quadrilateral."""

    image: np.ndarray
    polygon: Optional[np.ndarray] = None   # (4, 2) int32, clockwise from top-left

    @property
    def empty(self) -> bool:
        return self.image.size == 0


EMPTY_PATCH = StabilizedPatch(np.empty((0, 0, 3), dtype=np.uint8), None)


def _to_homogeneous(m: np.ndarray) -> np.ndarray:
    return np.vstack([m.astype(np.float64), [0.0, 0.0, 1.0]])


class ForeheadStabilizer:
    """
    Warp the forehead region of a face into a canonical patch.

    Parameters
    ----------
    patch_size:
        ``(width, height)`` of every output patch.
    canonical_anchors:
        Target positions of the left brow peak, right brow peak and nose
        bridge in the canonical frame.
    forehead_rect:
        ``(x0, y0, x1, y1)`` of the sampled region in the canonical frame.
    """

    def __init__(
        self,
        patch_size: Tuple[int, int] = PATCH_SIZE,
        canonical_anchors: np.ndarray = CANONICAL_ANCHORS,
        forehead_rect: Tuple[float, float, float, float] = CANONICAL_FOREHEAD,
    ) -> None:
        self.patch_size = patch_size
        self.canonical_anchors = np.asarray(canonical_anchors, dtype=np.float32)
        self.forehead_rect = forehead_rect

        x0, y0, x1, y1 = forehead_rect
        self._corners = np.array(
            [[x0, y0], [x1, y0], [x1, y1], [x0, y1]], dtype=np.float64
        )
        out_w, out_h = patch_size
        sx = out_w / (x1 - x0)
        sy = out_h / (y1 - y0)
        # canonical -> output patch pixels
        self._to_patch = np.array(
            [[sx, 0.0, -sx * x0], [0.0, sy, -sy * y0], [0.0, 0.0, 1.0]]
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def stabilize(self, frame: np.ndarray, landmarks: LandmarkSet) -> StabilizedPatch:
        """
        Return the stabilised forehead patch for *frame*.

        An empty patch (``patch.empty``) means this frame should be skipped:
        the anchor triangle is degenerate or the forehead falls (almost)
        entirely outside the image.
        """
        anchors = np.asarray(landmarks, dtype=np.float64)[list(ANCHOR_INDICES)]
        if not np.all(np.isfinite(anchors)) or self._triangle_area(anchors) < _MIN_ANCHOR_AREA:
            logger.debug("Degenerate anchor triangle: %s", anchors.tolist())
            return EMPTY_PATCH

        to_canon = cv2.getAffineTransform(
            anchors.astype(np.float32), self.canonical_anchors
        )
        to_source = cv2.invertAffineTransform(to_canon)
        quad = cv2.transform(self._corners.reshape(-1, 1, 2), to_source).reshape(-1, 2)

        frame_h, frame_w = frame.shape[:2]
        x0 = min(max(math.floor(quad[:, 0].min()), 0), frame_w)
        x1 = min(max(math.ceil(quad[:, 0].max()), 0), frame_w)
        y0 = min(max(math.floor(quad[:, 1].min()), 0), frame_h)
        y1 = min(max(math.ceil(quad[:, 1].max()), 0), frame_h)
        if x1 - x0 < _MIN_CROP or y1 - y0 < _MIN_CROP:
            logger.debug("Forehead crop collapsed to %dx%d", x1 - x0, y1 - y0)
            return EMPTY_PATCH

        # crop-local pixels -> source -> canonical -> patch
        offset = np.array([[1.0, 0.0, x0], [0.0, 1.0, y0], [0.0, 0.0, 1.0]])
        local = (self._to_patch @ _to_homogeneous(to_canon) @ offset)[:2]

        crop = frame[y0:y1, x0:x1]
        patch = cv2.warpAffine(
            crop,
            local,
            self.patch_size,
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_REPLICATE,
        )
        polygon = np.rint(quad).astype(np.int32)
        return StabilizedPatch(patch, polygon)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _triangle_area(pts: np.ndarray) -> float:
        (ax, ay), (bx, by), (cx, cy) = pts
        return 0.5 * abs((bx - ax) * (cy - ay) - (cx - ax) * (by - ay))
