"""
Facial landmark types and the provider interface.

Landmarks follow the 68-point iBUG / dlib layout.  Only a handful of
indices matter to the pulse pipeline: the two eyebrow peaks and the
nose bridge anchor the forehead stabiliser, the outer eye corners are
used for debug drawing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

import numpy as np

LandmarkSet = np.ndarray   # (68, 2) float64, source-frame pixels

NUM_LANDMARKS = 68

LEFT_BROW_PEAK = 19
RIGHT_BROW_PEAK = 24
NOSE_BRIDGE = 27
LEFT_EYE_OUTER = 36
RIGHT_EYE_OUTER = 45

ANCHOR_INDICES = (LEFT_BROW_PEAK, RIGHT_BROW_PEAK, NOSE_BRIDGE)


def as_landmark_set(points) -> LandmarkSet:
    """Convert *points* to a ``(68, 2)`` float array, validating the shape."""
    arr = np.asarray(points, dtype=np.float64)
    if arr.shape != (NUM_LANDMARKS, 2):
        raise ValueError(
            f"Expected {NUM_LANDMARKS} 2-D landmarks, got shape {arr.shape}"
        )
    return arr


def closest_to_center(
    centers: Sequence[Tuple[float, float]],
    frame_size: Tuple[int, int],
) -> int:
    """
    Return the index of the face centre nearest to the image centre.

    Parameters
    ----------
    centers:
        ``(x, y)`` centre of each detected face box.
    frame_size:
        ``(width, height)`` of the image.
    """
    if len(centers) == 0:
        raise ValueError("No face centres given")
    w, h = frame_size
    pts = np.asarray(centers, dtype=np.float64)
    dist = np.hypot(pts[:, 0] - w / 2.0, pts[:, 1] - h / 2.0)
    return int(np.argmin(dist))


class LandmarkProvider(ABC):
    """Interface for per-frame facial landmark extraction."""

    @abstractmethod
    def detect(self, frame: np.ndarray) -> Optional[LandmarkSet]:
        """Return the landmarks of the central face, or *None* if no face."""
