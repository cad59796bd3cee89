"""
dlib-backed landmark provider.

Uses the HOG frontal face detector and the 68-point shape predictor
(``shape_predictor_68_face_landmarks.dat``).  When several faces are
visible the one closest to the image centre is used.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import cv2
import dlib
import numpy as np

from facepulse.errors import LandmarkModelError
from facepulse.landmarks import LandmarkProvider, LandmarkSet, as_landmark_set, closest_to_center

logger = logging.getLogger(__name__)


class DlibLandmarkProvider(LandmarkProvider):
    """
    Parameters
    ----------
    model_path:
        Path to the dlib 68-point shape predictor ``.dat`` file.
    upsample:
        Number of image pyramid upsamples for the face detector.  0 is
        fastest and is enough for a face filling a webcam frame.
    """

    def __init__(self, model_path: Path | str, upsample: int = 0) -> None:
        path = Path(model_path)
        if not path.is_file():
            raise LandmarkModelError(f"Dlib model file not found at: {path}")

        start = time.perf_counter()
        self._detector = dlib.get_frontal_face_detector()
        self._predictor = dlib.shape_predictor(str(path))
        self.upsample = upsample
        logger.info(
            "Dlib model loaded in %.1f ms", (time.perf_counter() - start) * 1000.0
        )

    def detect(self, frame: np.ndarray) -> Optional[LandmarkSet]:
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        faces = self._detector(rgb, self.upsample)
        if len(faces) == 0:
            return None

        h, w = frame.shape[:2]
        centers = [(r.center().x, r.center().y) for r in faces]
        face = faces[closest_to_center(centers, (w, h))]

        shape = self._predictor(rgb, face)
        return as_landmark_set([(p.x, p.y) for p in shape.parts()])
