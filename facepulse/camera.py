"""
Webcam capture.

Wraps ``cv2.VideoCapture`` to provide a simple iterator of BGR frames.
"""

from __future__ import annotations

import logging
import time
from typing import Generator, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)


class Webcam:
    """
    Parameters
    ----------
    index:
        OpenCV camera index.
    resolution:
        Requested (width, height) of captured frames.
    fps:
        Requested capture rate.  The driver may ignore it.
    flip_horizontal:
        Mirror the image left-to-right (selfie view).
    """

    def __init__(
        self,
        index: int = 0,
        resolution: Tuple[int, int] = (640, 480),
        fps: float = 30.0,
        flip_horizontal: bool = False,
    ) -> None:
        self.index = index
        self.resolution = resolution
        self.fps = fps
        self.flip_horizontal = flip_horizontal

        self._cap: "cv2.VideoCapture | None" = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Open the capture device."""
        start = time.perf_counter()
        cap = cv2.VideoCapture(self.index)
        if not cap.isOpened():
            raise RuntimeError(f"Cannot open video capture device index={self.index}")
        w, h = self.resolution
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        cap.set(cv2.CAP_PROP_FPS, self.fps)
        self._cap = cap
        logger.info(
            "Camera opened in %.1f ms – %dx%d @ %.1f fps",
            (time.perf_counter() - start) * 1000.0,
            int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            cap.get(cv2.CAP_PROP_FPS),
        )

    def close(self) -> None:
        """Release the capture device."""
        if self._cap is None:
            return
        self._cap.release()
        self._cap = None
        logger.info("Camera closed.")

    def __enter__(self) -> "Webcam":
        self.open()
        return self

    def __exit__(self, *_) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Frame acquisition
    # ------------------------------------------------------------------

    def read_frame(self) -> np.ndarray | None:
        """Capture a single BGR frame, or return *None* on failure."""
        if self._cap is None:
            raise RuntimeError("Camera is not open.  Call open() first.")
        ok, frame = self._cap.read()
        if not ok:
            logger.warning("VideoCapture.read() returned False.")
            return None
        if self.flip_horizontal:
            frame = cv2.flip(frame, 1)
        return frame

    def frames(self) -> Generator[np.ndarray, None, None]:
        """
        Yield frames until the camera is closed or reads keep failing.

        Usage::

            with Webcam() as cam:
                for frame in cam.frames():
                    process(frame)
        """
        null_streak = 0
        while self._cap is not None:
            frame = self.read_frame()
            if frame is None:
                null_streak += 1
                if null_streak >= 10:
                    logger.error("Camera returned 10 consecutive empty frames – aborting.")
                    break
                continue
            null_streak = 0
            yield frame
