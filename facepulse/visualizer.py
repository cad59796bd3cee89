"""
Frame annotation.

Draws onto each video frame:
  • The BPM readout (used by the HUD).
  • Status text for frames without an estimate.
  • A buffer fill bar while the analysis window is filling.
  • In debug mode: landmarks, the face box and the stabilised forehead polygon.
"""

from __future__ import annotations

from typing import Optional, Tuple

import cv2
import numpy as np

from facepulse.landmarks import LEFT_EYE_OUTER, RIGHT_EYE_OUTER, LandmarkSet

# ---------------------------------------------------------------------------
# Colour palette (BGR)
# ---------------------------------------------------------------------------
_GREEN  = (0, 220,  80)
_BLUE   = (255, 0, 0)
_YELLOW = (0, 210, 210)
_WHITE  = (255, 255, 255)
_BLACK  = (0, 0, 0)
_CYAN   = (220, 200,  0)
_DARK   = (30, 30, 30)

STATUS_TEXT = {
    "buffering": "Buffering...",
    "no_face": "No face detected",
    "degenerate_roi": "Forehead out of view",
    "no_dominant_peak": "No clear pulse",
}


class Visualizer:
    """
    Draws heart-rate monitoring UI onto OpenCV frames in-place.

    Parameters
    ----------
    bpm_color:
        BGR colour of the BPM readout.
    font_scale:
        Scale of the BPM readout font.
    """

    def __init__(
        self,
        bpm_color: Tuple[int, int, int] = _GREEN,
        font_scale: float = 1.6,
    ) -> None:
        self.bpm_color = bpm_color
        self.font_scale = font_scale

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def draw_bpm(self, frame: np.ndarray, bpm: Optional[float]) -> np.ndarray:
        """Draw the BPM readout (or a placeholder) in the top-left corner."""
        text = f"{bpm:.0f} BPM" if bpm is not None else "-- BPM"
        thickness = max(1, int(round(self.font_scale * 2)))
        cv2.putText(
            frame, text, (16, 52), cv2.FONT_HERSHEY_SIMPLEX,
            self.font_scale, _BLACK, thickness + 2, cv2.LINE_AA,
        )
        cv2.putText(
            frame, text, (16, 52), cv2.FONT_HERSHEY_SIMPLEX,
            self.font_scale, self.bpm_color, thickness, cv2.LINE_AA,
        )
        return frame

    def draw_status(self, frame: np.ndarray, status: str, fill: float) -> np.ndarray:
        """Draw the status line and, while filling, the buffer bar."""
        text = STATUS_TEXT.get(status)
        if text:
            cv2.putText(
                frame, text, (16, 84), cv2.FONT_HERSHEY_SIMPLEX,
                0.6, _YELLOW, 2, cv2.LINE_AA,
            )
        if fill < 1.0:
            self._draw_fill_bar(frame, fill)
        return frame

    def draw_debug(
        self,
        frame: np.ndarray,
        landmarks: Optional[LandmarkSet],
        polygon: Optional[np.ndarray],
    ) -> np.ndarray:
        """Draw landmarks, the face box and the forehead polygon."""
        if landmarks is not None:
            pts = np.rint(landmarks).astype(np.int32)
            for x, y in pts:
                cv2.circle(frame, (int(x), int(y)), 2, _YELLOW, -1)
            x0, y0 = pts.min(axis=0)
            x1, y1 = pts.max(axis=0)
            cv2.rectangle(frame, (int(x0), int(y0)), (int(x1), int(y1)), _BLUE, 2)
            cv2.line(
                frame, tuple(int(v) for v in pts[LEFT_EYE_OUTER]),
                tuple(int(v) for v in pts[RIGHT_EYE_OUTER]), _CYAN, 1, cv2.LINE_AA,
            )
        if polygon is not None:
            cv2.polylines(frame, [polygon.reshape(-1, 1, 2)], True, _GREEN, 2, cv2.LINE_AA)
        return frame

    # ------------------------------------------------------------------
    # Private drawing helpers
    # ------------------------------------------------------------------

    def _draw_fill_bar(self, frame: np.ndarray, fill: float) -> None:
        h, w = frame.shape[:2]
        bar_w = int((w - 32) * min(max(fill, 0.0), 1.0))
        y0, y1 = h - 20, h - 12
        cv2.rectangle(frame, (16, y0), (w - 16, y1), _DARK, -1)
        cv2.rectangle(frame, (16, y0), (16 + bar_w, y1), _CYAN, -1)
        cv2.putText(
            frame, f"buffer {fill * 100:.0f}%",
            (16, y0 - 4), cv2.FONT_HERSHEY_SIMPLEX, 0.4, _CYAN, 1, cv2.LINE_AA,
        )
