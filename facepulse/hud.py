"""
Heads-up display.

The HUD owns the OpenCV window on its own thread.  The processing loop
hands it the latest BPM and the latest annotated frame through
:class:`LatestValue` slots: each update overwrites the previous one, so
the display always shows the newest data and the producer never waits.

Keys (while the HUD window has focus)
-------------------------------------
    d (configurable)  – toggle debug mode
    r                 – request a signal buffer reset
    s                 – save the displayed frame as PNG
    q / ESC           – quit
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generic, Optional, TypeVar

import cv2
import numpy as np

from facepulse.config import HudConfig
from facepulse.visualizer import Visualizer

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ESC = 27
_NO_KEY = 0xFF


class LatestValue(Generic[T]):
    """Lock-guarded single-value slot with overwrite semantics."""

    def __init__(self, initial: Optional[T] = None) -> None:
        self._lock = threading.Lock()
        self._value = initial

    def put(self, value: Optional[T]) -> None:
        with self._lock:
            self._value = value

    def get(self) -> Optional[T]:
        with self._lock:
            return self._value


@dataclass
class HudContext:
    """State shared between the HUD thread and its key handler."""

    debug_key: str = "d"
    snapshot_dir: Path = Path(".")
    debug: threading.Event = field(default_factory=threading.Event)
    stop: threading.Event = field(default_factory=threading.Event)
    reset_requested: threading.Event = field(default_factory=threading.Event)
    shown: LatestValue = field(default_factory=LatestValue)


def handle_key(ctx: HudContext, key: int) -> None:
    """Apply one key press to *ctx*."""
    if key in (ord("q"), _ESC):
        logger.info("Quit requested by user.")
        ctx.stop.set()
    elif key in (ord(ctx.debug_key.lower()), ord(ctx.debug_key.upper())):
        if ctx.debug.is_set():
            ctx.debug.clear()
        else:
            ctx.debug.set()
    elif key == ord("r"):
        ctx.reset_requested.set()
    elif key == ord("s"):
        frame = ctx.shown.get()
        if frame is not None:
            fname = ctx.snapshot_dir / f"snapshot_{int(time.time())}.png"
            cv2.imwrite(str(fname), frame)
            logger.info("Saved snapshot: %s", fname)


class HudDisplay:
    """
    Parameters
    ----------
    config:
        Window title, BPM colour and debug hotkey.
    refresh_ms:
        Event-poll interval of the display loop.
    """

    def __init__(self, config: HudConfig = HudConfig(), refresh_ms: int = 15) -> None:
        self.config = config
        self.refresh_ms = refresh_ms
        self.context = HudContext(debug_key=config.debug_key)
        if config.start_debug:
            self.context.debug.set()
        self._visualizer = Visualizer(bpm_color=config.color, font_scale=config.font_scale)
        self._bpm: LatestValue[float] = LatestValue()
        self._frame: LatestValue[np.ndarray] = LatestValue()
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Producer side (processing thread)
    # ------------------------------------------------------------------

    def update_bpm(self, bpm: Optional[float]) -> None:
        self._bpm.put(bpm)

    def update_frame(self, frame: np.ndarray) -> None:
        if frame is None or frame.size == 0:
            return
        self._frame.put(frame.copy())

    @property
    def debug_enabled(self) -> bool:
        return self.context.debug.is_set()

    @property
    def stopped(self) -> bool:
        return self.context.stop.is_set()

    def take_reset_request(self) -> bool:
        """Return *True* once per pending reset request."""
        if self.context.reset_requested.is_set():
            self.context.reset_requested.clear()
            return True
        return False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        self._thread = threading.Thread(target=self.run, name="hud", daemon=True)
        self._thread.start()
        logger.info("HUD thread started")

    def stop(self, timeout: float = 2.0) -> None:
        self.context.stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None

    def run(self) -> None:
        """Display loop; returns when :meth:`stop` is called or on quit."""
        title = self.config.title
        cv2.namedWindow(title, cv2.WINDOW_NORMAL)
        try:
            while not self.context.stop.is_set():
                frame = self._frame.get()
                if frame is not None:
                    canvas = self._visualizer.draw_bpm(frame.copy(), self._bpm.get())
                    self.context.shown.put(canvas)
                    cv2.imshow(title, canvas)
                key = cv2.waitKey(self.refresh_ms) & 0xFF
                if key != _NO_KEY:
                    handle_key(self.context, key)
        finally:
            cv2.destroyWindow(title)
