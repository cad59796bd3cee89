"""
Application configuration.

Settings come from the command line (see ``main.py``) and are folded into
frozen dataclasses here.  The analysis core only needs the derived window
length (>= 2 samples) and a positive acquisition rate.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import Optional, Tuple

from facepulse.errors import ConfigError
from facepulse.extractors import EXTRACTORS

Rect = Tuple[int, int, int, int]   # x, y, w, h


def parse_resolution(text: str) -> Tuple[int, int]:
    """Parse ``"WxH"`` into ``(w, h)``."""
    try:
        w, h = (int(v) for v in text.lower().split("x"))
    except ValueError:
        raise ConfigError(f"Invalid resolution {text!r}.  Use WxH, e.g. 640x480.") from None
    if w <= 0 or h <= 0:
        raise ConfigError(f"Resolution must be positive, got {text!r}")
    return w, h


def parse_rect(text: str) -> Rect:
    """Parse ``"x,y,w,h"`` into a rectangle tuple."""
    try:
        x, y, w, h = (int(v) for v in text.split(","))
    except ValueError:
        raise ConfigError(f"Invalid rectangle {text!r}.  Use x,y,w,h.") from None
    return x, y, w, h


def parse_color(text: str) -> Tuple[int, int, int]:
    """Parse ``"b,g,r"`` into a BGR tuple."""
    try:
        b, g, r = (int(v) for v in text.split(","))
    except ValueError:
        raise ConfigError(f"Invalid colour {text!r}.  Use b,g,r.") from None
    if not all(0 <= c <= 255 for c in (b, g, r)):
        raise ConfigError(f"Colour components must be 0-255, got {text!r}")
    return b, g, r


@dataclass(frozen=True)
class CameraConfig:
    index: int = 0
    fps: float = 30.0
    resolution: Tuple[int, int] = (640, 480)
    frame_roi: Optional[Rect] = None
    flip: bool = False


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Attributes
    ----------
    window_seconds:
        Analysis window duration.  Takes precedence over ``window_size``.
    window_size:
        Legacy fixed sample count, used when ``window_seconds`` is *None*.
    acquisition_fps:
        Rate at which colour samples are taken (frame loop cadence).
    min_bpm, max_bpm:
        Heart-rate search band.
    method:
        Pulse-extraction strategy name.
    """

    window_seconds: Optional[float] = 12.8
    window_size: int = 256
    acquisition_fps: float = 20.0
    min_bpm: float = 45.0
    max_bpm: float = 180.0
    method: str = "pos"

    @property
    def window_length(self) -> int:
        """Number of samples N in the analysis window."""
        if self.window_seconds is not None:
            seconds = max(1.0, self.window_seconds)
            return max(2, int(round(seconds * self.acquisition_fps)))
        return self.window_size

    def validate(self) -> None:
        if not self.acquisition_fps > 0:
            raise ConfigError(f"acquisition_fps must be positive, got {self.acquisition_fps}")
        if self.window_seconds is None and self.window_size < 2:
            raise ConfigError(f"window_size must be >= 2, got {self.window_size}")
        if not 0 < self.min_bpm < self.max_bpm:
            raise ConfigError(
                f"Need 0 < min_bpm < max_bpm, got {self.min_bpm} / {self.max_bpm}"
            )
        if self.method not in EXTRACTORS:
            raise ConfigError(
                f"Unknown method {self.method!r}; choose one of {sorted(EXTRACTORS)}"
            )


@dataclass(frozen=True)
class HudConfig:
    title: str = "Heartbeat HUD"
    color: Tuple[int, int, int] = (80, 220, 0)   # BGR
    font_scale: float = 1.6
    debug_key: str = "d"
    start_debug: bool = False

    def validate(self) -> None:
        if len(self.debug_key) != 1:
            raise ConfigError(f"debug_key must be a single character, got {self.debug_key!r}")
        if self.debug_key.lower() in ("q", "r", "s"):
            raise ConfigError(f"debug_key {self.debug_key!r} clashes with a built-in key")


@dataclass(frozen=True)
class AppConfig:
    camera: CameraConfig = field(default_factory=CameraConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    hud: HudConfig = field(default_factory=HudConfig)
    model_path: str = "shape_predictor_68_face_landmarks.dat"
    headless: bool = False

    def validate(self) -> "AppConfig":
        self.analysis.validate()
        self.hud.validate()
        if not self.camera.fps > 0:
            raise ConfigError(f"camera fps must be positive, got {self.camera.fps}")
        return self

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "AppConfig":
        """Build and validate the configuration from parsed CLI arguments."""
        window_seconds = args.window if args.window_size is None else None
        cfg = cls(
            camera=CameraConfig(
                index=args.camera_index,
                fps=args.camera_fps,
                resolution=parse_resolution(args.resolution),
                frame_roi=parse_rect(args.frame_roi) if args.frame_roi else None,
                flip=not args.no_flip,
            ),
            analysis=AnalysisConfig(
                window_seconds=window_seconds,
                window_size=args.window_size if args.window_size is not None else 256,
                acquisition_fps=args.fps,
                min_bpm=args.min_bpm,
                max_bpm=args.max_bpm,
                method=args.method,
            ),
            hud=HudConfig(
                color=parse_color(args.hud_color),
                debug_key=args.debug_key,
                start_debug=args.debug,
            ),
            model_path=str(args.model),
            headless=args.headless,
        )
        return cfg.validate()
