#!/usr/bin/env python3
"""
Face Pulse – main entry point.

Estimates heart rate from a webcam view of the face (rPPG).

Usage
-----
    python main.py [OPTIONS]

Options
-------
    --model PATH         dlib 68-point landmark model (.dat)
    --fps FLOAT          Acquisition rate of colour samples (default: 20)
    --window FLOAT       Analysis window in seconds (default: 12.8)
    --window-size INT    Legacy fixed window length in samples
    --min-bpm / --max-bpm  Heart-rate search band (default: 45 – 180)
    --method NAME        Pulse extraction: pos, hue or green (default: pos)
    --frame-roi X,Y,W,H  Only analyse this part of the camera frame
    --headless           Run without display window (log BPM to stdout)
    --debug              Start in debug mode

Keyboard shortcuts (when the HUD window is open)
------------------------------------------------
    d        – toggle debug mode (landmarks, forehead polygon, FFT plots)
    r        – reset signal buffer
    s        – save the displayed frame as PNG
    q / ESC  – quit
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from facepulse.camera import Webcam
from facepulse.config import AppConfig
from facepulse.dlib_landmarks import DlibLandmarkProvider
from facepulse.errors import PulseError
from facepulse.estimator import HeartRateEstimator
from facepulse.extractors import EXTRACTORS
from facepulse.hud import HudDisplay
from facepulse.pacing import FramePacer
from facepulse.pipeline import PulsePipeline, crop_to_roi

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("facepulse")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Contactless heart-rate monitor from a webcam (rPPG)",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--model", type=Path,
                        default=Path("shape_predictor_68_face_landmarks.dat"),
                        help="dlib 68-point shape predictor model file")
    parser.add_argument("--resolution", default="640x480",
                        help="Camera resolution, e.g. 640x480")
    parser.add_argument("--camera-fps", type=float, default=30.0,
                        help="Requested camera capture rate")
    parser.add_argument("--camera-index", type=int, default=0,
                        help="OpenCV VideoCapture index")
    parser.add_argument("--frame-roi", default=None,
                        help="Analyse only this region of the frame: x,y,w,h")
    parser.add_argument("--no-flip", action="store_true",
                        help="Disable horizontal image flip")
    parser.add_argument("--fps", type=float, default=20.0,
                        help="Acquisition rate of colour samples")
    parser.add_argument("--window", type=float, default=12.8,
                        help="Analysis window in seconds")
    parser.add_argument("--window-size", type=int, default=None,
                        help="Legacy fixed window length in samples (overrides --window)")
    parser.add_argument("--min-bpm", type=float, default=45.0,
                        help="Lower edge of the heart-rate search band")
    parser.add_argument("--max-bpm", type=float, default=180.0,
                        help="Upper edge of the heart-rate search band")
    parser.add_argument("--method", choices=sorted(EXTRACTORS), default="pos",
                        help="Pulse extraction method")
    parser.add_argument("--hud-color", default="80,220,0",
                        help="BPM readout colour as b,g,r")
    parser.add_argument("--debug-key", default="d",
                        help="HUD key that toggles debug mode")
    parser.add_argument("--debug", action="store_true",
                        help="Start in debug mode")
    parser.add_argument("--headless", action="store_true",
                        help="No display window; log BPM to stdout only")
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------

def run(args: argparse.Namespace) -> int:
    try:
        config = AppConfig.from_args(args)
    except PulseError as exc:
        logger.error("Config Error: %s", exc)
        return 1

    analysis = config.analysis
    window_size = analysis.window_length
    logger.info(
        "Analysis window: %d samples (~%.2fs) at %.1f fps, band %.0f-%.0f BPM, method=%s",
        window_size, window_size / analysis.acquisition_fps, analysis.acquisition_fps,
        analysis.min_bpm, analysis.max_bpm, analysis.method,
    )

    try:
        provider = DlibLandmarkProvider(config.model_path)
    except PulseError as exc:
        logger.error("%s", exc)
        return 1

    estimator = HeartRateEstimator(
        window_size=window_size,
        fps=analysis.acquisition_fps,
        min_bpm=analysis.min_bpm,
        max_bpm=analysis.max_bpm,
        extractor=analysis.method,
    )
    pipeline = PulsePipeline(provider, estimator)
    pacer = FramePacer(analysis.acquisition_fps)
    camera = Webcam(
        index=config.camera.index,
        resolution=config.camera.resolution,
        fps=config.camera.fps,
        flip_horizontal=config.camera.flip,
    )

    hud: HudDisplay | None = None
    if not config.headless:
        hud = HudDisplay(config.hud)
        hud.start()

    debug_mode = config.hud.start_debug
    last_debug_mode = False
    log_every = max(1, int(round(analysis.acquisition_fps)))
    frame_idx = 0

    logger.info("Starting heart-rate monitor.  Press 'q' or ESC to quit.")
    try:
        with camera:
            frame_start = pacer.now()
            for frame in camera.frames():
                if hud is not None:
                    if hud.stopped:
                        break
                    debug_mode = hud.debug_enabled
                    if hud.take_reset_request():
                        pipeline.reset()
                if debug_mode != last_debug_mode:
                    logger.info("Debug mode %s", "ON" if debug_mode else "OFF")
                    logging.getLogger().setLevel(logging.DEBUG if debug_mode else logging.INFO)
                    last_debug_mode = debug_mode

                view = crop_to_roi(frame, config.camera.frame_roi)
                result = pipeline.process(view, debug=debug_mode)
                pacer.record_frame(result.landmarks is not None)
                if result.sample is not None and debug_mode:
                    pacer.record_sample()

                if hud is not None:
                    pipeline.annotate(view, result, debug=debug_mode)
                    hud.update_bpm(result.bpm)
                    hud.update_frame(view)
                elif frame_idx % log_every == 0:
                    ts = time.strftime("%H:%M:%S")
                    if result.bpm is not None:
                        print(f"[{ts}] BPM={result.bpm:.1f}  status={result.status.value}")
                    else:
                        print(f"[{ts}] Waiting for signal…  status={result.status.value}")

                if debug_mode:
                    pacer.log_stats()
                pacer.wait(frame_start)
                frame_start = pacer.now()
                frame_idx += 1

    except RuntimeError as exc:
        logger.error("Fatal: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        if hud is not None:
            hud.stop()

    return 0


def main() -> int:
    return run(parse_args())


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
