"""
Face Pulse — contactless heart-rate estimation from a webcam (rPPG).
A forehead patch is stabilised against head motion using facial
landmarks; its mean colour is buffered over a sliding window, combined
into a pulse waveform (POS by default) and the dominant frequency inside
the configured BPM band gives the heart rate.
"""

__version__ = "0.1.0"
__author__ = "facepulse"
