"""
Exception hierarchy.

Non-fatal conditions derive from :class:`EstimateUnavailable`; the caller
keeps the previously displayed BPM and continues with the next frame.
Fatal conditions (bad configuration, missing landmark model) terminate the
process from ``main.py``.
"""

from __future__ import annotations


class PulseError(Exception):
    """Base class for all facepulse errors."""


class EstimateUnavailable(PulseError):
    """No BPM can be produced for the current window."""


class BufferingError(EstimateUnavailable):
    """The sliding window is not full yet."""

    def __init__(self, filled: int, capacity: int) -> None:
        super().__init__(f"Buffering {filled}/{capacity}")
        self.filled = filled
        self.capacity = capacity


class NoDominantPeakError(EstimateUnavailable):
    """No bin inside the configured band has a positive magnitude."""


class ConfigError(PulseError, ValueError):
    """Invalid configuration value."""


class LandmarkModelError(PulseError):
    """The landmark predictor model could not be loaded."""
