"""
Fixed-capacity sliding window of colour samples.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterator

import numpy as np

from facepulse.sampler import ColorSample


class SlidingWindow:
    """
    First-in-first-out buffer holding the last ``capacity`` samples.

    The window is UNDERFILLED until ``capacity`` samples have been added and
    READY from then on; every later :meth:`add` evicts the oldest sample.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 2:
            raise ValueError(f"Window capacity must be >= 2, got {capacity}")
        self._samples: Deque[ColorSample] = deque(maxlen=capacity)

    def add(self, sample: ColorSample) -> None:
        """Admit *sample*, evicting the oldest one when full."""
        self._samples.append(ColorSample(*sample))

    def clear(self) -> None:
        self._samples.clear()

    @property
    def capacity(self) -> int:
        return self._samples.maxlen

    @property
    def is_full(self) -> bool:
        return len(self._samples) == self._samples.maxlen

    @property
    def fill_ratio(self) -> float:
        """How full the window is (0 – 1)."""
        return len(self._samples) / self._samples.maxlen

    def as_array(self) -> np.ndarray:
        """Return the samples as an ``(len, 3)`` BGR float array, oldest first."""
        if not self._samples:
            return np.empty((0, 3), dtype=np.float64)
        return np.array(self._samples, dtype=np.float64)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[ColorSample]:
        return iter(tuple(self._samples))
