"""
Per-frame colour sampling of the stabilised skin patch.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

import numpy as np

from facepulse.stabilizer import StabilizedPatch


class ColorSample(NamedTuple):
    """Mean channel intensities (0 – 255) in OpenCV BGR order."""

    blue: float
    green: float
    red: float


class ColorSampler:
    """Reduce a stabilised patch to one :class:`ColorSample` per frame."""

    def sample(self, patch: StabilizedPatch) -> Optional[ColorSample]:
        """
        Return the unweighted mean of each channel over all patch pixels,
        or *None* when the patch is empty (frame skipped).
        """
        if patch.empty:
            return None
        pixels = patch.image.reshape(-1, patch.image.shape[-1]).astype(np.float64)
        b, g, r = pixels[:, :3].mean(axis=0)
        return ColorSample(float(b), float(g), float(r))
