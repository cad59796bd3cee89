"""
Pulse-extraction strategies.

Every strategy turns an ``(N, 3)`` array of mean BGR samples into a single
zero-mean pulse waveform of length N.  Windowing and the spectral peak
search are shared and live in :mod:`facepulse.estimator` and
:mod:`facepulse.spectrum`.

Strategies
----------
pos
    Plane-Orthogonal-to-Skin (default).  Each channel is divided by its own
    mean, then projected onto ``S1 = G - B`` and ``S2 = G + B - 2R`` and
    combined as ``H = S1 + alpha * S2`` with ``alpha = std(S1) / std(S2)``.
hue
    Hue angle of each mean colour.  Single-channel, more sensitive to
    illumination changes than POS.
green
    Mean-normalised green channel.

References
----------
- Wang W. et al., "Algorithmic principles of remote PPG."
  IEEE Trans. Biomed. Eng., 2017.
- Verkruysse W. et al., "Remote plethysmographic imaging using ambient light."
  Opt Express, 2008.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Tuple, Type

import cv2
import numpy as np

EPS = 1e-9

# Column order of the sample array (OpenCV BGR)
_B, _G, _R = 0, 1, 2


def normalize_channels(samples: np.ndarray) -> np.ndarray:
    """Divide each channel by its own temporal mean."""
    samples = np.asarray(samples, dtype=np.float64)
    return samples / (samples.mean(axis=0) + EPS)


class PulseExtractor(ABC):
    """Channel-to-waveform step of the estimator."""

    name: str = ""

    @abstractmethod
    def waveform(self, samples: np.ndarray) -> np.ndarray:
        """Return the zero-mean pulse waveform for ``(N, 3)`` BGR *samples*."""


class POSExtractor(PulseExtractor):
    name = "pos"

    def components(self, samples: np.ndarray) -> Tuple[np.ndarray, np.ndarray, float]:
        """Return ``(S1, S2, alpha)`` for *samples*."""
        norm = normalize_channels(samples)
        b, g, r = norm[:, _B], norm[:, _G], norm[:, _R]
        s1 = g - b
        s2 = g + b - 2.0 * r
        alpha = float(np.std(s1) / (np.std(s2) + EPS))
        return s1, s2, alpha

    def waveform(self, samples: np.ndarray) -> np.ndarray:
        s1, s2, alpha = self.components(samples)
        h = s1 + alpha * s2
        return h - h.mean()


class HueExtractor(PulseExtractor):
    name = "hue"

    def waveform(self, samples: np.ndarray) -> np.ndarray:
        bgr = np.asarray(samples, dtype=np.float32).reshape(-1, 1, 3) / 255.0
        # float input: hue in degrees [0, 360)
        hue = cv2.cvtColor(bgr, cv2.COLOR_BGR2HSV)[:, 0, 0].astype(np.float64)
        return hue - hue.mean()


class GreenExtractor(PulseExtractor):
    name = "green"

    def waveform(self, samples: np.ndarray) -> np.ndarray:
        g = normalize_channels(samples)[:, _G]
        return g - g.mean()


EXTRACTORS: Dict[str, Type[PulseExtractor]] = {
    cls.name: cls for cls in (POSExtractor, HueExtractor, GreenExtractor)
}


def make_extractor(name: str) -> PulseExtractor:
    """Instantiate the strategy registered as *name*."""
    try:
        return EXTRACTORS[name.lower()]()
    except KeyError:
        raise ValueError(
            f"Unknown pulse extraction method {name!r}; "
            f"choose one of {sorted(EXTRACTORS)}"
        ) from None
