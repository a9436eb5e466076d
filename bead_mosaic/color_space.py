"""sRGB -> CIE L*a*b* conversion and weighted perceptual distance."""

from typing import NamedTuple, Sequence, Tuple

import numpy as np

# sRGB (linear) -> XYZ, rows scaled to a 0..100 Y range
_SRGB_TO_XYZ = np.array([
    [0.4124, 0.3576, 0.1805],
    [0.2126, 0.7152, 0.0722],
    [0.0193, 0.1192, 0.9505],
], dtype=np.float64) * 100.0

# D65 reference white
_D65_WHITE = np.array([95.047, 100.000, 108.883], dtype=np.float64)

# Weights are applied to the squared channel deltas.
# BEAD_WEIGHTS emphasises red-green, which keeps skin tones apart; it is used
# for clustering, palette mapping and pixel recolouring.
BEAD_WEIGHTS: Tuple[float, float, float] = (1.0, 1.5, 1.0)
# The threshold matcher scales each delta by (1.5, 1.8, 1.2) before squaring.
MATCHER_WEIGHTS: Tuple[float, float, float] = (1.5 ** 2, 1.8 ** 2, 1.2 ** 2)


class LabColor(NamedTuple):
    L: float
    a: float
    b: float


def rgb_to_lab_array(rgb: np.ndarray) -> np.ndarray:
    """Convert sRGB (0-255) to Lab. Input shape: (..., 3), output float64."""
    c = np.asarray(rgb, dtype=np.float64) / 255.0
    linear = np.where(c > 0.04045, ((c + 0.055) / 1.055) ** 2.4, c / 12.92)
    xyz = linear @ _SRGB_TO_XYZ.T
    t = xyz / _D65_WHITE
    f = np.where(t > 0.008856, np.cbrt(t), 7.787 * t + 16.0 / 116.0)
    L = 116.0 * f[..., 1] - 16.0
    a = 500.0 * (f[..., 0] - f[..., 1])
    b = 200.0 * (f[..., 1] - f[..., 2])
    return np.stack([L, a, b], axis=-1)


def rgb_to_lab(r: int, g: int, b: int) -> LabColor:
    """Convert a single sRGB triple to Lab."""
    lab = rgb_to_lab_array(np.array([r, g, b], dtype=np.float64))
    return LabColor(float(lab[0]), float(lab[1]), float(lab[2]))


def lab_distance_array(
    lab1: np.ndarray,
    lab2: np.ndarray,
    weights: Sequence[float] = BEAD_WEIGHTS,
) -> np.ndarray:
    """Weighted Euclidean distance between broadcastable (..., 3) Lab arrays."""
    delta = np.asarray(lab1, dtype=np.float64) - np.asarray(lab2, dtype=np.float64)
    w = np.asarray(weights, dtype=np.float64)
    return np.sqrt(np.sum(w * delta * delta, axis=-1))


def lab_distance(
    c1: Sequence[float],
    c2: Sequence[float],
    weights: Sequence[float] = BEAD_WEIGHTS,
) -> float:
    """Weighted Euclidean distance ``sqrt(wL*dL^2 + wa*da^2 + wb*db^2)``."""
    return float(lab_distance_array(np.asarray(c1), np.asarray(c2), weights))
