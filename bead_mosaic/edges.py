"""Sobel edge map over per-pixel luma."""

import numpy as np
from scipy import ndimage

from bead_mosaic.config import EDGE_THRESHOLD


def luma(pixels: np.ndarray) -> np.ndarray:
    """Unweighted mean of R, G, B as float64, shape (H, W)."""
    return pixels[:, :, :3].astype(np.float64).mean(axis=2)


def sobel_magnitude(gray: np.ndarray) -> np.ndarray:
    """Gradient magnitude for interior pixels; border pixels are 0."""
    h, w = gray.shape
    mag = np.zeros((h, w), dtype=np.float64)
    if h < 3 or w < 3:
        return mag

    gray = gray.astype(np.float64)
    gx = ndimage.sobel(gray, axis=1)
    gy = ndimage.sobel(gray, axis=0)
    mag[1:-1, 1:-1] = np.hypot(gx, gy)[1:-1, 1:-1]
    return mag


def detect_edges(pixels: np.ndarray, threshold: float = EDGE_THRESHOLD) -> np.ndarray:
    """Binary edge map of an RGB(A) buffer.

    Args:
        pixels: (H, W, 3|4) uint8 array.
        threshold: Minimum Sobel magnitude (exclusive) to count as an edge.

    Returns:
        (H, W) uint8 array of 0 / 255.  The one-pixel border is always 0.
    """
    mag = sobel_magnitude(luma(pixels))
    return np.where(mag > threshold, 255, 0).astype(np.uint8)
