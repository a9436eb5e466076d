"""Simplify a board-sized buffer before palette construction.

Contrast is stretched first so that the subject separates from the
background, then subject and background are posterised with different step
sizes (or thresholded separately in monochrome mode).
"""

import logging

import numpy as np
from scipy import ndimage

from bead_mosaic.config import (
    BACKGROUND_BW_THRESHOLD,
    BACKGROUND_POSTERIZE_STEP,
    SUBJECT_BW_THRESHOLD,
    SUBJECT_POSTERIZE_STEP,
)
from bead_mosaic.edges import detect_edges
from bead_mosaic.segmentation import identify_subject

logger = logging.getLogger(__name__)


def _round_half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5)


def median_denoise(pixels: np.ndarray) -> np.ndarray:
    """3x3 per-channel median on interior pixels; the border is kept as is."""
    out = pixels.copy()
    h, w = pixels.shape[:2]
    if h < 3 or w < 3:
        return out
    filtered = ndimage.median_filter(pixels[:, :, :3], size=(3, 3, 1), mode="nearest")
    out[1:-1, 1:-1, :3] = filtered[1:-1, 1:-1]
    return out


def enhance_contrast(pixels: np.ndarray) -> np.ndarray:
    """Stretch channels so the darkest pixel mean maps to 0 and the brightest to 255.

    Flat images are returned unchanged.  Channels darker than the darkest
    mean clamp to 0.
    """
    out = pixels.copy()
    rgb = pixels[:, :, :3].astype(np.float64)
    brightness = rgb.mean(axis=2)
    lo = float(brightness.min()) if brightness.size else 0.0
    hi = float(brightness.max()) if brightness.size else 0.0
    span = hi - lo
    if span <= 0:
        return out

    stretched = (rgb - lo) / span * 255.0
    out[:, :, :3] = np.clip(np.rint(stretched), 0, 255).astype(np.uint8)
    return out


def posterize(pixels: np.ndarray, steps: np.ndarray) -> np.ndarray:
    """Snap each channel to a multiple of the per-pixel ``steps`` (H, W)."""
    out = pixels.copy()
    q = steps.astype(np.float64)[:, :, None]
    snapped = _round_half_up(pixels[:, :, :3].astype(np.float64) / q) * q
    out[:, :, :3] = np.clip(snapped, 0, 255).astype(np.uint8)
    return out


def threshold_monochrome(pixels: np.ndarray, thresholds: np.ndarray) -> np.ndarray:
    """Black / white by Rec. 601 grey against a per-pixel threshold (H, W)."""
    out = pixels.copy()
    rgb = pixels[:, :, :3].astype(np.float64)
    gray = _round_half_up(0.299 * rgb[:, :, 0] + 0.587 * rgb[:, :, 1] + 0.114 * rgb[:, :, 2])
    value = np.where(gray > thresholds, 255, 0).astype(np.uint8)
    out[:, :, :3] = value[:, :, None]
    return out


def preprocess_image(pixels: np.ndarray, num_colors: int, denoise: bool = False) -> np.ndarray:
    """Contrast-stretch and simplify an RGBA buffer.

    Args:
        pixels: (H, W, 4) uint8 buffer.  Not modified.
        num_colors: Target palette size; 2 selects the monochrome treatment.
        denoise: Apply a 3x3 median filter first.

    Returns:
        New (H, W, 4) uint8 buffer with alpha carried over.
    """
    data = median_denoise(pixels) if denoise else pixels.copy()
    data = enhance_contrast(data)

    subject = identify_subject(detect_edges(data)) > 0
    logger.debug("Preprocess: %d/%d subject pixels", int(subject.sum()), subject.size)

    if num_colors == 2:
        thresholds = np.where(subject, SUBJECT_BW_THRESHOLD, BACKGROUND_BW_THRESHOLD)
        return threshold_monochrome(data, thresholds)

    steps = np.where(subject, SUBJECT_POSTERIZE_STEP, BACKGROUND_POSTERIZE_STEP)
    return posterize(data, steps)
