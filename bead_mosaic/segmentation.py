"""Subject / background split from local edge density."""

import logging

import cv2
import numpy as np
from scipy import ndimage

from bead_mosaic.config import (
    SUBJECT_DILATION_RADIUS,
    SUBJECT_MIN_EDGES,
    SUBJECT_WINDOW_RADIUS,
)

logger = logging.getLogger(__name__)


def edge_density(edge_map: np.ndarray, radius: int = SUBJECT_WINDOW_RADIUS) -> np.ndarray:
    """Count edge pixels in a (2r+1)^2 window around every pixel.

    The window is clipped at the image bounds (pixels outside count as
    non-edges).
    """
    size = 2 * radius + 1
    edges = (edge_map > 0).astype(np.int32)
    kernel = np.ones((size, size), dtype=np.int32)
    return ndimage.convolve(edges, kernel, mode="constant", cval=0)


def identify_subject(
    edge_map: np.ndarray,
    radius: int = SUBJECT_WINDOW_RADIUS,
    min_edges: int = SUBJECT_MIN_EDGES,
    dilation_radius: int = SUBJECT_DILATION_RADIUS,
) -> np.ndarray:
    """Derive a subject mask from an edge map.

    A pixel is a subject seed when more than ``min_edges`` edge pixels fall
    in its window; the seeds are then dilated with a square kernel so that
    flat areas enclosed by detail are kept with the subject.

    Returns:
        (H, W) uint8 array of 0 (background) / 1 (subject).
    """
    seeds = (edge_density(edge_map, radius) > min_edges).astype(np.uint8)
    if not np.any(seeds):
        return seeds

    size = 2 * dilation_radius + 1
    kernel = np.ones((size, size), dtype=np.uint8)
    mask = cv2.dilate(seeds, kernel, iterations=1)
    logger.debug("Subject mask: %d seed pixels, %d after dilation",
                 int(seeds.sum()), int(mask.sum()))
    return (mask > 0).astype(np.uint8)
