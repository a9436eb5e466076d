"""Bead sheet output.

Generates inspection-friendly images of a quantized board:
  - Bead sheet: every cell drawn as a round bead with rim and highlight
  - Plain nearest-neighbour enlargement of the board
"""

import logging
from pathlib import Path
from typing import Tuple, Union

import cv2
import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

SHEET_BACKGROUND = (235, 235, 235)
RIM_COLOR = (60, 60, 60)
HIGHLIGHT_COLOR = (255, 255, 255)
HIGHLIGHT_ALPHA = 0.35


def _flatten_alpha(pixels: np.ndarray, background: Tuple[int, int, int]) -> np.ndarray:
    """Composite RGBA onto a solid background; RGB passes through."""
    if pixels.ndim == 3 and pixels.shape[2] == 4:
        alpha = pixels[:, :, 3:4].astype(np.float32) / 255.0
        rgb = pixels[:, :, :3].astype(np.float32)
        bg = np.array(background, dtype=np.float32)
        return (rgb * alpha + bg * (1 - alpha)).astype(np.uint8)
    return pixels[:, :, :3].astype(np.uint8)


def upscale_nearest(pixels: np.ndarray, scale: int) -> np.ndarray:
    """Blow up a board by an integer factor without smoothing."""
    if scale < 1:
        raise ValueError(f"scale must be >= 1, got {scale}")
    h, w = pixels.shape[:2]
    return cv2.resize(pixels, (w * scale, h * scale), interpolation=cv2.INTER_NEAREST)


def render_bead_sheet(pixels: np.ndarray, bead_size: int = 20) -> np.ndarray:
    """Draw a quantized board as a sheet of round beads.

    Args:
        pixels: Board-resolution (H x W x 3 or 4) uint8 image.
        bead_size: Cell size in output pixels.

    Returns:
        RGB numpy array of shape (H * bead_size, W * bead_size, 3).
    """
    if bead_size < 4:
        raise ValueError(f"bead_size must be >= 4, got {bead_size}")

    board = _flatten_alpha(pixels, SHEET_BACKGROUND)
    h, w = board.shape[:2]
    sheet = np.full((h * bead_size, w * bead_size, 3), SHEET_BACKGROUND, dtype=np.uint8)
    shine_mask = np.zeros(sheet.shape[:2], dtype=np.uint8)

    radius = bead_size // 2 - 1
    hole = max(1, bead_size // 8)
    shine = max(1, bead_size // 5)

    for y in range(h):
        for x in range(w):
            cx = x * bead_size + bead_size // 2
            cy = y * bead_size + bead_size // 2
            color = tuple(int(c) for c in board[y, x])
            cv2.circle(sheet, (cx, cy), radius, color, thickness=-1, lineType=cv2.LINE_AA)
            cv2.circle(sheet, (cx, cy), radius, RIM_COLOR, thickness=1, lineType=cv2.LINE_AA)
            # centre hole of a fuse bead
            cv2.circle(sheet, (cx, cy), hole, SHEET_BACKGROUND, thickness=-1, lineType=cv2.LINE_AA)
            cv2.circle(shine_mask, (cx - shine, cy - shine), max(1, radius // 3), 255, thickness=1)

    mask = shine_mask > 0
    blended = sheet.astype(np.float32)
    blended[mask] = blended[mask] * (1 - HIGHLIGHT_ALPHA) + np.array(HIGHLIGHT_COLOR) * HIGHLIGHT_ALPHA
    return blended.astype(np.uint8)


def save_bead_sheet(
    pixels: np.ndarray,
    path: Union[str, Path],
    bead_size: int = 20,
) -> Path:
    """Render the bead sheet and write it as PNG."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    sheet = render_bead_sheet(pixels, bead_size)
    Image.fromarray(sheet).save(path)
    logger.debug("Saved bead sheet: %s (%dx%d)", path, sheet.shape[1], sheet.shape[0])
    return path
